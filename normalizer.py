"""
Contract normalizer.

Turns the loosely-typed `results` records from the options API into
OptionContract rows. Bad records are dropped, never raised:

  - strike_price     must be a finite number > 0
  - expiration_date  must be present and parse as an ISO date
  - contract_type    must be exactly "call" or "put"

open_interest defaults to 0 when absent or invalid; such rows carry
open_interest_reported=False so a missing value is never mistaken for a real zero.
"""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, List

import numpy as np
import pandas as pd

from models import ContractType, GREEK_FIELDS, OptionContract

logger = logging.getLogger(__name__)

VALID_TYPES = {t.value: t for t in ContractType}


def _field(record: Mapping, name: str) -> Any:
    """Top-level value first, then the nested `details` block used by snapshot payloads."""
    value = record.get(name)
    if value is None:
        details = record.get("details")
        if isinstance(details, Mapping):
            value = details.get(name)
    return value


def _greek(record: Mapping, name: str) -> Any:
    value = record.get(name)
    if value is None:
        greeks = record.get("greeks")
        if isinstance(greeks, Mapping):
            value = greeks.get(name)
            if value is None and name == "implied_volatility":
                value = greeks.get("iv")
    return value


def _number_or_none(v: Any) -> Any:
    # bools are ints to pandas; they are never a valid price or count here
    if isinstance(v, (bool, np.bool_)) or not isinstance(v, (int, float, str, np.number)):
        return None
    if isinstance(v, int):
        # JSON integers are unbounded; anything past float range is garbage
        try:
            return float(v)
        except OverflowError:
            return None
    return v


def _numeric(values: list) -> pd.Series:
    cleaned = [_number_or_none(v) for v in values]
    return pd.to_numeric(pd.Series(cleaned, dtype=object), errors="coerce").astype(float)


def _dates(values: list) -> pd.Series:
    """Calendar day as written. A time or offset suffix must parse but never shifts the day."""
    cleaned, days = [], []
    for v in values:
        if isinstance(v, date):
            v = v.isoformat()
        if isinstance(v, str) and v.strip():
            v = v.strip()
            cleaned.append(v)
            days.append(v.split("T", 1)[0].split(" ", 1)[0])
        else:
            cleaned.append(None)
            days.append(None)
    parsed = pd.to_datetime(pd.Series(cleaned, dtype=object), errors="coerce", format="ISO8601", utc=True)
    local = pd.to_datetime(pd.Series(days, dtype=object), errors="coerce", format="ISO8601")
    return local.where(parsed.notna())


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_contracts(records) -> List[OptionContract]:
    """Validate and clean a raw results sequence. Same input, same output; order preserved."""
    if not isinstance(records, (list, tuple)):
        return []

    rows = [r for r in records if isinstance(r, Mapping)]
    skipped = len(records) - len(rows)
    if not rows:
        if skipped:
            logger.info("Normalized 0 of %d contracts (%d non-record entries)", len(records), skipped)
        return []

    strikes = _numeric([_field(r, "strike_price") for r in rows])
    expiries = _dates([_field(r, "expiration_date") for r in rows])
    types = [_field(r, "contract_type") for r in rows]
    oi = _numeric([_field(r, "open_interest") for r in rows])
    greeks = {g: _numeric([_greek(r, g) for r in rows]) for g in GREEK_FIELDS}

    strike_ok = np.isfinite(strikes.to_numpy()) & (strikes.to_numpy() > 0)
    expiry_ok = expiries.notna().to_numpy()
    type_ok = np.array([isinstance(t, str) and t in VALID_TYPES for t in types], dtype=bool)
    oi_ok = np.isfinite(oi.to_numpy()) & (oi.to_numpy() >= 0)

    out: List[OptionContract] = []
    for i, record in enumerate(rows):
        if not strike_ok[i]:
            logger.debug("Dropping %s: invalid strike_price %r", record.get("ticker"), _field(record, "strike_price"))
            continue
        if not expiry_ok[i]:
            logger.debug("Dropping %s: invalid expiration_date %r", record.get("ticker"), _field(record, "expiration_date"))
            continue
        if not type_ok[i]:
            logger.debug("Dropping %s: invalid contract_type %r", record.get("ticker"), types[i])
            continue

        greek_values = {}
        for g, series in greeks.items():
            v = series.iloc[i]
            greek_values[g] = float(v) if np.isfinite(v) else None

        out.append(OptionContract(
            underlying_ticker=_text(_field(record, "underlying_ticker")),
            contract_type=VALID_TYPES[types[i]],
            expiration_date=expiries.iloc[i].date(),
            strike_price=float(strikes.iloc[i]),
            open_interest=int(oi.iloc[i]) if oi_ok[i] else 0,
            ticker=_text(_field(record, "ticker")),
            open_interest_reported=bool(oi_ok[i]),
            **greek_values,
        ))

    logger.info(
        "Normalized %d of %d contracts (%d dropped, %d without open interest)",
        len(out), len(records), len(records) - len(out),
        sum(1 for c in out if not c.open_interest_reported),
    )
    return out


def normalize_payload(payload) -> List[OptionContract]:
    """Pull `results` out of a response body. Anything structurally off yields an empty list."""
    if not isinstance(payload, Mapping):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return normalize_contracts(results)
