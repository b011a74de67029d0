"""
Summary statistics for a normalized options chain.

Feeds the stat cards above the scatter plot:
  - total / call / put contract counts
  - total open interest (defaulted rows contribute 0 and are counted separately)
  - put/call open-interest ratio
  - expiration range
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

import numpy as np
import pandas as pd

from models import OptionContract, contracts_to_frame


@dataclass(frozen=True)
class ChainSummary:
    total_contracts: int
    calls: int
    puts: int
    total_open_interest: int
    open_interest_missing: int
    put_call_oi_ratio: float
    nearest_expiration: Optional[date] = None
    farthest_expiration: Optional[date] = None


def chain_summary(contracts: List[OptionContract]) -> ChainSummary:
    df = contracts_to_frame(contracts)
    if df.empty:
        return ChainSummary(0, 0, 0, 0, 0, np.nan)

    calls = df[df["contract_type"] == "call"]
    puts = df[df["contract_type"] == "put"]
    c_oi = int(calls["open_interest"].sum())
    p_oi = int(puts["open_interest"].sum())

    return ChainSummary(
        total_contracts=len(df),
        calls=len(calls),
        puts=len(puts),
        total_open_interest=int(df["open_interest"].sum()),
        open_interest_missing=int((~df["open_interest_reported"].astype(bool)).sum()),
        put_call_oi_ratio=round(p_oi / c_oi, 3) if c_oi > 0 else np.nan,
        nearest_expiration=min(df["expiration_date"]),
        farthest_expiration=max(df["expiration_date"]),
    )


def open_interest_by_expiration(contracts: List[OptionContract]) -> pd.DataFrame:
    """Open interest summed per expiration date, one column per contract type."""
    df = contracts_to_frame(contracts)
    if df.empty:
        return pd.DataFrame(columns=["expiration_date", "call", "put"])
    pivot = df.pivot_table(
        index="expiration_date", columns="contract_type",
        values="open_interest", aggfunc="sum", fill_value=0,
    )
    for col in ("call", "put"):
        if col not in pivot.columns:
            pivot[col] = 0
    return pivot[["call", "put"]].reset_index().rename_axis(None, axis=1)
