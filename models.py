"""
Canonical option contract record shared by every stage of the dashboard.
"""

from dataclasses import dataclass, asdict
from datetime import date
from enum import Enum
from typing import List, Optional

import pandas as pd


class ContractType(str, Enum):
    CALL = "call"
    PUT = "put"


GREEK_FIELDS = ["implied_volatility", "gamma", "delta", "theta", "vega"]

FRAME_COLUMNS = [
    "ticker", "underlying_ticker", "contract_type", "expiration_date",
    "strike_price", "open_interest", "open_interest_reported",
    *GREEK_FIELDS,
]


@dataclass(frozen=True)
class OptionContract:
    underlying_ticker: str
    contract_type: ContractType
    expiration_date: date
    strike_price: float          # always > 0
    open_interest: int           # always >= 0
    ticker: str
    # False when the upstream value was absent/invalid and open_interest was defaulted to 0
    open_interest_reported: bool = True
    implied_volatility: Optional[float] = None
    gamma: Optional[float] = None
    delta: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None


def contracts_to_frame(contracts: List[OptionContract]) -> pd.DataFrame:
    """One row per contract, insertion order kept. contract_type is the plain string value."""
    if not contracts:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    rows = []
    for c in contracts:
        row = asdict(c)
        row["contract_type"] = c.contract_type.value
        rows.append(row)
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)
