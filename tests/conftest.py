"""
Shared fixtures for the dashboard tests.

The modules live flat at the repository root; put it on sys.path so the
tests run without an editable install.
"""
import sys
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest


def pytest_configure():
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))


def make_contract(
    strike: float = 150.0,
    expiry: date = date(2025, 6, 20),
    kind: str = "call",
    oi: int = 500,
    ticker: str = "AAPL250620C00150000",
    reported: bool = True,
):
    from models import ContractType, OptionContract

    return OptionContract(
        underlying_ticker="AAPL",
        contract_type=ContractType(kind),
        expiration_date=expiry,
        strike_price=strike,
        open_interest=oi,
        ticker=ticker,
        open_interest_reported=reported,
    )


def make_response(status_code: int = 200, payload=None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.text = text
    resp.json.return_value = payload
    return resp


@pytest.fixture
def sample_payload() -> dict:
    return {
        "status": "OK",
        "count": 3,
        "results": [
            {
                "strike_price": 150,
                "expiration_date": "2025-06-20",
                "contract_type": "call",
                "open_interest": 500,
                "ticker": "AAPL250620C00150000",
                "underlying_ticker": "AAPL",
            },
            {
                "strike_price": -5,
                "expiration_date": "2025-06-20",
                "contract_type": "call",
                "open_interest": 10,
                "ticker": "BAD",
                "underlying_ticker": "AAPL",
            },
            {
                "strike_price": 160,
                "expiration_date": "2025-07-18",
                "contract_type": "put",
                "open_interest": 0,
                "ticker": "X",
                "underlying_ticker": "AAPL",
            },
        ],
    }


@pytest.fixture
def sample_contracts():
    return [
        make_contract(100.0, date(2025, 6, 20), "call", 0, "A"),
        make_contract(105.0, date(2025, 7, 18), "put", 100, "B"),
        make_contract(110.0, date(2025, 9, 19), "call", 400, "C"),
    ]
