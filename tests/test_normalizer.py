from datetime import date

from models import ContractType
from normalizer import normalize_contracts, normalize_payload


def _rec(**overrides):
    rec = {
        "strike_price": 150,
        "expiration_date": "2025-06-20",
        "contract_type": "call",
        "open_interest": 500,
        "ticker": "AAPL250620C00150000",
        "underlying_ticker": "AAPL",
    }
    rec.update(overrides)
    return rec


def test_non_positive_strikes_are_dropped():
    out = normalize_contracts([_rec(strike_price=0), _rec(strike_price=-5), _rec(strike_price=1.5)])
    assert [c.strike_price for c in out] == [1.5]


def test_missing_open_interest_defaults_to_zero_and_is_flagged():
    rec = _rec()
    del rec["open_interest"]
    (c,) = normalize_contracts([rec])
    assert c.open_interest == 0
    assert c.open_interest_reported is False
    assert c.strike_price == 150.0
    assert c.expiration_date == date(2025, 6, 20)
    assert c.contract_type is ContractType.CALL


def test_reported_zero_open_interest_is_not_flagged():
    (c,) = normalize_contracts([_rec(open_interest=0)])
    assert c.open_interest == 0
    assert c.open_interest_reported is True


def test_non_numeric_or_negative_open_interest_defaults():
    out = normalize_contracts([_rec(open_interest="lots"), _rec(open_interest=-3), _rec(open_interest=12.9)])
    assert [c.open_interest for c in out] == [0, 0, 12]
    assert [c.open_interest_reported for c in out] == [False, False, True]


def test_contract_type_must_be_exactly_call_or_put():
    out = normalize_contracts([
        _rec(contract_type="straddle"),
        _rec(contract_type="CALL"),
        _rec(contract_type=None),
        _rec(contract_type="put", ticker="P"),
    ])
    assert [c.ticker for c in out] == ["P"]


def test_missing_or_unparsable_expiration_is_dropped():
    no_date = _rec()
    del no_date["expiration_date"]
    out = normalize_contracts([no_date, _rec(expiration_date="next friday"), _rec(expiration_date=""), _rec(ticker="OK")])
    assert [c.ticker for c in out] == ["OK"]


def test_offset_timestamps_keep_their_written_calendar_day():
    out = normalize_contracts([
        _rec(ticker="late", expiration_date="2025-06-20T20:00:00-05:00"),
        _rec(ticker="early", expiration_date="2025-06-20T01:00:00+09:00"),
        _rec(ticker="bad", expiration_date="2025-06-20Tnoon"),
    ])
    assert [(c.ticker, c.expiration_date) for c in out] == [
        ("late", date(2025, 6, 20)),
        ("early", date(2025, 6, 20)),
    ]


def test_integers_beyond_float_range_are_treated_as_invalid():
    out = normalize_contracts([
        _rec(ticker="huge-strike", strike_price=10**400),
        _rec(ticker="huge-oi", open_interest=10**400),
        _rec(ticker="huge-greek", delta=10**400),
        _rec(ticker="ok"),
    ])
    assert [c.ticker for c in out] == ["huge-oi", "huge-greek", "ok"]
    huge_oi = out[0]
    assert huge_oi.open_interest == 0
    assert huge_oi.open_interest_reported is False
    assert out[1].delta is None
    assert out[2].open_interest == 500


def test_malformed_records_never_raise_and_order_is_kept():
    raw = [
        "not a record",
        None,
        _rec(ticker="first", strike_price="101"),
        {"strike_price": {"nested": 1}},
        _rec(ticker="second", strike_price=float("nan")),
        _rec(ticker="third", strike_price=float("inf")),
        _rec(ticker="fourth", strike_price=True),
        _rec(ticker="fifth", strike_price=99),
    ]
    out = normalize_contracts(raw)
    assert [c.ticker for c in out] == ["first", "fifth"]
    assert out[0].strike_price == 101.0


def test_normalization_is_deterministic():
    raw = [_rec(ticker=str(i), strike_price=100 + i) for i in range(5)]
    assert normalize_contracts(raw) == normalize_contracts(raw)


def test_greeks_pass_through_from_top_level_or_nested_block():
    top = _rec(delta=0.55, implied_volatility=0.31)
    nested = _rec(greeks={"gamma": 0.02, "iv": 0.4, "theta": "bad"})
    a, b = normalize_contracts([top, nested])
    assert a.delta == 0.55 and a.implied_volatility == 0.31 and a.vega is None
    assert b.gamma == 0.02 and b.implied_volatility == 0.4 and b.theta is None


def test_snapshot_details_block_is_read():
    rec = {
        "details": {
            "strike_price": 200,
            "expiration_date": "2025-12-19",
            "contract_type": "put",
            "ticker": "O:AAPL251219P00200000",
        },
        "open_interest": 42,
    }
    (c,) = normalize_contracts([rec])
    assert c.strike_price == 200.0
    assert c.contract_type is ContractType.PUT
    assert c.open_interest == 42


def test_structurally_invalid_payloads_yield_empty():
    assert normalize_payload(None) == []
    assert normalize_payload([]) == []
    assert normalize_payload({"status": "OK"}) == []
    assert normalize_payload({"status": "OK", "results": "nope"}) == []
    assert normalize_contracts("nope") == []
    assert normalize_contracts([]) == []


def test_payload_end_to_end(sample_payload):
    out = normalize_payload(sample_payload)
    assert [c.ticker for c in out] == ["AAPL250620C00150000", "X"]
