import math
from datetime import date

import pytest

from conftest import make_contract
from scales import (
    CALL_COLOR,
    PUT_COLOR,
    CalendarInterval,
    LinearScale,
    SqrtScale,
    TimeScale,
    Viewport,
    build_scales,
    choose_interval,
    linear_ticks,
    nice_linear,
    nice_time,
    responsive_viewport,
)


def test_viewport_inner_dimensions():
    vp = Viewport(800, 600)
    assert vp.inner_width == 680
    assert vp.inner_height == 480


def test_nice_linear_rounds_outward():
    assert nice_linear(100, 110) == (100.0, 110.0)
    assert nice_linear(3.2, 97.6) == (0.0, 100.0)
    lo, hi = nice_linear(101.5, 187.25)
    assert lo <= 101.5 and hi >= 187.25
    assert nice_linear(5, 5) == (5, 5)


def test_linear_ticks_cover_domain():
    assert linear_ticks(0, 100) == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    ticks = linear_ticks(0, 1)
    assert ticks[0] == 0 and ticks[-1] == 1 and len(ticks) == 11


def test_x_scale_is_monotonic_over_strikes(sample_contracts):
    scales = build_scales(sample_contracts, Viewport())
    xs = [scales.x(s) for s in (100, 105, 110)]
    assert xs == sorted(xs)
    assert 0 <= xs[0] and xs[-1] <= Viewport().inner_width
    assert scales.x.domain == (100.0, 110.0)


def test_zero_width_domains_center_output():
    vp = Viewport()
    contracts = [make_contract(strike=100.0, oi=7, ticker=str(i)) for i in range(3)]
    scales = build_scales(contracts, vp)
    assert scales.x(100) == pytest.approx(vp.inner_width / 2)
    assert math.isfinite(scales.y(date(2025, 6, 20)))
    assert scales.y(date(2025, 6, 20)) == pytest.approx(vp.inner_height / 2)
    assert LinearScale((1.0, 1.0), (0.0, 10.0))(1.0) == 5.0
    assert SqrtScale((0.0, 0.0), (2.0, 15.0))(0) == 8.5


def test_radius_scale_endpoints_and_monotonicity(sample_contracts):
    r = build_scales(sample_contracts).radius
    assert r(0) == pytest.approx(2.0)
    assert r(400) == pytest.approx(15.0)
    assert r(100) == pytest.approx(8.5)
    assert r(1) < r(2) < r(100) < r(399)


def test_y_scale_puts_far_dates_on_top(sample_contracts):
    vp = Viewport()
    y = build_scales(sample_contracts, vp).y
    assert y(date(2025, 9, 19)) < y(date(2025, 7, 18)) < y(date(2025, 6, 20))
    assert y(y.domain[0]) == vp.inner_height
    assert y(y.domain[1]) == 0


def test_nice_time_snaps_to_calendar_interval():
    assert choose_interval(date(2025, 6, 20), date(2025, 7, 18)) == CalendarInterval("day", 2)
    assert nice_time(date(2025, 6, 20), date(2025, 7, 18)) == (date(2025, 6, 19), date(2025, 7, 19))
    lo, hi = nice_time(date(2025, 1, 17), date(2026, 12, 18))
    assert lo.day == 1 and hi.day == 1
    assert lo <= date(2025, 1, 17) and hi >= date(2026, 12, 18)


def test_multi_year_span_uses_years():
    interval = choose_interval(date(2025, 1, 1), date(2045, 6, 1))
    assert interval.unit == "year"
    lo, hi = nice_time(date(2025, 3, 1), date(2045, 6, 1))
    assert (lo.month, lo.day) == (1, 1) and (hi.month, hi.day) == (1, 1)


def test_time_ticks_fall_inside_domain():
    scale = TimeScale((date(2025, 6, 1), date(2025, 12, 1)), (400.0, 0.0))
    ticks = scale.ticks()
    assert ticks == sorted(ticks)
    assert all(scale.domain[0] <= t <= scale.domain[1] for t in ticks)
    assert all(t.day == 1 for t in ticks)


def test_week_interval_floors_to_sunday():
    week = CalendarInterval("week")
    assert week.floor(date(2025, 6, 20)) == date(2025, 6, 15)
    assert week.ceil(date(2025, 6, 20)) == date(2025, 6, 22)
    assert week.ceil(date(2025, 6, 15)) == date(2025, 6, 15)


def test_color_scale():
    colors = build_scales([make_contract()]).color
    assert colors("call") == CALL_COLOR
    assert colors("put") == PUT_COLOR


def test_empty_dataset_is_rejected():
    with pytest.raises(ValueError):
        build_scales([])


def test_responsive_viewport_clamps_height():
    assert responsive_viewport(2000) == Viewport(1200, 700)
    assert responsive_viewport(432).height == 400
