"""
Scale builder: maps contract fields to pixel space.

    x       strike price     -> [0, inner_width]        linear, niced
    y       expiration date  -> [inner_height, 0]       time, niced (far-dated at the top)
    radius  open interest    -> [2, 15] px              sqrt, so circle AREA tracks open interest
    color   contract type    -> call / put colour

Scales are immutable and rebuilt whenever the dataset or the viewport changes.
A zero-width domain maps everything to the middle of the range.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from math import ceil, floor, log10, sqrt
from typing import List, Sequence, Tuple, Union

import numpy as np

from models import ContractType, OptionContract

CALL_COLOR = "#3B82F6"
PUT_COLOR = "#EF4444"
MIN_RADIUS = 2.0
MAX_RADIUS = 15.0
DEFAULT_TICK_COUNT = 10

_E10, _E5, _E2 = sqrt(50), sqrt(10), sqrt(2)


# ── Viewport ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Margins:
    top: int = 40
    right: int = 40
    bottom: int = 80
    left: int = 80


@dataclass(frozen=True)
class Viewport:
    width: int = 800
    height: int = 600
    margins: Margins = field(default_factory=Margins)

    @property
    def inner_width(self) -> float:
        return max(self.width - self.margins.left - self.margins.right, 0)

    @property
    def inner_height(self) -> float:
        return max(self.height - self.margins.top - self.margins.bottom, 0)


def responsive_viewport(container_width: int, max_width: int = 1200) -> Viewport:
    """Width capped at max_width, height 3/4 of width clamped to [400, 700]."""
    width = min(container_width - 32, max_width)
    height = max(400, min(int(width * 0.75), 700))
    return Viewport(width=width, height=height)


# ── Tick arithmetic ────────────────────────────────────────────────────────────

def tick_increment(start: float, stop: float, count: int) -> float:
    """Step of a 1/2/5 x 10^k grid. Negative values mean 1/|step| (used for sub-unit steps)."""
    step = (stop - start) / max(0, count)
    power = floor(log10(step))
    error = step / 10 ** power
    factor = 10 if error >= _E10 else 5 if error >= _E5 else 2 if error >= _E2 else 1
    if power >= 0:
        return factor * 10 ** power
    return -(10 ** -power) / factor


def tick_step(start: float, stop: float, count: int) -> float:
    step0 = abs(stop - start) / max(0, count)
    step1 = 10 ** floor(log10(step0))
    error = step0 / step1
    if error >= _E10:
        step1 *= 10
    elif error >= _E5:
        step1 *= 5
    elif error >= _E2:
        step1 *= 2
    return step1 if stop >= start else -step1


def nice_linear(lo: float, hi: float, count: int = DEFAULT_TICK_COUNT) -> Tuple[float, float]:
    """Round [lo, hi] outward to the tick grid. Zero-width domains come back untouched."""
    if not hi > lo:
        return lo, hi
    prestep = None
    for _ in range(10):
        step = tick_increment(lo, hi, count)
        if step == prestep:
            break
        if step > 0:
            lo, hi = floor(lo / step) * step, ceil(hi / step) * step
        elif step < 0:
            lo, hi = ceil(lo * step) / step, floor(hi * step) / step
        else:
            break
        prestep = step
    return float(lo), float(hi)


def linear_ticks(lo: float, hi: float, count: int = DEFAULT_TICK_COUNT) -> List[float]:
    if hi == lo:
        return [float(lo)]
    if hi < lo:
        return linear_ticks(hi, lo, count)[::-1]
    step = tick_increment(lo, hi, count)
    if step > 0:
        return [round(i * step, 10) for i in range(ceil(lo / step), floor(hi / step) + 1)]
    inc = -step
    return [round(i / inc, 10) for i in range(ceil(lo * inc), floor(hi * inc) + 1)]


# ── Calendar intervals ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CalendarInterval:
    unit: str       # day | week | month | year
    every: int = 1

    def floor(self, d: date) -> date:
        if self.unit == "day":
            return d - timedelta(days=(d.day - 1) % self.every)
        if self.unit == "week":
            # weeks start on Sunday
            return d - timedelta(days=(d.weekday() + 1) % 7)
        if self.unit == "month":
            return date(d.year, d.month - (d.month - 1) % self.every, 1)
        return date(d.year - d.year % self.every, 1, 1)

    def ceil(self, d: date) -> date:
        if self.floor(d) == d:
            return d
        if self.unit == "day":
            nxt = d + timedelta(days=1)
            while self.floor(nxt) != nxt:
                nxt += timedelta(days=1)
            return nxt
        if self.unit == "week":
            return self.floor(d) + timedelta(days=7)
        if self.unit == "month":
            start = self.floor(d)
            month_index = start.year * 12 + start.month - 1 + self.every
            return date(month_index // 12, month_index % 12 + 1, 1)
        return date(self.floor(d).year + self.every, 1, 1)

    def next(self, d: date) -> date:
        return self.ceil(d + timedelta(days=1))


# (interval, approximate length in days), shortest first
_TIME_INTERVALS = [
    (CalendarInterval("day", 1), 1),
    (CalendarInterval("day", 2), 2),
    (CalendarInterval("week", 1), 7),
    (CalendarInterval("month", 1), 30),
    (CalendarInterval("month", 3), 90),
    (CalendarInterval("year", 1), 365),
]


def choose_interval(lo: date, hi: date, count: int = DEFAULT_TICK_COUNT) -> CalendarInterval:
    target = abs((hi - lo).days) / count
    lengths = [n for _, n in _TIME_INTERVALS]
    i = int(np.searchsorted(lengths, target, side="right"))
    if i == len(_TIME_INTERVALS):
        step = tick_step(lo.toordinal() / 365.0, hi.toordinal() / 365.0, count)
        return CalendarInterval("year", max(1, int(round(abs(step)))))
    if i == 0:
        return _TIME_INTERVALS[0][0]
    if target / lengths[i - 1] < lengths[i] / target:
        return _TIME_INTERVALS[i - 1][0]
    return _TIME_INTERVALS[i][0]


def nice_time(lo: date, hi: date, count: int = DEFAULT_TICK_COUNT) -> Tuple[date, date]:
    if not hi > lo:
        return lo, hi
    interval = choose_interval(lo, hi, count)
    return interval.floor(lo), interval.ceil(hi)


def time_ticks(lo: date, hi: date, count: int = DEFAULT_TICK_COUNT) -> List[date]:
    if hi == lo:
        return [lo]
    interval = choose_interval(lo, hi, count)
    ticks = []
    t = interval.ceil(lo)
    while t <= hi:
        ticks.append(t)
        t = interval.next(t)
    return ticks


# ── Scales ─────────────────────────────────────────────────────────────────────

Number = Union[int, float]


def _interpolate(t: float, r0: float, r1: float) -> float:
    return r0 + t * (r1 - r0)


@dataclass(frozen=True)
class LinearScale:
    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: Number) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return _interpolate((value - d0) / (d1 - d0), r0, r1)

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> List[float]:
        return linear_ticks(self.domain[0], self.domain[1], count)


@dataclass(frozen=True)
class SqrtScale:
    domain: Tuple[float, float]
    range: Tuple[float, float]

    @staticmethod
    def _transform(v: float) -> float:
        return float(np.sign(v) * np.sqrt(abs(v)))

    def __call__(self, value: Number) -> float:
        d0, d1 = (self._transform(d) for d in self.domain)
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return _interpolate((self._transform(value) - d0) / (d1 - d0), r0, r1)

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> List[float]:
        return linear_ticks(self.domain[0], self.domain[1], count)


@dataclass(frozen=True)
class TimeScale:
    domain: Tuple[date, date]
    range: Tuple[float, float]

    def __call__(self, value: date) -> float:
        d0, d1 = (d.toordinal() for d in self.domain)
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return _interpolate((value.toordinal() - d0) / (d1 - d0), r0, r1)

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> List[date]:
        return time_ticks(self.domain[0], self.domain[1], count)


@dataclass(frozen=True)
class OrdinalColorScale:
    mapping: Tuple[Tuple[str, str], ...] = (
        (ContractType.CALL.value, CALL_COLOR),
        (ContractType.PUT.value, PUT_COLOR),
    )

    def __call__(self, contract_type: Union[ContractType, str]) -> str:
        key = contract_type.value if isinstance(contract_type, ContractType) else str(contract_type)
        return dict(self.mapping)[key]

    @property
    def domain(self) -> List[str]:
        return [k for k, _ in self.mapping]


@dataclass(frozen=True)
class ScaleSet:
    x: LinearScale
    y: TimeScale
    radius: SqrtScale
    color: OrdinalColorScale
    viewport: Viewport


def build_scales(contracts: Sequence[OptionContract], viewport: Viewport = Viewport()) -> ScaleSet:
    """Derive all four scales from the dataset extent. The dataset must be non-empty."""
    if not contracts:
        raise ValueError("cannot build scales for an empty dataset")

    strikes = np.array([c.strike_price for c in contracts], dtype=float)
    ordinals = np.array([c.expiration_date.toordinal() for c in contracts])
    open_interest = np.array([c.open_interest for c in contracts], dtype=float)

    x_domain = nice_linear(float(strikes.min()), float(strikes.max()))
    y_domain = nice_time(date.fromordinal(int(ordinals.min())), date.fromordinal(int(ordinals.max())))

    return ScaleSet(
        x=LinearScale(domain=x_domain, range=(0.0, float(viewport.inner_width))),
        y=TimeScale(domain=y_domain, range=(float(viewport.inner_height), 0.0)),
        radius=SqrtScale(domain=(0.0, float(open_interest.max())), range=(MIN_RADIUS, MAX_RADIUS)),
        color=OrdinalColorScale(),
        viewport=viewport,
    )
