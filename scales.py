"""
Value → pixel scales for the boxplot.

BandScale follows d3.scaleBand (categorical x axis) and LinearScale follows
d3.scaleLinear (continuous y axis). Both are frozen: the same inputs always
map to the same pixels, so a redraw with unchanged inputs is identical.
"""

import math
from dataclasses import dataclass, field

# Normalized Spotify features live in [0, 1]; the axis leaves room for whiskers.
VALUE_DOMAIN = (-1.0, 2.0)


@dataclass(frozen=True)
class BandScale:
    domain: tuple[str, ...]
    range: tuple[float, float]
    padding_inner: float = 1.0
    padding_outer: float = 0.5
    align: float = 0.5
    _index: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "domain", tuple(self.domain))
        object.__setattr__(self, "padding_inner", min(1.0, self.padding_inner))
        index: dict[str, int] = {}
        for key in self.domain:
            index.setdefault(key, len(index))
        object.__setattr__(self, "_index", index)

    def _layout(self) -> tuple[float, float]:
        """(start, step) of the band layout."""
        r0, r1 = self.range
        start, stop = (r1, r0) if r1 < r0 else (r0, r1)
        n = len(self._index)
        step = (stop - start) / max(1.0, n - self.padding_inner + self.padding_outer * 2)
        start += (stop - start - step * (n - self.padding_inner)) * self.align
        return start, step

    @property
    def step(self) -> float:
        return self._layout()[1]

    @property
    def bandwidth(self) -> float:
        return self.step * (1 - self.padding_inner)

    def positions(self) -> list[float]:
        start, step = self._layout()
        values = [start + step * i for i in range(len(self._index))]
        if self.range[1] < self.range[0]:
            values.reverse()
        return values

    def __call__(self, key: str) -> float:
        if key not in self._index:
            raise KeyError(f"{key!r} is not in the band scale domain")
        return self.positions()[self._index[key]]


def tick_increment(start: float, stop: float, count: int) -> float:
    """
    d3's tick step: a power of ten times 1, 2 or 5.

    Returns a positive step >= 1, or the negated inverse (-10 for 0.1) when
    the step is below one, so ticks can be built from integer multiples.
    """
    step = (stop - start) / max(0, count)
    power = math.floor(math.log10(step))
    error = step / (10 ** power)
    factor = 10 if error >= math.sqrt(50) else 5 if error >= math.sqrt(10) else 2 if error >= math.sqrt(2) else 1
    if power >= 0:
        return factor * (10 ** power)
    return -(10 ** -power) / factor


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float] = VALUE_DOMAIN
    range: tuple[float, float] = (0.0, 1.0)

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2
        return r0 + (value - d0) / (d1 - d0) * (r1 - r0)

    def ticks(self, count: int = 10) -> list[float]:
        d0, d1 = self.domain
        start, stop = min(d0, d1), max(d0, d1)
        if count <= 0 or start == stop:
            return [start] if start == stop else []

        inc = tick_increment(start, stop, count)
        if inc > 0:
            i0, i1 = math.ceil(start / inc), math.floor(stop / inc)
            return [i * inc for i in range(i0, i1 + 1)]
        inc = -inc
        i0, i1 = math.ceil(start * inc), math.floor(stop * inc)
        return [i / inc for i in range(i0, i1 + 1)]


def value_scale(height: float) -> LinearScale:
    """Fixed [-1, 2] domain onto a screen-space height (y grows downward)."""
    return LinearScale(domain=VALUE_DOMAIN, range=(float(height), 0.0))


def country_scale(countries: list[str], width: float,
                  padding_inner: float = 1.0, padding_outer: float = 0.5) -> BandScale:
    return BandScale(
        domain=tuple(countries),
        range=(0.0, float(width)),
        padding_inner=padding_inner,
        padding_outer=padding_outer,
    )
