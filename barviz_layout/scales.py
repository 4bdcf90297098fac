from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Literal, Sequence, Union

import numpy as np


AxisMode = Literal["categorical", "continuous"]


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float]
    range: tuple[float, float]

    def __post_init__(self) -> None:
        d0, d1 = self.domain
        if not (np.isfinite(d0) and np.isfinite(d1)) or d1 == d0:
            raise ValueError("linear scale domain must be finite with non-zero span")

    @property
    def is_ordinal(self) -> bool:
        return False

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        return r0 + (float(value) - d0) * (r1 - r0) / (d1 - d0)

    def inverse(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return d0
        return d0 + (float(pixel) - r0) * (d1 - d0) / (r1 - r0)

    def bandwidth(self) -> float:
        return 0.0

    def ticks(self, target: int) -> np.ndarray:
        lo, hi = min(self.domain), max(self.domain)
        return ticks_within_range(generate_nice_ticks(lo, hi, max(1, target)), vmin=lo, vmax=hi)


@dataclass(frozen=True)
class BandScale:
    """Equal-width bands over ordered categories.

    `padding` is the fraction of each step left empty, split evenly on both
    sides of the band.
    """

    categories: tuple[Any, ...]
    range: tuple[float, float]
    padding: float = 0.0
    _positions: dict[Any, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.padding < 1.0:
            raise ValueError("band padding must be in [0, 1)")
        object.__setattr__(self, "_positions", {category: i for i, category in enumerate(self.categories)})

    @property
    def is_ordinal(self) -> bool:
        return True

    @property
    def step(self) -> float:
        if not self.categories:
            return 0.0
        r0, r1 = self.range
        return (r1 - r0) / len(self.categories)

    def __contains__(self, category: Any) -> bool:
        return category in self._positions

    def __call__(self, category: Any) -> float:
        idx = self._positions[category]
        return self.range[0] + idx * self.step + self.step * self.padding * 0.5

    def inverse(self, pixel: float) -> Any:
        """Category whose band is nearest to `pixel`."""
        if not self.categories:
            return None
        step = self.step
        if step == 0:
            return self.categories[0]
        idx = int(np.floor((float(pixel) - self.range[0]) / step))
        idx = max(0, min(len(self.categories) - 1, idx))
        return self.categories[idx]

    def bandwidth(self) -> float:
        return abs(self.step) * (1.0 - self.padding)


Scale = Union[LinearScale, BandScale]


@dataclass(frozen=True)
class Axis:
    domain: tuple[Any, ...]
    scale: Scale
    mode: AxisMode
    is_scalar: bool

    @property
    def is_continuous(self) -> bool:
        return self.mode == "continuous"


@dataclass(frozen=True)
class AxisPair:
    category: Axis
    value: Axis


def build_category_scale(
    domain: Sequence[Any],
    length: float,
    *,
    continuous: bool,
    padding: float = 0.0,
) -> Scale:
    """Band scale for categorical or non-scalar axes, linear scale otherwise.

    The linear case maps the domain ends onto `0` and `length`.
    """
    if length <= 0:
        raise ValueError("category axis length must be > 0")
    if not continuous:
        return BandScale(categories=tuple(domain), range=(0.0, float(length)), padding=padding)
    lo, hi = float(domain[0]), float(domain[1])
    return LinearScale(domain=(lo, hi), range=(0.0, float(length)))


def build_value_scale(domain: tuple[float, float], width: float) -> LinearScale:
    if width <= 0:
        raise ValueError("value axis width must be > 0")
    return LinearScale(domain=(float(domain[0]), float(domain[1])), range=(0.0, float(width)))


def generate_nice_ticks(vmin: float, vmax: float, target: int) -> np.ndarray:
    if target <= 0:
        raise ValueError("target must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)

    span = _nice_number(vmax - vmin, round_result=False)
    step = _nice_number(span / max(target - 1, 1), round_result=True)
    tick_min = np.floor(vmin / step) * step
    tick_max = np.ceil(vmax / step) * step

    ticks = np.arange(tick_min, tick_max + 0.5 * step, step, dtype=np.float64)
    # Normalize floating-point drift so values like -4.44e-16 become 0.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def ticks_within_range(ticks: np.ndarray, *, vmin: float, vmax: float) -> np.ndarray:
    if ticks.size == 0:
        return ticks
    step = float(abs(ticks[1] - ticks[0])) if ticks.size > 1 else max(1e-12, abs(vmax - vmin))
    eps = max(1e-12, step * 1e-6)
    mask = (ticks >= (vmin - eps)) & (ticks <= (vmax + eps))
    out = ticks[mask]
    if out.size == 0:
        return np.asarray([vmin, vmax], dtype=np.float64) if abs(vmax - vmin) > 1e-12 else np.asarray([vmin], dtype=np.float64)
    return out


def format_tick(value: float, *, step: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    if step is not None and np.isfinite(step) and step > 0 and abs(value) <= step * 1e-9:
        value = 0.0
    abs_v = abs(value)
    decimals = _decimals_from_step(step) if step is not None else 6
    if abs_v != 0 and (abs_v >= 1e6 or (step is not None and abs(step) < 1e-4) or abs_v < 1e-6):
        return f"{value:.4e}"

    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant)
    except InvalidOperation:
        q = d
    out = format(q, "f")
    # Only trim trailing zeros for fractional values (preserve integer zeros like 30, 40).
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out


def format_ticks_for_axis(ticks: np.ndarray) -> list[str]:
    if ticks.size == 0:
        return []
    if ticks.size == 1:
        return [format_tick(float(ticks[0]))]
    step = float(abs(ticks[1] - ticks[0]))
    return [format_tick(float(v), step=step) for v in ticks]


def _nice_number(value: float, *, round_result: bool) -> float:
    exp = np.floor(np.log10(value))
    frac = value / (10**exp)

    if round_result:
        if frac < 1.5:
            nice_frac = 1.0
        elif frac < 3.0:
            nice_frac = 2.0
        elif frac < 7.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0
    else:
        if frac <= 1.0:
            nice_frac = 1.0
        elif frac <= 2.0:
            nice_frac = 2.0
        elif frac <= 5.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0

    return float(nice_frac * (10**exp))


def _decimals_from_step(step: float) -> int:
    if step <= 0 or not np.isfinite(step):
        return 6
    d = Decimal(str(step)).normalize()
    exp = d.as_tuple().exponent
    decimals = max(0, -int(exp))
    return min(12, decimals)
