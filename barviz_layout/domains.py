from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from barviz_layout.model import DataPoint, distinct_categories
from barviz_layout.settings import CategoryAxisSettings, Settings, ValueAxisSettings


DEGENERATE_DOMAIN_PAD = 1.0
EMPTY_NUMERIC_DOMAIN = (0.0, 1.0)


@dataclass(frozen=True)
class AxesDomains:
    """Category domain is `(min, max)` for a continuous axis, else the ordered categories."""

    category: tuple[Any, ...]
    value: tuple[float, float]
    category_is_continuous: bool


def calculate_category_domain(
    points: Sequence[DataPoint],
    axis: CategoryAxisSettings,
    *,
    continuous: bool,
    custom: bool | None = None,
) -> tuple[Any, ...]:
    if not continuous:
        return tuple(distinct_categories(points))
    if custom is None:
        custom = axis.range_mode == "custom"

    cats = np.asarray([float(p.category) for p in points], dtype=np.float64)
    cats = cats[np.isfinite(cats)]
    if cats.size == 0:
        lo, hi = EMPTY_NUMERIC_DOMAIN
    else:
        lo, hi = float(np.min(cats)), float(np.max(cats))
    if custom:
        lo = float(axis.start) if axis.start is not None else lo
        hi = float(axis.end) if axis.end is not None else hi
    return _non_degenerate(lo, hi)


def calculate_value_domain(
    points: Sequence[DataPoint],
    axis: ValueAxisSettings,
    *,
    custom: bool | None = None,
) -> tuple[float, float]:
    """Range covering every stacked span `[shift, shift + value]`.

    A custom end clips the top; the data minimum stays unless a custom start is
    also configured.
    """
    if custom is None:
        custom = axis.range_mode == "custom"

    if points:
        shifts = np.asarray([p.shift_value for p in points], dtype=np.float64)
        ends = shifts + np.asarray([p.value for p in points], dtype=np.float64)
        edges = np.concatenate([shifts, ends])
        edges = edges[np.isfinite(edges)]
    else:
        edges = np.empty(0, dtype=np.float64)
    if edges.size == 0:
        lo, hi = EMPTY_NUMERIC_DOMAIN
    else:
        lo, hi = float(np.min(edges)), float(np.max(edges))
    if custom:
        lo = float(axis.start) if axis.start is not None else lo
        hi = float(axis.end) if axis.end is not None else hi
    return _non_degenerate(lo, hi)


def calculate_axes_domains(
    points: Sequence[DataPoint],
    settings: Settings,
    *,
    continuous: bool,
    custom_category: bool | None = None,
    custom_value: bool | None = None,
) -> AxesDomains:
    return AxesDomains(
        category=calculate_category_domain(
            points,
            settings.category_axis,
            continuous=continuous,
            custom=custom_category,
        ),
        value=calculate_value_domain(points, settings.value_axis, custom=custom_value),
        category_is_continuous=continuous,
    )


def _non_degenerate(lo: float, hi: float) -> tuple[float, float]:
    if lo > hi:
        lo, hi = hi, lo
    if lo == hi:
        return (lo - DEGENERATE_DOMAIN_PAD, hi + DEGENERATE_DOMAIN_PAD)
    return (lo, hi)
