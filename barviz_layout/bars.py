from __future__ import annotations

from dataclasses import replace
from typing import Sequence

import math

import numpy as np

from barviz_layout.model import DataPoint, Line, Rect, distinct_categories
from barviz_layout.scales import AxisPair
from barviz_layout.settings import BAR_THICKNESS_CEILING, CategoryAxisSettings


MIN_CONTINUOUS_THICKNESS = 1.5
CONTINUOUS_PADDING_RATIO = 0.2
MIN_BAR_WIDTH = 1.0

# Continuous thickness divides the plot height into `3.75 + 1.25 * (n - 3)` slots.
_CONTINUOUS_BASE_SLOTS = 3.75
_CONTINUOUS_SLOT_STEP = 1.25


def requested_bar_thickness(
    points: Sequence[DataPoint],
    axis: CategoryAxisSettings,
    plot_height: float,
    *,
    continuous: bool,
    custom_range: bool = False,
) -> float:
    """Bar thickness requested before the continuous overlap pass.

    Both branches count distinct categories. For a continuous axis with a custom
    category range only categories inside `[start, end)` are counted.
    """
    if plot_height <= 0:
        return 0.0
    categories = distinct_categories(points)
    if not continuous:
        if not categories:
            return 0.0
        per_category = plot_height / len(categories)
        clamped = min(axis.max_category_thickness, max(axis.min_category_thickness, per_category))
        return clamped * (1.0 - axis.inner_padding / 100.0)

    if custom_range:
        categories = [c for c in categories if _within(float(c), axis.start, axis.end)]
    n = len(categories)
    if n < 4:
        return plot_height / _CONTINUOUS_BASE_SLOTS
    return plot_height / (_CONTINUOUS_BASE_SLOTS + _CONTINUOUS_SLOT_STEP * (n - 3))


def custom_category_range(axis: CategoryAxisSettings) -> tuple[float | None, float | None] | None:
    if axis.range_mode != "custom":
        return None
    return (axis.start, axis.end)


def calculate_bar_geometry(
    points: Sequence[DataPoint],
    axes: AxisPair,
    thickness: float,
    *,
    category_range: tuple[float | None, float | None] | None = None,
) -> list[DataPoint]:
    """Assign `bar_rect` to every point, in plot-local pixels.

    Returns new points in input order. On a continuous scalar category axis the
    overlap pass then gives every visible bar the same thickness, bars outside
    the half-open custom `category_range` get height 0, and bars at the domain
    ends are shifted to stay inside the axis.
    """
    if not points:
        return []

    value_axis = axes.value
    category_axis = axes.category
    dmin, dmax = float(value_axis.domain[0]), float(value_axis.domain[1])
    continuous = category_axis.is_continuous and category_axis.is_scalar
    if continuous:
        height = max(0.0, min(float(thickness), BAR_THICKNESS_CEILING))
        start, end = category_range if category_range is not None else (None, None)
    else:
        height = max(0.0, category_axis.scale.bandwidth())

    out: list[DataPoint] = []
    for point in points:
        x, width = _horizontal_extent(point, value_axis.scale, dmin, dmax)
        if continuous:
            category = float(point.category)
            y = category_axis.scale(category) - height * 0.5
            bar_height = height if _within(category, start, end) else 0.0
        elif point.category in category_axis.scale:
            y = category_axis.scale(point.category)
            bar_height = height
        else:
            # Category outside the visible window.
            y = 0.0
            bar_height = 0.0
            width = 0.0
        out.append(replace(point, bar_rect=Rect(x=x, y=y, width=width, height=bar_height)))

    if continuous:
        out = _inside_axis(resolve_continuous_overlap(out, height), category_axis.scale.range)
    return out


def resolve_continuous_overlap(points: Sequence[DataPoint], thickness: float) -> list[DataPoint]:
    """Shrink bars on a dense continuous axis to one uniform thickness.

    The final thickness is `0.8 * d_min` clamped to `[1.5, thickness]`, where
    `d_min` is the smallest gap between distinct bar positions. Bars are
    re-centered on their category position; zero-width bars collapse to height 0.
    """
    if not points:
        return []

    positions = np.asarray(
        sorted({p.bar_rect.y for p in points if p.bar_rect is not None and p.bar_rect.height > 0}),
        dtype=np.float64,
    )
    d_min = float(np.min(np.diff(positions))) if positions.size > 1 else math.inf
    if math.isfinite(d_min):
        resolved = min(thickness, max(MIN_CONTINUOUS_THICKNESS, d_min * (1.0 - CONTINUOUS_PADDING_RATIO)))
    else:
        resolved = thickness

    out: list[DataPoint] = []
    for point in points:
        rect = point.bar_rect
        if rect is None:
            out.append(point)
            continue
        center = rect.y + rect.height * 0.5 if rect.height > 0 else rect.y + thickness * 0.5
        new_height = resolved if rect.width > 0 and rect.height > 0 else 0.0
        out.append(replace(point, bar_rect=Rect(x=rect.x, y=center - new_height * 0.5, width=rect.width, height=new_height)))
    return out


def _inside_axis(points: Sequence[DataPoint], extent: tuple[float, float]) -> list[DataPoint]:
    lo, hi = min(extent), max(extent)
    out: list[DataPoint] = []
    for point in points:
        rect = point.bar_rect
        if rect is None or rect.height <= 0:
            out.append(point)
            continue
        y = max(lo, min(rect.y, hi - rect.height))
        out.append(point if y == rect.y else replace(point, bar_rect=replace(rect, y=y)))
    return out


def calculate_marks(points: Sequence[DataPoint], axes: AxisPair) -> list[DataPoint]:
    """Score ticks and range segments for points with visible bars."""
    scale = axes.value.scale
    dmin, dmax = float(axes.value.domain[0]), float(axes.value.domain[1])

    out: list[DataPoint] = []
    for point in points:
        rect = point.bar_rect
        if rect is None or rect.height <= 0 or (point.score is None and point.range is None):
            out.append(point)
            continue
        score_line = None
        if point.score is not None and _finite(point.score):
            sx = scale(_clamp(float(point.score), dmin, dmax))
            score_line = Line(x1=sx, y1=rect.y, x2=sx, y2=rect.bottom)
        range_line = None
        if point.range is not None and all(_finite(v) for v in point.range):
            lo, hi = sorted(float(v) for v in point.range)
            range_line = Line(
                x1=scale(_clamp(lo, dmin, dmax)),
                y1=rect.center_y,
                x2=scale(_clamp(hi, dmin, dmax)),
                y2=rect.center_y,
            )
        out.append(replace(point, score_line=score_line, range_line=range_line))
    return out


def _horizontal_extent(point: DataPoint, scale, dmin: float, dmax: float) -> tuple[float, float]:
    low, high = point.span
    x = scale(_clamp(low, dmin, dmax))
    if high < dmin or low > dmax:
        return x, 0.0
    width = scale(_clamp(high, dmin, dmax)) - x
    if width < MIN_BAR_WIDTH and point.value != 0:
        width = MIN_BAR_WIDTH
    return x, max(0.0, width)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def _within(value: float, start: float | None, end: float | None) -> bool:
    """Half-open `[start, end)` test; a `None` bound is open."""
    if start is not None and value < start:
        return False
    if end is not None and value >= end:
        return False
    return True
