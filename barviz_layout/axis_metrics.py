from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from barviz_layout.scales import Axis, BandScale, format_ticks_for_axis
from barviz_layout.settings import CategoryAxisSettings, ValueAxisSettings
from barviz_layout.text_metrics import TextMetrics


VALUE_AXIS_TICK_PAD = 8.0
TICK_LABEL_MIN_GAP = 2.0
VALUE_TICK_SPACING_PX = 80.0
CATEGORY_TICK_SPACING_PX = 40.0


@dataclass(frozen=True)
class AxisTicks:
    values: tuple[Any, ...]
    labels: tuple[str, ...]
    positions: tuple[float, ...]
    stride: int
    max_width: float
    max_height: float

    @property
    def visible_labels(self) -> tuple[str, ...]:
        return self.labels[:: self.stride]


def tick_label_stride(sizes: Sequence[float], spacing: float, *, min_gap: float = TICK_LABEL_MIN_GAP) -> int:
    """Smallest `k` such that every `k`-th label fits between tick positions."""
    if not sizes:
        return 1
    spacing = max(1.0, float(spacing))
    return max(1, int(np.ceil((max(sizes) + min_gap) / spacing)))


def value_axis_ticks(axis: Axis, settings: ValueAxisSettings, metrics: TextMetrics, length: float) -> AxisTicks:
    if not settings.show or length <= 0:
        return _empty_ticks()
    target = max(2, int(length // VALUE_TICK_SPACING_PX))
    ticks = axis.scale.ticks(target)
    labels = format_ticks_for_axis(ticks)
    positions = tuple(float(axis.scale(v)) for v in ticks)
    sizes = [metrics.measure(lbl, settings.font_family, settings.font_size) for lbl in labels]
    spacing = abs(positions[1] - positions[0]) if len(positions) > 1 else length
    return AxisTicks(
        values=tuple(float(v) for v in ticks),
        labels=tuple(labels),
        positions=positions,
        stride=tick_label_stride([s.width for s in sizes], spacing),
        max_width=max((s.width for s in sizes), default=0.0),
        max_height=max((s.height for s in sizes), default=_line_height(settings, metrics)),
    )


def category_axis_ticks(axis: Axis, settings: CategoryAxisSettings, metrics: TextMetrics, length: float) -> AxisTicks:
    """Tick labels along the vertical category axis.

    Band axes label every category at the band center; linear axes use nice
    ticks over the numeric domain.
    """
    if not settings.show or length <= 0:
        return _empty_ticks()
    scale = axis.scale
    if isinstance(scale, BandScale):
        values: tuple[Any, ...] = tuple(scale.categories)
        labels = [_category_label(c) for c in values]
        positions = tuple(scale(c) + scale.bandwidth() * 0.5 for c in values)
        spacing = abs(scale.step)
    else:
        target = max(2, int(length // CATEGORY_TICK_SPACING_PX))
        ticks = scale.ticks(target)
        values = tuple(float(v) for v in ticks)
        labels = format_ticks_for_axis(ticks)
        positions = tuple(float(scale(v)) for v in ticks)
        spacing = abs(positions[1] - positions[0]) if len(positions) > 1 else length
    if not labels:
        return _empty_ticks()
    sizes = [metrics.measure(lbl, settings.font_family, settings.font_size) for lbl in labels]
    return AxisTicks(
        values=values,
        labels=tuple(labels),
        positions=positions,
        stride=tick_label_stride([s.height for s in sizes], spacing),
        max_width=max(s.width for s in sizes),
        max_height=max(s.height for s in sizes),
    )


def title_thickness(metrics: TextMetrics, font_family: str, font_size: float, *, show: bool) -> float:
    if not show:
        return 0.0
    return metrics.measure("", font_family, font_size).height


def category_axis_width(ticks: AxisTicks, title: float, *, max_width: float) -> float:
    return max(0.0, min(ticks.max_width + title, max_width))


def value_axis_height(ticks: AxisTicks, title: float) -> float:
    if not ticks.labels:
        return title
    return ticks.max_height + VALUE_AXIS_TICK_PAD + title


def max_category_axis_width(total_width: float, maximum_size: float) -> float:
    """Upper bound for the category axis: `maximum_size` percent of the chart width."""
    return max(0.0, total_width) * maximum_size / 100.0


def _category_label(category: Any) -> str:
    if category is None:
        return "(Blank)"
    return str(category)


def _line_height(settings: ValueAxisSettings, metrics: TextMetrics) -> float:
    return metrics.measure("", settings.font_family, settings.font_size).height


def _empty_ticks() -> AxisTicks:
    return AxisTicks(values=(), labels=(), positions=(), stride=1, max_width=0.0, max_height=0.0)
