from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Optional, Sequence

import math

from barviz_layout.model import DataPoint, Rect
from barviz_layout.settings import LabelPosition, LabelSettings
from barviz_layout.text_metrics import TextMetrics


LABEL_MARGIN_X = 8.0
LABEL_MARGIN_Y = 2.0
LABEL_OFFSET = 8.0
LABEL_BACKGROUND_WIDTH_PADDING = 16.0
LABEL_BACKGROUND_HEIGHT_PADDING = 8.0

DISPLAY_UNITS: tuple[tuple[float, str], ...] = (
    (1e12, "T"),
    (1e9, "bn"),
    (1e6, "M"),
    (1e3, "K"),
)
AUTO_PRECISION = 2

PositionShift = Callable[[float, Rect, float, bool], Optional[float]]


def resolve_display_units(display_units: float, reference: float) -> float:
    """Divisor for label values; `0` picks the largest unit not exceeding `reference`."""
    if display_units > 0:
        return float(display_units)
    magnitude = abs(reference) if math.isfinite(reference) else 0.0
    for divisor, _ in DISPLAY_UNITS:
        if magnitude >= divisor:
            return divisor
    return 1.0


def format_label(value: float, *, units: float = 1.0, precision: int | None = None) -> str:
    if not math.isfinite(value):
        return str(value)
    suffix = ""
    for divisor, name in DISPLAY_UNITS:
        if units == divisor:
            suffix = name
            break
    scaled = value / units if suffix else value

    decimals = AUTO_PRECISION if precision is None else max(0, int(precision))
    try:
        q = Decimal(str(scaled)).quantize(Decimal("1").scaleb(-decimals), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        q = Decimal(str(scaled))
    out = format(q, "f")
    if precision is None and "." in out:
        out = out.rstrip("0").rstrip(".")
    if out.lstrip("-").strip("0.") == "":
        out = out.lstrip("-")
    return out + suffix


def default_position_shift(position: LabelPosition) -> PositionShift:
    """Pure x-placement policy for a label of `text_width` next to `bar`.

    Returns the label's left edge, or `None` when the label cannot be placed.
    """

    def inside_start(text_width: float, bar: Rect, chart_width: float, legend_present: bool) -> float | None:
        return bar.x + LABEL_OFFSET

    def inside_end(text_width: float, bar: Rect, chart_width: float, legend_present: bool) -> float | None:
        return bar.right - text_width - LABEL_OFFSET

    def outside_end(text_width: float, bar: Rect, chart_width: float, legend_present: bool) -> float | None:
        x = bar.right + LABEL_OFFSET
        if x + text_width > chart_width:
            return None
        return x

    def auto(text_width: float, bar: Rect, chart_width: float, legend_present: bool) -> float | None:
        fits_inside = text_width + 2 * LABEL_OFFSET <= bar.width
        if not legend_present:
            x = outside_end(text_width, bar, chart_width, legend_present)
            if x is not None:
                return x
        if fits_inside:
            return inside_end(text_width, bar, chart_width, legend_present)
        return None

    policies: dict[str, PositionShift] = {
        "inside_start": inside_start,
        "inside_end": inside_end,
        "outside_end": outside_end,
        "auto": auto,
    }
    try:
        return policies[position]
    except KeyError as exc:
        raise ValueError(f"unsupported label position: {position!r}") from exc


def label_candidates(
    points: Sequence[DataPoint],
    settings: LabelSettings,
    metrics: TextMetrics,
    chart_width: float,
    legend_present: bool,
    position_shift: PositionShift | None = None,
) -> list[DataPoint]:
    """Attach an unfiltered candidate label to every point whose bar can carry one."""
    shift = position_shift or default_position_shift(settings.label_position)
    reference = max((abs(p.value) for p in points if math.isfinite(p.value)), default=0.0)
    units = resolve_display_units(settings.display_units, reference)
    bg_pad = LABEL_BACKGROUND_HEIGHT_PADDING if settings.show_background else 0.0

    out: list[DataPoint] = []
    for point in points:
        bar = point.bar_rect
        if bar is None or bar.width <= 0 or bar.height <= 0:
            out.append(_without_label(point))
            continue
        text = format_label(point.value, units=units, precision=settings.precision)
        size = metrics.measure(text, settings.font_family, settings.font_size)
        if not (settings.overflow_text or size.height + bg_pad < bar.height):
            out.append(_without_label(point))
            continue
        x = shift(size.width, bar, chart_width, legend_present)
        if x is None:
            out.append(_without_label(point))
            continue
        rect = Rect(x=float(x), y=bar.center_y - size.height * 0.5, width=size.width, height=size.height)
        out.append(replace(point, label_rect=rect, label_text=text, label_background=None))
    return out


def suppress_collisions(points: Sequence[DataPoint]) -> list[DataPoint]:
    """Greedy first-fit collision filter.

    Candidates are visited in input order and kept only if they clear every
    previously kept label by the label margins. Input order is the only
    tie-break.
    """
    accepted: list[Rect] = []
    out: list[DataPoint] = []
    for point in points:
        rect = point.label_rect
        if rect is None:
            out.append(point)
            continue
        if any(rect.overlaps(other, margin_x=LABEL_MARGIN_X, margin_y=LABEL_MARGIN_Y) for other in accepted):
            out.append(_without_label(point))
            continue
        accepted.append(rect)
        out.append(point)
    return out


def place_labels(
    points: Sequence[DataPoint],
    settings: LabelSettings,
    metrics: TextMetrics,
    chart_width: float,
    legend_present: bool,
    position_shift: PositionShift | None = None,
) -> list[DataPoint]:
    if not settings.show:
        return [_without_label(p) for p in points]
    placed = suppress_collisions(
        label_candidates(points, settings, metrics, chart_width, legend_present, position_shift)
    )
    if not settings.show_background:
        return placed
    return [
        replace(p, label_background=label_background(p.label_rect)) if p.label_rect is not None else p for p in placed
    ]


def label_background(rect: Rect) -> Rect:
    return Rect(
        x=rect.x - LABEL_BACKGROUND_WIDTH_PADDING * 0.5,
        y=rect.y - LABEL_BACKGROUND_HEIGHT_PADDING * 0.5,
        width=rect.width + LABEL_BACKGROUND_WIDTH_PADDING,
        height=rect.height + LABEL_BACKGROUND_HEIGHT_PADDING,
    )


def _without_label(point: DataPoint) -> DataPoint:
    if point.label_rect is None and point.label_text is None and point.label_background is None:
        return point
    return replace(point, label_rect=None, label_text=None, label_background=None)
