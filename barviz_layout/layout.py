from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal, Mapping, Sequence

import logging

from barviz_layout.axis_metrics import (
    AxisTicks,
    category_axis_ticks,
    category_axis_width,
    max_category_axis_width,
    title_thickness,
    value_axis_height,
    value_axis_ticks,
)
from barviz_layout.bars import (
    calculate_bar_geometry,
    calculate_marks,
    custom_category_range,
    requested_bar_thickness,
)
from barviz_layout.domains import calculate_category_domain, calculate_value_domain
from barviz_layout.labels import PositionShift, place_labels
from barviz_layout.model import (
    DataPoint,
    Margin,
    Rect,
    Size,
    distinct_categories,
    is_scalar_category,
    is_small_multiple,
)
from barviz_layout.scales import Axis, AxisPair, build_category_scale, build_value_scale
from barviz_layout.scroll import ScrollState, ScrollWindow, window_size_for
from barviz_layout.settings import LegendSettings, Settings
from barviz_layout.small_multiple import SmallMultipleLayout, partition_viewport
from barviz_layout.text_metrics import PillowTextMetrics, TextMetrics


LOGGER = logging.getLogger(__name__)

MAX_LAYOUT_PASSES = 3
MARGIN_TOLERANCE_PX = 0.5
VISUAL_MARGIN = 5.0
EXTENDED_VISUAL_MARGIN = 15.0
CATEGORY_AXIS_GUTTER = 15.0
VALUE_AXIS_GUTTER = 10.0

LayoutMode = Literal["empty", "chart", "small_multiple"]


@dataclass(frozen=True)
class LayoutRequest:
    points: tuple[DataPoint, ...]
    viewport: Size
    settings: Settings = field(default_factory=Settings)
    metrics: TextMetrics = field(default_factory=PillowTextMetrics)
    scroll: ScrollState | None = None
    legend_size: Size = Size(0.0, 0.0)
    legend_present: bool = False
    position_shift: PositionShift | None = None


@dataclass(frozen=True)
class ScrollbarFlags:
    horizontal: bool = False
    vertical: bool = False


@dataclass(frozen=True)
class ChartLayout:
    """Geometry of a single (non small-multiple) chart.

    `plot` is in viewport pixels; bar and label rectangles on `points` are
    relative to the plot origin.
    """

    plot: Rect
    margin: Margin
    category_axis_width: float
    value_axis_height: float
    axes: AxisPair
    category_ticks: AxisTicks
    value_ticks: AxisTicks
    thickness: float
    points: tuple[DataPoint, ...]
    passes: int
    converged: bool


@dataclass(frozen=True)
class LayoutResult:
    mode: LayoutMode
    settings: Settings
    points: tuple[DataPoint, ...] = ()
    chart: ChartLayout | None = None
    small_multiple: SmallMultipleLayout | None = None
    scroll: ScrollState = ScrollState()
    scrollbars: ScrollbarFlags = ScrollbarFlags()

    @property
    def is_empty(self) -> bool:
        return self.mode == "empty"


@dataclass(frozen=True)
class _Frame:
    plot_size: Size
    axes: AxisPair
    category_ticks: AxisTicks
    value_ticks: AxisTicks
    value_axis_height: float
    thickness: float
    window: ScrollWindow
    visible: tuple[DataPoint, ...]


def layout_chart(request: LayoutRequest) -> LayoutResult:
    """Run the full layout pipeline for one update.

    Pure function of `request`: identical requests give identical results.
    """
    settings = request.settings.normalized()
    points = tuple(request.points)
    if not points:
        return LayoutResult(mode="empty", settings=settings)

    scalar = is_scalar_category(distinct_categories(points))
    small = is_small_multiple(points)
    settings = settings.resolved(
        legend_present=request.legend_present,
        small_multiple=small,
        category_is_scalar=scalar,
    )
    legend = legend_reservation(request.legend_size, settings.legend, present=request.legend_present)

    if small:
        sm = partition_viewport(
            points,
            settings,
            request.viewport,
            request.metrics,
            legend=legend,
            legend_present=request.legend_present,
            position_shift=request.position_shift,
        )
        return LayoutResult(
            mode="small_multiple",
            settings=settings,
            points=tuple(sm.points),
            small_multiple=sm,
            scrollbars=ScrollbarFlags(
                horizontal=sm.cell_size.scroll_horizontal,
                vertical=sm.cell_size.scroll_vertical,
            ),
        )

    chart, window = _layout_single(points, settings, request, legend, scalar=scalar)
    return LayoutResult(
        mode="chart",
        settings=settings,
        points=chart.points,
        chart=chart,
        scroll=window.state,
        scrollbars=ScrollbarFlags(vertical=window.needs_scrollbar),
    )


def legend_reservation(size: Size, legend: LegendSettings, *, present: bool) -> Size:
    """Space the legend takes from the viewport on its side only."""
    if not present or not legend.show:
        return Size(0.0, 0.0)
    if legend.position in ("left", "right"):
        return Size(width=max(0.0, size.width), height=0.0)
    return Size(width=0.0, height=max(0.0, size.height))


def visual_margin(settings: Settings) -> Margin:
    axis = settings.category_axis
    right_axis = axis.show and axis.position == "right"
    extended_left = right_axis or not axis.show
    extended_right = not right_axis or not axis.show
    return Margin(
        top=VISUAL_MARGIN,
        bottom=VISUAL_MARGIN,
        left=EXTENDED_VISUAL_MARGIN if extended_left else VISUAL_MARGIN,
        right=EXTENDED_VISUAL_MARGIN if extended_right else VISUAL_MARGIN,
    )


def _layout_single(
    points: Sequence[DataPoint],
    settings: Settings,
    request: LayoutRequest,
    legend: Size,
    *,
    scalar: bool,
) -> tuple[ChartLayout, ScrollWindow]:
    cat_settings = settings.category_axis
    val_settings = settings.value_axis
    metrics = request.metrics
    continuous = cat_settings.axis_type == "continuous" and scalar
    margin = visual_margin(settings)

    base_w = request.viewport.width - margin.left - margin.right - legend.width - CATEGORY_AXIS_GUTTER
    base_h = request.viewport.height - margin.top - margin.bottom - legend.height - VALUE_AXIS_GUTTER
    # The value domain covers every point so it does not jump while scrolling.
    value_domain = calculate_value_domain(points, val_settings)
    cat_title = title_thickness(
        metrics,
        cat_settings.font_family,
        cat_settings.title_font_size,
        show=cat_settings.show and cat_settings.show_title,
    )
    value_title = title_thickness(
        metrics,
        val_settings.font_family,
        val_settings.title_font_size,
        show=val_settings.show and val_settings.show_title,
    )

    def frame_for(cat_w: float) -> _Frame:
        provisional_w = max(1.0, base_w - cat_w)
        value_h = value_axis_height(
            value_axis_ticks(_value_axis(value_domain, provisional_w), val_settings, metrics, provisional_w),
            value_title,
        )
        plot_h = max(1.0, base_h - value_h)
        window = ScrollWindow.from_points(
            points,
            window_size=window_size_for(plot_h, cat_settings.min_category_thickness),
            state=request.scroll,
            enabled=not continuous,
        )
        scroll_w = settings.scroll.thickness if window.needs_scrollbar else 0.0
        plot_w = max(1.0, provisional_w - scroll_w)
        visible = tuple(window.visible_points(points))

        thickness = requested_bar_thickness(
            visible,
            cat_settings,
            plot_h,
            continuous=continuous,
            custom_range=cat_settings.range_mode == "custom",
        )
        category_domain = calculate_category_domain(visible, cat_settings, continuous=continuous)
        category_axis = Axis(
            domain=category_domain,
            scale=build_category_scale(
                category_domain,
                plot_h,
                continuous=continuous,
                padding=0.0 if continuous else cat_settings.inner_padding / 100.0,
            ),
            mode="continuous" if continuous else "categorical",
            is_scalar=scalar,
        )
        value_axis = _value_axis(value_domain, plot_w)
        return _Frame(
            plot_size=Size(width=plot_w, height=plot_h),
            axes=AxisPair(category=category_axis, value=value_axis),
            category_ticks=category_axis_ticks(category_axis, cat_settings, metrics, plot_h),
            value_ticks=value_axis_ticks(value_axis, val_settings, metrics, plot_w),
            value_axis_height=value_h,
            thickness=thickness,
            window=window,
            visible=visible,
        )

    cat_w = 0.0
    used_w = cat_w
    converged = False
    passes = 0
    for passes in range(1, MAX_LAYOUT_PASSES + 1):
        used_w = cat_w
        frame = frame_for(used_w)
        # The cap is a share of the width available to plot and axis together.
        limit = max_category_axis_width(frame.plot_size.width + cat_w, cat_settings.maximum_size)
        measured = category_axis_width(frame.category_ticks, cat_title, max_width=limit + cat_title)
        if abs(measured - cat_w) <= MARGIN_TOLERANCE_PX:
            converged = True
            break
        cat_w = measured
    if not converged:
        LOGGER.debug(
            "category axis margin did not settle after %d passes; keeping %.1fpx",
            MAX_LAYOUT_PASSES,
            used_w,
        )

    axes = frame.axes
    bars = calculate_bar_geometry(
        frame.visible,
        axes,
        frame.thickness,
        category_range=custom_category_range(cat_settings),
    )
    laid_out = calculate_marks(bars, axes)
    laid_out = place_labels(
        laid_out,
        settings.labels,
        metrics,
        frame.plot_size.width,
        request.legend_present,
        request.position_shift,
    )

    legend_left = legend.width if settings.legend.position == "left" else 0.0
    legend_top = legend.height if settings.legend.position == "top" else 0.0
    right_axis = cat_settings.show and cat_settings.position == "right"
    plot = Rect(
        x=margin.left + legend_left + (0.0 if right_axis else used_w + CATEGORY_AXIS_GUTTER),
        y=margin.top + legend_top,
        width=frame.plot_size.width,
        height=frame.plot_size.height,
    )
    chart = ChartLayout(
        plot=plot,
        margin=margin,
        category_axis_width=used_w,
        value_axis_height=frame.value_axis_height,
        axes=axes,
        category_ticks=frame.category_ticks,
        value_ticks=frame.value_ticks,
        thickness=frame.thickness,
        points=tuple(laid_out),
        passes=passes,
        converged=converged,
    )
    return chart, frame.window


def _value_axis(domain: tuple[float, float], width: float) -> Axis:
    return Axis(domain=domain, scale=build_value_scale(domain, width), mode="continuous", is_scalar=True)


class BarChartLayoutEngine:
    """Holds the inputs of the latest update and re-runs the pipeline on resize or scroll.

    Every call replaces the previous result; nothing is queued.
    """

    def __init__(self, metrics: TextMetrics | None = None) -> None:
        self._metrics = metrics or PillowTextMetrics()
        self._request: LayoutRequest | None = None
        self._result: LayoutResult | None = None

    @property
    def last_result(self) -> LayoutResult | None:
        return self._result

    @property
    def scroll_state(self) -> ScrollState:
        return self._result.scroll if self._result is not None else ScrollState()

    def update(
        self,
        points: Sequence[DataPoint],
        viewport: Size,
        settings: Settings | Mapping[str, Any] | None = None,
        *,
        legend_size: Size = Size(0.0, 0.0),
        legend_present: bool = False,
        position_shift: PositionShift | None = None,
    ) -> LayoutResult:
        if settings is None:
            settings = Settings()
        elif not isinstance(settings, Settings):
            settings = Settings.from_mapping(settings)
        request = LayoutRequest(
            points=tuple(points),
            viewport=viewport,
            settings=settings,
            metrics=self._metrics,
            scroll=self._result.scroll if self._result is not None else None,
            legend_size=legend_size,
            legend_present=legend_present,
            position_shift=position_shift,
        )
        return self._run(request)

    def resize(self, viewport: Size) -> LayoutResult:
        if self._request is None:
            raise RuntimeError("resize() called before update()")
        return self._run(replace(self._request, viewport=viewport, scroll=self.scroll_state))

    def scroll_by(self, delta: int) -> LayoutResult:
        if self._request is None or self._result is None:
            raise RuntimeError("scroll_by() called before update()")
        if not self._result.scrollbars.vertical:
            return self._result
        window = ScrollWindow.from_state(distinct_categories(self._request.points), self._result.scroll)
        window.scroll_by(delta)
        return self._run(replace(self._request, scroll=window.state))

    def _run(self, request: LayoutRequest) -> LayoutResult:
        self._request = request
        self._result = layout_chart(request)
        LOGGER.debug(
            "layout mode=%s points=%d scroll=%s",
            self._result.mode,
            len(self._result.points),
            self._result.scroll,
        )
        return self._result
