from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import math

from barviz_layout.axis_metrics import (
    VALUE_AXIS_TICK_PAD,
    AxisTicks,
    category_axis_ticks,
    max_category_axis_width,
    value_axis_ticks,
)
from barviz_layout.bars import (
    calculate_bar_geometry,
    calculate_marks,
    custom_category_range,
    requested_bar_thickness,
)
from barviz_layout.domains import AxesDomains, calculate_axes_domains
from barviz_layout.labels import PositionShift, place_labels
from barviz_layout.model import DataPoint, Line, Rect, Size, distinct, is_scalar_category
from barviz_layout.scales import Axis, AxisPair, build_category_scale, build_value_scale, format_tick
from barviz_layout.settings import Settings, SmallMultipleSettings
from barviz_layout.text_metrics import TextMetrics


CELL_GAP = 10.0
SCROLL_TRACK_HEIGHT = 23.0
SCROLL_TRACK_WIDTH = 20.0
ROW_TITLE_SPACE = 120.0
FLOW_TITLE_EXTRA_SPACE = 15.0
CELL_MARGIN_LEFT = 10.0
COLUMN_TITLE_INSET = 10.0


@dataclass(frozen=True)
class GridShape:
    rows: int
    columns: int
    rows_in_flow: int = 1


@dataclass(frozen=True)
class CellSizing:
    width: float
    height: float
    scroll_horizontal: bool
    scroll_vertical: bool


@dataclass(frozen=True)
class TitleAnchor:
    """Centre point of a row or column title; `max_width` is the truncation width."""

    text: str
    x: float
    y: float
    max_width: float


@dataclass(frozen=True)
class Cell:
    row_key: Any
    column_key: Any
    row_index: int
    column_index: int
    bounds: Rect
    plot: Rect
    points: tuple[DataPoint, ...]
    axes: AxisPair
    category_ticks: AxisTicks
    value_ticks: AxisTicks

    @property
    def origin(self) -> tuple[float, float]:
        return (self.bounds.x, self.bounds.y)

    @property
    def size(self) -> Size:
        return Size(width=self.bounds.width, height=self.bounds.height)


@dataclass(frozen=True)
class SmallMultipleLayout:
    cells: tuple[Cell, ...]
    shape: GridShape
    cell_size: CellSizing
    left_space: float
    top_space: float
    content_size: Size
    row_titles: tuple[TitleAnchor, ...]
    column_titles: tuple[TitleAnchor, ...]
    separators: tuple[Line, ...]

    @property
    def points(self) -> list[DataPoint]:
        return [p for cell in self.cells for p in cell.points]


def grid_shape(row_count: int, column_count: int, settings: SmallMultipleSettings) -> GridShape:
    """Rows and columns of cells; flow mode wraps column keys into bands of `max_columns`."""
    row_count = max(1, row_count)
    column_count = max(1, column_count)
    if settings.layout_mode == "grid":
        return GridShape(rows=row_count, columns=column_count, rows_in_flow=1)
    rows_in_flow = int(math.ceil(column_count / settings.max_columns))
    return GridShape(
        rows=rows_in_flow * row_count,
        columns=min(column_count, settings.max_columns),
        rows_in_flow=rows_in_flow,
    )


def calculate_cell_size(
    viewport: Size,
    shape: GridShape,
    settings: SmallMultipleSettings,
    *,
    left_space: float,
    top_space: float,
    legend: Size = Size(0.0, 0.0),
) -> CellSizing:
    """Cell size for the whole grid.

    The scroll tracks are reserved up front and handed back to the cells on an
    axis that does not need scrolling. A dimension below its minimum is replaced
    by the minimum and flags that axis as scrollable.
    """
    rows, columns = shape.rows, shape.columns
    client_w = viewport.width - left_space - SCROLL_TRACK_WIDTH - legend.width
    if settings.layout_mode == "grid":
        client_h = viewport.height - top_space - SCROLL_TRACK_HEIGHT - legend.height
        height = (client_h - CELL_GAP * rows) / rows
    else:
        client_h = viewport.height - SCROLL_TRACK_HEIGHT - legend.height
        height = (client_h - CELL_GAP * rows - top_space * rows) / rows
    width = (client_w - CELL_GAP * columns) / columns

    scroll_vertical = height < settings.min_cell_height - SCROLL_TRACK_WIDTH / rows
    scroll_horizontal = width < settings.min_cell_width - SCROLL_TRACK_HEIGHT / columns
    if not scroll_vertical:
        width += SCROLL_TRACK_HEIGHT / columns
    if not scroll_horizontal:
        height += SCROLL_TRACK_WIDTH / rows
    return CellSizing(
        width=settings.min_cell_width if scroll_horizontal else width,
        height=settings.min_cell_height if scroll_vertical else height,
        scroll_horizontal=scroll_horizontal,
        scroll_vertical=scroll_vertical,
    )


def cell_origin(
    row_index: int,
    column_index: int,
    sizing: CellSizing,
    shape: GridShape,
    settings: SmallMultipleSettings,
    *,
    left_space: float,
    top_space: float,
) -> tuple[float, float]:
    w, h = sizing.width, sizing.height
    if settings.layout_mode == "grid":
        left_move = CELL_GAP / 2 + column_index * w + CELL_GAP * column_index
        top_move = top_space + row_index * h + CELL_GAP * row_index
    else:
        xp = column_index % settings.max_columns
        yp = column_index // settings.max_columns + row_index * shape.rows_in_flow
        left_move = xp * w + CELL_GAP * xp
        top_move = yp * h + CELL_GAP * yp + top_space * yp + CELL_GAP / 2
    return (left_space + left_move, top_move + top_space)


def partition_viewport(
    points: Sequence[DataPoint],
    settings: Settings,
    viewport: Size,
    metrics: TextMetrics,
    *,
    legend: Size = Size(0.0, 0.0),
    legend_present: bool = False,
    position_shift: PositionShift | None = None,
) -> SmallMultipleLayout:
    """Split the viewport into one cell per (row key, column key) and lay out each cell.

    Cells are ordered row by row, then column by column, in first-appearance
    order of the keys. Every point lands in exactly one cell.
    """
    sm = settings.small_multiple
    row_keys = distinct(p.row_key for p in points) or [None]
    column_keys = distinct(p.column_key for p in points) or [None]
    categories = distinct(p.category for p in points)

    shape = grid_shape(len(row_keys), len(column_keys), sm)
    left_space = 0.0 if row_keys == [None] or not sm.show_chart_title else ROW_TITLE_SPACE
    top_space = _top_space(sm, metrics)
    sizing = calculate_cell_size(viewport, shape, sm, left_space=left_space, top_space=top_space, legend=legend)

    scalar = is_scalar_category(categories)
    continuous = settings.category_axis.axis_type == "continuous" and scalar
    y_axis_size = min(
        _category_label_width(categories, settings, metrics, scalar=continuous),
        max_category_axis_width(sizing.width, settings.category_axis.maximum_size),
    )
    x_axis_size = _value_axis_size(settings, metrics)
    plot_size = Size(
        width=max(1.0, sizing.width - y_axis_size - CELL_GAP * 2),
        height=max(1.0, sizing.height - x_axis_size - CELL_GAP),
    )

    shared = calculate_axes_domains(points, settings, continuous=continuous)
    category_separate = settings.category_axis.range_mode == "separate"
    value_separate = settings.value_axis.range_mode == "separate"
    right_axis = settings.category_axis.show and settings.category_axis.position == "right"

    by_cell: dict[tuple[Any, Any], list[DataPoint]] = {}
    for point in points:
        by_cell.setdefault(point.cell_key, []).append(point)

    cells: list[Cell] = []
    column_titles: list[TitleAnchor] = []
    for i, row_key in enumerate(row_keys):
        for j, column_key in enumerate(column_keys):
            subset = by_cell.get((row_key, column_key), [])
            domains = shared
            if subset and (category_separate or value_separate):
                own = calculate_axes_domains(subset, settings, continuous=continuous)
                domains = AxesDomains(
                    category=own.category if category_separate else shared.category,
                    value=own.value if value_separate else shared.value,
                    category_is_continuous=continuous,
                )
            x, y = cell_origin(i, j, sizing, shape, sm, left_space=left_space, top_space=top_space)
            plot = Rect(
                x=x + CELL_MARGIN_LEFT + (0.0 if right_axis else y_axis_size),
                y=y,
                width=plot_size.width,
                height=plot_size.height,
            )
            cells.append(
                _layout_cell(
                    row_key,
                    column_key,
                    (i, j),
                    Rect(x=x, y=y, width=sizing.width, height=sizing.height),
                    plot,
                    subset,
                    domains,
                    settings,
                    metrics,
                    scalar=scalar,
                    legend_present=legend_present,
                    position_shift=position_shift,
                )
            )
            if sm.show_chart_title and sm.layout_mode == "flow" and column_key is not None:
                column_titles.append(
                    TitleAnchor(
                        text=str(column_key),
                        x=x + sizing.width / 2,
                        y=y - top_space + top_space / 2,
                        max_width=sizing.width - COLUMN_TITLE_INSET,
                    )
                )

    if sm.show_chart_title and sm.layout_mode == "grid":
        column_titles = _grid_column_titles(column_keys, sizing, left_space=left_space, top_space=top_space)
    row_titles = _row_titles(row_keys, sizing, shape, sm, left_space=left_space, top_space=top_space)
    separators = _separators(row_keys, column_keys, sizing, shape, sm, left_space=left_space, top_space=top_space)

    return SmallMultipleLayout(
        cells=tuple(cells),
        shape=shape,
        cell_size=sizing,
        left_space=left_space,
        top_space=top_space,
        content_size=_content_size(shape, sizing, sm, left_space=left_space, top_space=top_space),
        row_titles=tuple(row_titles),
        column_titles=tuple(column_titles),
        separators=tuple(separators),
    )


def _layout_cell(
    row_key: Any,
    column_key: Any,
    index: tuple[int, int],
    bounds: Rect,
    plot: Rect,
    subset: Sequence[DataPoint],
    domains: AxesDomains,
    settings: Settings,
    metrics: TextMetrics,
    *,
    scalar: bool,
    legend_present: bool,
    position_shift: PositionShift | None,
) -> Cell:
    continuous = domains.category_is_continuous
    cat_settings = settings.category_axis
    thickness = requested_bar_thickness(
        subset,
        cat_settings,
        plot.height,
        continuous=continuous,
        custom_range=cat_settings.range_mode == "custom",
    )
    category_scale = build_category_scale(
        domains.category if domains.category else (None,),
        plot.height,
        continuous=continuous,
        padding=0.0 if continuous else cat_settings.inner_padding / 100.0,
    )
    axes = AxisPair(
        category=Axis(
            domain=domains.category,
            scale=category_scale,
            mode="continuous" if continuous else "categorical",
            is_scalar=scalar,
        ),
        value=Axis(
            domain=domains.value,
            scale=build_value_scale(domains.value, plot.width),
            mode="continuous",
            is_scalar=True,
        ),
    )
    bars = calculate_bar_geometry(subset, axes, thickness, category_range=custom_category_range(cat_settings))
    laid_out = calculate_marks(bars, axes)
    laid_out = place_labels(
        laid_out,
        settings.labels,
        metrics,
        plot.width,
        legend_present,
        position_shift,
    )
    return Cell(
        row_key=row_key,
        column_key=column_key,
        row_index=index[0],
        column_index=index[1],
        bounds=bounds,
        plot=plot,
        points=tuple(laid_out),
        axes=axes,
        category_ticks=category_axis_ticks(axes.category, cat_settings, metrics, plot.height),
        value_ticks=value_axis_ticks(axes.value, settings.value_axis, metrics, plot.width),
    )


def _top_space(settings: SmallMultipleSettings, metrics: TextMetrics) -> float:
    if not settings.show_chart_title:
        return 0.0
    height = metrics.measure("", settings.font_family, settings.font_size).height
    return height + (FLOW_TITLE_EXTRA_SPACE if settings.layout_mode == "flow" else 0.0)


def _category_label_width(categories: Sequence[Any], settings: Settings, metrics: TextMetrics, *, scalar: bool) -> float:
    axis = settings.category_axis
    if not axis.show or not categories:
        return 0.0
    labels = [format_tick(float(c)) if scalar else str(c) for c in categories]
    return max(metrics.measure(lbl, axis.font_family, axis.font_size).width for lbl in labels)


def _value_axis_size(settings: Settings, metrics: TextMetrics) -> float:
    axis = settings.value_axis
    if not axis.show:
        return 0.0
    return metrics.measure("", axis.font_family, axis.font_size).height + VALUE_AXIS_TICK_PAD


def _grid_column_titles(
    column_keys: Sequence[Any], sizing: CellSizing, *, left_space: float, top_space: float
) -> list[TitleAnchor]:
    w = sizing.width
    return [
        TitleAnchor(
            text=str(key),
            x=left_space + j * w + w / 2 + CELL_GAP * j,
            y=top_space / 2,
            max_width=w - COLUMN_TITLE_INSET,
        )
        for j, key in enumerate(column_keys)
        if key is not None
    ]


def _row_titles(
    row_keys: Sequence[Any],
    sizing: CellSizing,
    shape: GridShape,
    settings: SmallMultipleSettings,
    *,
    left_space: float,
    top_space: float,
) -> list[TitleAnchor]:
    if not settings.show_chart_title or left_space <= 0:
        return []
    h, rif = sizing.height, shape.rows_in_flow
    out: list[TitleAnchor] = []
    for i, key in enumerate(row_keys):
        if key is None:
            continue
        if settings.layout_mode == "flow":
            previous = i * rif * h + CELL_GAP * i * rif + top_space * rif * i
            y = previous + rif * h / 2 + top_space
        else:
            y = i * h + h / 2 + top_space * 2 + CELL_GAP * i
        out.append(TitleAnchor(text=str(key), x=left_space / 2, y=y, max_width=ROW_TITLE_SPACE))
    return out


def _separators(
    row_keys: Sequence[Any],
    column_keys: Sequence[Any],
    sizing: CellSizing,
    shape: GridShape,
    settings: SmallMultipleSettings,
    *,
    left_space: float,
    top_space: float,
) -> list[Line]:
    if not settings.show_separators:
        return []
    w, h, rif = sizing.width, sizing.height, shape.rows_in_flow
    right = left_space + len(column_keys) * w + CELL_GAP * len(column_keys)
    out: list[Line] = []
    for i in range(1, len(row_keys)):
        if settings.layout_mode == "grid":
            y = top_space * 2 + i * h + CELL_GAP * (i - 1)
        else:
            y = top_space * i * rif + i * h * rif + CELL_GAP * (i * rif - 1)
        out.append(Line(x1=0.0, y1=y, x2=right, y2=y))
    if settings.layout_mode == "grid":
        bottom = top_space + len(row_keys) * h + CELL_GAP * len(row_keys)
        for j in range(1, len(column_keys)):
            x = left_space + j * w + CELL_GAP * j
            out.append(Line(x1=x, y1=0.0, x2=x, y2=bottom))
    return out


def _content_size(
    shape: GridShape,
    sizing: CellSizing,
    settings: SmallMultipleSettings,
    *,
    left_space: float,
    top_space: float,
) -> Size:
    rows, columns = shape.rows, shape.columns
    width = left_space + columns * sizing.width + CELL_GAP * columns
    if settings.layout_mode == "grid":
        height = top_space + rows * sizing.height + CELL_GAP * rows
    else:
        height = top_space * rows + rows * sizing.height + CELL_GAP * (rows - 1)
    return Size(width=width, height=height)
