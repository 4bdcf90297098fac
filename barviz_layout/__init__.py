from barviz_layout.adapters import points_from_rows
from barviz_layout.errors import ChartDataError, SettingsError
from barviz_layout.layout import (
    BarChartLayoutEngine,
    ChartLayout,
    LayoutRequest,
    LayoutResult,
    ScrollbarFlags,
    layout_chart,
)
from barviz_layout.model import DataPoint, Line, Margin, Rect, Size, fill_opacity
from barviz_layout.scroll import ScrollState, ScrollWindow
from barviz_layout.settings import Settings
from barviz_layout.small_multiple import Cell, SmallMultipleLayout
from barviz_layout.text_metrics import PillowTextMetrics, TextMetrics, TextSize

__all__ = [
    "BarChartLayoutEngine",
    "Cell",
    "ChartDataError",
    "ChartLayout",
    "DataPoint",
    "LayoutRequest",
    "LayoutResult",
    "Line",
    "Margin",
    "PillowTextMetrics",
    "Rect",
    "ScrollState",
    "ScrollWindow",
    "ScrollbarFlags",
    "Settings",
    "SettingsError",
    "Size",
    "SmallMultipleLayout",
    "TextMetrics",
    "TextSize",
    "fill_opacity",
    "layout_chart",
    "points_from_rows",
]
