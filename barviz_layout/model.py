from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Sequence

import math
import numbers


DIMMED_OPACITY = 0.4
DEFAULT_OPACITY = 1.0


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Margin:
    top: float
    bottom: float
    left: float
    right: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_y(self) -> float:
        return self.y + self.height * 0.5

    def overlaps(self, other: "Rect", *, margin_x: float = 0.0, margin_y: float = 0.0) -> bool:
        """Axis-aligned overlap test with `other` inflated by the margins on its far edges.

        The test is intentionally asymmetric: a rectangle placed up to `margin_x`
        pixels right of `other` still counts as overlapping.
        """
        return (
            self.x < other.x + other.width + margin_x
            and self.x + self.width > other.x + margin_x
            and self.y < other.y + other.height + margin_y
            and self.y + self.height > other.y + margin_y
        )

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class DataPoint:
    """One bar segment.

    Points are frozen; every layout stage hands back updated copies so the
    caller's input list is never touched.
    """

    category: Any
    value: float
    shift_value: float = 0.0
    series: Any = None
    score: float | None = None
    range: tuple[float, float] | None = None
    row_key: Any = None
    column_key: Any = None
    identity: Any = None
    selected: bool = False
    highlight: bool = False
    bar_rect: Rect | None = None
    label_rect: Rect | None = None
    label_text: str | None = None
    label_background: Rect | None = None
    score_line: Line | None = None
    range_line: Line | None = None

    @property
    def stacked_end(self) -> float:
        return self.shift_value + self.value

    @property
    def span(self) -> tuple[float, float]:
        end = self.stacked_end
        return (min(self.shift_value, end), max(self.shift_value, end))

    @property
    def cell_key(self) -> tuple[Any, Any]:
        return (self.row_key, self.column_key)


def distinct(values: Iterable[Hashable]) -> list[Any]:
    """Distinct values in order of first appearance."""
    return list(dict.fromkeys(values))


def distinct_categories(points: Sequence[DataPoint]) -> list[Any]:
    return distinct(p.category for p in points)


def is_scalar_category(categories: Sequence[Any]) -> bool:
    if not categories:
        return False
    for value in categories:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            return False
        if not math.isfinite(float(value)):
            return False
    return True


def is_small_multiple(points: Sequence[DataPoint]) -> bool:
    return any(p.row_key is not None or p.column_key is not None for p in points)


def fill_opacity(point: DataPoint, *, has_selection: bool, has_highlight: bool) -> float:
    dimmed_by_highlight = has_highlight and not point.selected and not point.highlight
    dimmed_by_selection = has_selection and not point.highlight and not point.selected
    if dimmed_by_highlight or dimmed_by_selection:
        return DIMMED_OPACITY
    return DEFAULT_OPACITY
