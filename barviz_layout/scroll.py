from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import math

from barviz_layout.model import DataPoint, distinct_categories


@dataclass(frozen=True)
class ScrollState:
    offset: int = 0
    window_size: int = 0


def window_size_for(plot_height: float, min_thickness: float) -> int:
    """Number of categories that fit at `min_thickness` each; always at least one."""
    if min_thickness <= 0 or not math.isfinite(plot_height):
        return 1
    return max(1, int(math.floor(max(0.0, plot_height) / min_thickness)))


@dataclass
class ScrollWindow:
    """Contiguous window over the ordered distinct categories.

    A disabled window always shows every category.
    """

    categories: tuple[Any, ...] = ()
    window_size: int = 0
    offset: int = 0
    enabled: bool = True
    _index: dict[Any, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.window_size < 0:
            raise ValueError("window_size must be >= 0")
        self.categories = tuple(self.categories)
        self._index = {c: i for i, c in enumerate(self.categories)}
        self.offset = self._clamp(self.offset)

    @classmethod
    def from_points(
        cls,
        points: Sequence[DataPoint],
        *,
        window_size: int,
        state: ScrollState | None = None,
        enabled: bool = True,
    ) -> "ScrollWindow":
        offset = state.offset if state is not None else 0
        return cls(categories=tuple(distinct_categories(points)), window_size=window_size, offset=offset, enabled=enabled)

    @classmethod
    def from_state(cls, categories: Sequence[Any], state: ScrollState, *, enabled: bool = True) -> "ScrollWindow":
        return cls(categories=tuple(categories), window_size=state.window_size, offset=state.offset, enabled=enabled)

    @property
    def max_offset(self) -> int:
        return max(0, len(self.categories) - self.window_size)

    @property
    def needs_scrollbar(self) -> bool:
        return self.enabled and self.window_size > 0 and len(self.categories) > self.window_size

    @property
    def state(self) -> ScrollState:
        return ScrollState(offset=self.offset, window_size=self.window_size)

    def resize(self, window_size: int) -> None:
        if window_size < 0:
            raise ValueError("window_size must be >= 0")
        self.window_size = int(window_size)
        self.offset = self._clamp(self.offset)

    def scroll_by(self, delta: int) -> ScrollState:
        self.offset = self._clamp(self.offset + int(delta))
        return self.state

    def scroll_to(self, offset: int) -> ScrollState:
        self.offset = self._clamp(int(offset))
        return self.state

    def visible_categories(self) -> tuple[Any, ...]:
        if not self.needs_scrollbar:
            return self.categories
        return self.categories[self.offset : self.offset + self.window_size]

    def visible_points(self, points: Sequence[DataPoint]) -> list[DataPoint]:
        if not self.needs_scrollbar:
            return list(points)
        lo, hi = self.offset, self.offset + self.window_size
        return [p for p in points if lo <= self._index.get(p.category, -1) < hi]

    def _clamp(self, offset: int) -> int:
        return max(0, min(self.max_offset, int(offset)))
