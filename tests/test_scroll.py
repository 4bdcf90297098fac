from __future__ import annotations

import unittest

from barviz_layout.model import DataPoint
from barviz_layout.scroll import ScrollState, ScrollWindow, window_size_for


class ScrollWindowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.categories = tuple("abcdefghij")

    def test_window_size_from_min_thickness(self) -> None:
        self.assertEqual(window_size_for(100.0, 20.0), 5)
        self.assertEqual(window_size_for(10.0, 20.0), 1)
        self.assertEqual(window_size_for(-5.0, 20.0), 1)

    def test_scroll_clamps_to_valid_offsets(self) -> None:
        window = ScrollWindow(categories=self.categories, window_size=4)
        self.assertEqual(window.visible_categories(), ("a", "b", "c", "d"))
        self.assertEqual(window.scroll_by(3), ScrollState(offset=3, window_size=4))
        self.assertEqual(window.visible_categories(), ("d", "e", "f", "g"))
        self.assertEqual(window.scroll_by(100).offset, 6)
        self.assertEqual(window.scroll_by(-100).offset, 0)
        self.assertEqual(window.scroll_to(5).offset, 5)

    def test_disabled_window_shows_everything(self) -> None:
        window = ScrollWindow(categories=self.categories, window_size=4, enabled=False)
        self.assertFalse(window.needs_scrollbar)
        self.assertEqual(window.visible_categories(), self.categories)

    def test_window_larger_than_data_needs_no_scrollbar(self) -> None:
        window = ScrollWindow(categories=self.categories, window_size=20, offset=3)
        self.assertFalse(window.needs_scrollbar)
        self.assertEqual(window.offset, 0)

    def test_visible_points_are_contiguous_and_ordered(self) -> None:
        points = [DataPoint(category=c, value=float(i)) for i, c in enumerate("abcabcde")]
        window = ScrollWindow.from_points(points, window_size=2, state=ScrollState(offset=1, window_size=2))
        visible = window.visible_points(points)
        self.assertEqual([p.category for p in visible], ["b", "c", "b", "c"])
        self.assertEqual([p.value for p in visible], [1.0, 2.0, 4.0, 5.0])

    def test_resize_reclamps_offset(self) -> None:
        window = ScrollWindow(categories=self.categories, window_size=2, offset=8)
        window.resize(5)
        self.assertEqual(window.offset, 5)

    def test_round_trip_through_state(self) -> None:
        window = ScrollWindow(categories=self.categories, window_size=3, offset=2)
        again = ScrollWindow.from_state(self.categories, window.state)
        self.assertEqual(again.visible_categories(), window.visible_categories())

    def test_rejects_negative_window(self) -> None:
        with self.assertRaises(ValueError):
            ScrollWindow(categories=self.categories, window_size=-1)


if __name__ == "__main__":
    unittest.main()
