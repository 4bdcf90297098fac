from __future__ import annotations

import unittest

from barviz_layout.bars import (
    calculate_bar_geometry,
    calculate_marks,
    custom_category_range,
    requested_bar_thickness,
    resolve_continuous_overlap,
)
from barviz_layout.model import DataPoint, Rect
from barviz_layout.scales import Axis, AxisPair, BandScale, LinearScale
from barviz_layout.settings import CategoryAxisSettings


def _band_axes(categories, value_domain, width, height=100.0, padding=0.0) -> AxisPair:
    return AxisPair(
        category=Axis(
            domain=tuple(categories),
            scale=BandScale(categories=tuple(categories), range=(0.0, height), padding=padding),
            mode="categorical",
            is_scalar=False,
        ),
        value=Axis(
            domain=value_domain,
            scale=LinearScale(domain=value_domain, range=(0.0, width)),
            mode="continuous",
            is_scalar=True,
        ),
    )


def _continuous_axes(category_domain=(0.0, 100.0), value_domain=(0.0, 100.0), width=100.0) -> AxisPair:
    # Identity mapping on the category axis: pixel y == category value.
    return AxisPair(
        category=Axis(
            domain=category_domain,
            scale=LinearScale(domain=(0.0, 100.0), range=(0.0, 100.0)),
            mode="continuous",
            is_scalar=True,
        ),
        value=Axis(
            domain=value_domain,
            scale=LinearScale(domain=value_domain, range=(0.0, width)),
            mode="continuous",
            is_scalar=True,
        ),
    )


class BarGeometryTests(unittest.TestCase):
    def test_half_value_spans_half_the_plot(self) -> None:
        axes = _band_axes(("a",), (0.0, 100.0), 500.0)
        (point,) = calculate_bar_geometry([DataPoint(category="a", value=50.0)], axes, 80.0)
        self.assertEqual(point.bar_rect, Rect(x=0.0, y=0.0, width=250.0, height=100.0))

    def test_custom_end_stops_bar_at_domain_edge(self) -> None:
        axes = _band_axes(("a",), (0.0, 80.0), 400.0)
        (point,) = calculate_bar_geometry([DataPoint(category="a", value=100.0)], axes, 80.0)
        self.assertEqual(point.bar_rect.x, 0.0)
        self.assertEqual(point.bar_rect.right, axes.value.scale(80.0))

    def test_span_outside_domain_has_zero_width(self) -> None:
        axes = _band_axes(("a", "b"), (0.0, 100.0), 500.0)
        points = [
            DataPoint(category="a", value=10.0, shift_value=150.0),
            DataPoint(category="b", value=20.0, shift_value=-50.0),
        ]
        out = calculate_bar_geometry(points, axes, 40.0)
        self.assertEqual([p.bar_rect.width for p in out], [0.0, 0.0])

    def test_tiny_nonzero_value_gets_one_pixel(self) -> None:
        axes = _band_axes(("a", "b"), (0.0, 1e6), 100.0)
        out = calculate_bar_geometry(
            [DataPoint(category="a", value=1.0), DataPoint(category="b", value=0.0)],
            axes,
            40.0,
        )
        self.assertEqual(out[0].bar_rect.width, 1.0)
        self.assertEqual(out[1].bar_rect.width, 0.0)

    def test_negative_value_extends_left_of_zero(self) -> None:
        axes = _band_axes(("a",), (-50.0, 50.0), 100.0)
        (point,) = calculate_bar_geometry([DataPoint(category="a", value=-20.0)], axes, 40.0)
        self.assertAlmostEqual(point.bar_rect.x, 30.0)
        self.assertAlmostEqual(point.bar_rect.width, 20.0)

    def test_band_bars_use_band_width_and_position(self) -> None:
        axes = _band_axes(("a", "b"), (0.0, 10.0), 100.0, height=200.0, padding=0.2)
        out = calculate_bar_geometry(
            [DataPoint(category="a", value=5.0), DataPoint(category="b", value=5.0)],
            axes,
            40.0,
        )
        self.assertAlmostEqual(out[0].bar_rect.y, 10.0)
        self.assertAlmostEqual(out[1].bar_rect.y, 110.0)
        self.assertAlmostEqual(out[1].bar_rect.height, 80.0)

    def test_close_continuous_positions_clamp_to_floor(self) -> None:
        axes = _continuous_axes()
        points = [DataPoint(category=10.0, value=5.0), DataPoint(category=10.3, value=5.0)]
        out = calculate_bar_geometry(points, axes, 5.0)
        for point in out:
            self.assertAlmostEqual(point.bar_rect.height, 1.5)
        self.assertAlmostEqual(out[0].bar_rect.center_y, 10.0)
        self.assertAlmostEqual(out[1].bar_rect.center_y, 10.3)

    def test_dense_continuous_bars_share_padded_min_distance(self) -> None:
        axes = _continuous_axes()
        points = [DataPoint(category=c, value=5.0) for c in (0.0, 4.0, 8.0)]
        out = calculate_bar_geometry(points, axes, 5.0)
        self.assertEqual({round(p.bar_rect.height, 9) for p in out}, {3.2})

    def test_sparse_continuous_bars_keep_requested_thickness(self) -> None:
        axes = _continuous_axes()
        points = [DataPoint(category=c, value=5.0) for c in (0.0, 50.0)]
        out = calculate_bar_geometry(points, axes, 20.0)
        # Continuous thickness is capped at 5px before the overlap pass.
        self.assertEqual([p.bar_rect.height for p in out], [5.0, 5.0])

    def test_zero_width_continuous_bar_is_hidden(self) -> None:
        axes = _continuous_axes()
        points = [
            DataPoint(category=10.0, value=5.0),
            DataPoint(category=30.0, value=5.0, shift_value=500.0),
        ]
        out = calculate_bar_geometry(points, axes, 5.0)
        self.assertEqual(out[1].bar_rect.width, 0.0)
        self.assertEqual(out[1].bar_rect.height, 0.0)
        self.assertEqual(out[0].bar_rect.height, 5.0)

    def test_category_outside_custom_range_is_hidden(self) -> None:
        axes = _continuous_axes(category_domain=(0.0, 50.0))
        out = calculate_bar_geometry([DataPoint(category=80.0, value=5.0)], axes, 5.0, category_range=(0.0, 50.0))
        self.assertEqual(out[0].bar_rect.height, 0.0)

    def test_custom_range_keeps_start_and_hides_end(self) -> None:
        axes = _continuous_axes(category_domain=(20.0, 60.0))
        points = [DataPoint(category=c, value=5.0) for c in (20.0, 40.0, 60.0)]
        out = calculate_bar_geometry(points, axes, 5.0, category_range=(20.0, 60.0))
        self.assertEqual([p.bar_rect.height for p in out], [5.0, 5.0, 0.0])

    def test_auto_range_keeps_domain_maximum(self) -> None:
        axes = _continuous_axes(category_domain=(20.0, 60.0))
        out = calculate_bar_geometry([DataPoint(category=60.0, value=5.0)], axes, 5.0)
        self.assertEqual(out[0].bar_rect.height, 5.0)

    def test_bars_at_axis_ends_are_shifted_inside(self) -> None:
        axes = _continuous_axes()
        points = [DataPoint(category=c, value=5.0) for c in (0.0, 50.0, 100.0)]
        out = calculate_bar_geometry(points, axes, 5.0)
        self.assertEqual([p.bar_rect.y for p in out], [0.0, 47.5, 95.0])
        self.assertEqual(out[2].bar_rect.bottom, 100.0)

    def test_output_keeps_input_order_and_input_untouched(self) -> None:
        axes = _continuous_axes()
        points = [DataPoint(category=c, value=1.0) for c in (50.0, 10.0, 30.0)]
        out = calculate_bar_geometry(points, axes, 5.0)
        self.assertEqual([p.category for p in out], [50.0, 10.0, 30.0])
        self.assertTrue(all(p.bar_rect is None for p in points))

    def test_geometry_is_never_negative(self) -> None:
        axes = _continuous_axes(value_domain=(-10.0, 10.0))
        points = [DataPoint(category=float(c), value=(-1.0) ** c * c) for c in range(20)]
        for point in calculate_bar_geometry(points, axes, 5.0):
            self.assertGreaterEqual(point.bar_rect.width, 0.0)
            self.assertGreaterEqual(point.bar_rect.height, 0.0)

    def test_empty_input_is_a_no_op(self) -> None:
        self.assertEqual(calculate_bar_geometry([], _continuous_axes(), 5.0), [])
        self.assertEqual(resolve_continuous_overlap([], 5.0), [])


class BarThicknessTests(unittest.TestCase):
    def test_categorical_thickness_applies_inner_padding(self) -> None:
        axis = CategoryAxisSettings(axis_type="categorical")
        points = [DataPoint(category=c, value=1.0) for c in "abcd"]
        self.assertAlmostEqual(requested_bar_thickness(points, axis, 400.0, continuous=False), 80.0)

    def test_categorical_thickness_respects_minimum(self) -> None:
        axis = CategoryAxisSettings(axis_type="categorical")
        points = [DataPoint(category=i, value=1.0) for i in range(100)]
        self.assertAlmostEqual(requested_bar_thickness(points, axis, 400.0, continuous=False), 16.0)

    def test_continuous_thickness_counts_distinct_categories(self) -> None:
        axis = CategoryAxisSettings()
        few = [DataPoint(category=c, value=1.0) for c in (1, 2, 2)]
        many = [DataPoint(category=c, value=1.0) for c in range(5)]
        self.assertAlmostEqual(requested_bar_thickness(few, axis, 375.0, continuous=True), 100.0)
        self.assertAlmostEqual(requested_bar_thickness(many, axis, 500.0, continuous=True), 80.0)

    def test_continuous_custom_range_counts_categories_inside_range(self) -> None:
        axis = CategoryAxisSettings(range_mode="custom", start=2.0, end=4.0)
        points = [DataPoint(category=c, value=1.0) for c in range(1, 7)]
        self.assertAlmostEqual(
            requested_bar_thickness(points, axis, 375.0, continuous=True, custom_range=True),
            100.0,
        )

    def test_custom_range_excludes_end_when_counting(self) -> None:
        axis = CategoryAxisSettings(range_mode="custom", start=0.0, end=5.0)
        points = [DataPoint(category=c, value=1.0) for c in range(10)]
        self.assertAlmostEqual(
            requested_bar_thickness(points, axis, 500.0, continuous=True, custom_range=True),
            80.0,
        )

    def test_custom_category_range_only_in_custom_mode(self) -> None:
        self.assertIsNone(custom_category_range(CategoryAxisSettings(start=1.0, end=2.0)))
        custom = CategoryAxisSettings(range_mode="custom", end=2.0)
        self.assertEqual(custom_category_range(custom), (None, 2.0))


class MarkTests(unittest.TestCase):
    def test_score_and_range_marks_follow_value_scale(self) -> None:
        axes = _band_axes(("a",), (0.0, 100.0), 500.0)
        points = calculate_bar_geometry(
            [DataPoint(category="a", value=60.0, score=50.0, range=(80.0, 20.0))],
            axes,
            40.0,
        )
        (point,) = calculate_marks(points, axes)
        self.assertEqual((point.score_line.x1, point.score_line.x2), (250.0, 250.0))
        self.assertEqual((point.score_line.y1, point.score_line.y2), (0.0, 100.0))
        self.assertEqual((point.range_line.x1, point.range_line.x2), (100.0, 400.0))
        self.assertEqual(point.range_line.y1, 50.0)

    def test_marks_skip_points_without_extras(self) -> None:
        axes = _band_axes(("a",), (0.0, 100.0), 500.0)
        points = calculate_bar_geometry([DataPoint(category="a", value=60.0)], axes, 40.0)
        (point,) = calculate_marks(points, axes)
        self.assertIsNone(point.score_line)
        self.assertIsNone(point.range_line)


if __name__ == "__main__":
    unittest.main()
