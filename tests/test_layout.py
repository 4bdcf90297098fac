from __future__ import annotations

from dataclasses import replace
import unittest

from fakes import FixedTextMetrics, GrowingTextMetrics

from barviz_layout.layout import (
    CATEGORY_AXIS_GUTTER,
    MAX_LAYOUT_PASSES,
    BarChartLayoutEngine,
    LayoutRequest,
    layout_chart,
    legend_reservation,
    visual_margin,
)
from barviz_layout.model import DataPoint, Margin, Size
from barviz_layout.scroll import ScrollState
from barviz_layout.settings import CategoryAxisSettings, LegendSettings, Settings


def _named_points(count: int) -> list[DataPoint]:
    return [DataPoint(category=f"cat{i:02d}", value=float(i + 1)) for i in range(count)]


class LayoutChartTests(unittest.TestCase):
    def setUp(self) -> None:
        self.metrics = FixedTextMetrics(char_width=6.0, line_height=12.0)

    def _request(self, points, viewport=Size(400.0, 300.0), **kwargs) -> LayoutRequest:
        return LayoutRequest(points=tuple(points), viewport=viewport, metrics=self.metrics, **kwargs)

    def test_empty_input_yields_empty_layout(self) -> None:
        result = layout_chart(self._request([]))
        self.assertTrue(result.is_empty)
        self.assertEqual(result.points, ())
        self.assertIsNone(result.chart)

    def test_same_request_gives_same_layout(self) -> None:
        request = self._request(_named_points(8))
        self.assertEqual(layout_chart(request), layout_chart(request))

    def test_input_points_are_not_mutated(self) -> None:
        points = _named_points(3)
        layout_chart(self._request(points))
        self.assertTrue(all(p.bar_rect is None for p in points))

    def test_bars_stay_inside_plot(self) -> None:
        result = layout_chart(self._request(_named_points(8)))
        plot = result.chart.plot
        for point in result.points:
            bar = point.bar_rect
            self.assertGreaterEqual(bar.x, 0.0)
            self.assertGreaterEqual(bar.y, 0.0)
            self.assertLessEqual(bar.right, plot.width + 1e-6)
            self.assertLessEqual(bar.bottom, plot.height + 1e-6)

    def test_many_categories_open_a_scroll_window(self) -> None:
        result = layout_chart(self._request(_named_points(50)))
        chart = result.chart
        self.assertEqual(result.mode, "chart")
        self.assertTrue(result.scrollbars.vertical)
        self.assertEqual(result.scroll.window_size, 12)
        self.assertEqual(result.scroll.offset, 0)
        self.assertEqual([p.category for p in result.points], [f"cat{i:02d}" for i in range(12)])
        self.assertEqual(chart.plot.height, 248.0)
        self.assertEqual(chart.plot.width, 311.0)
        self.assertEqual(chart.plot.x, 62.0)
        self.assertEqual(chart.category_axis_width, 42.0)

    def test_scroll_state_selects_window(self) -> None:
        result = layout_chart(self._request(_named_points(50), scroll=ScrollState(offset=45, window_size=12)))
        self.assertEqual(result.scroll.offset, 38)
        self.assertEqual(result.points[0].category, "cat38")

    def test_scalar_axis_never_scrolls(self) -> None:
        points = [DataPoint(category=float(i), value=1.0) for i in range(50)]
        result = layout_chart(self._request(points))
        self.assertFalse(result.scrollbars.vertical)
        self.assertEqual(len(result.points), 50)

    def test_margin_settles_on_second_pass(self) -> None:
        result = layout_chart(self._request(_named_points(4)))
        self.assertTrue(result.chart.converged)
        self.assertEqual(result.chart.passes, 2)

    def test_hidden_category_axis_settles_immediately(self) -> None:
        settings = Settings(category_axis=CategoryAxisSettings(show=False))
        result = layout_chart(self._request(_named_points(4), settings=settings))
        self.assertEqual(result.chart.passes, 1)
        self.assertEqual(result.chart.category_axis_width, 0.0)
        self.assertEqual(result.chart.plot.x, 30.0)

    def test_unsettled_margin_keeps_last_pass(self) -> None:
        request = LayoutRequest(
            points=tuple(_named_points(3)),
            viewport=Size(800.0, 300.0),
            metrics=GrowingTextMetrics(),
        )
        with self.assertLogs("barviz_layout.layout", level="DEBUG") as logs:
            chart = layout_chart(request).chart
        self.assertEqual(chart.passes, MAX_LAYOUT_PASSES)
        self.assertFalse(chart.converged)
        self.assertEqual(chart.plot.x, chart.margin.left + chart.category_axis_width + CATEGORY_AXIS_GUTTER)
        self.assertTrue(any("did not settle" in line for line in logs.output))

    def test_scalar_category_domain_spans_plot_height(self) -> None:
        points = [DataPoint(category=c, value=1.0) for c in (0.0, 5.0, 10.0)]
        chart = layout_chart(self._request(points, viewport=Size(600.0, 400.0))).chart
        scale = chart.axes.category.scale
        self.assertEqual(scale(0.0), 0.0)
        self.assertEqual(scale(10.0), chart.plot.height)
        for point in chart.points:
            self.assertGreaterEqual(point.bar_rect.y, 0.0)
            self.assertLessEqual(point.bar_rect.bottom, chart.plot.height)

    def test_custom_category_end_hides_bar_at_end(self) -> None:
        settings = Settings(category_axis=CategoryAxisSettings(range_mode="custom", start=0.0, end=10.0))
        points = [DataPoint(category=c, value=1.0) for c in (0.0, 5.0, 10.0)]
        chart = layout_chart(self._request(points, settings=settings)).chart
        self.assertEqual([p.bar_rect.height > 0 for p in chart.points], [True, True, False])

    def test_long_labels_are_capped(self) -> None:
        points = [DataPoint(category="x" * 100, value=1.0)]
        result = layout_chart(self._request(points, viewport=Size(800.0, 300.0)))
        self.assertEqual(result.chart.category_axis_width, 203.25)
        self.assertEqual(result.chart.plot.width, 561.75)
        self.assertTrue(result.chart.converged)

    def test_top_legend_takes_height(self) -> None:
        points = _named_points(3)
        plain = layout_chart(self._request(points)).chart.plot
        legend = layout_chart(self._request(points, legend_size=Size(120.0, 40.0), legend_present=True)).chart.plot
        self.assertEqual(plain.height - legend.height, 40.0)
        self.assertEqual(legend.y, plain.y + 40.0)
        self.assertEqual(legend.width, plain.width)

    def test_row_keys_select_small_multiples(self) -> None:
        points = [replace(p, row_key="north" if i % 2 else "south") for i, p in enumerate(_named_points(6))]
        result = layout_chart(self._request(points, viewport=Size(1000.0, 800.0)))
        self.assertEqual(result.mode, "small_multiple")
        self.assertIsNone(result.chart)
        self.assertEqual(len(result.small_multiple.cells), 2)
        self.assertEqual(len(result.points), 6)


class HelperTests(unittest.TestCase):
    def test_legend_reservation_by_side(self) -> None:
        size = Size(80.0, 30.0)
        self.assertEqual(legend_reservation(size, LegendSettings(position="left"), present=True), Size(80.0, 0.0))
        self.assertEqual(legend_reservation(size, LegendSettings(position="bottom"), present=True), Size(0.0, 30.0))
        self.assertEqual(legend_reservation(size, LegendSettings(), present=False), Size(0.0, 0.0))
        self.assertEqual(legend_reservation(size, LegendSettings(show=False), present=True), Size(0.0, 0.0))

    def test_visual_margin_widens_side_without_axis(self) -> None:
        self.assertEqual(visual_margin(Settings()), Margin(top=5.0, bottom=5.0, left=5.0, right=15.0))
        right = Settings(category_axis=CategoryAxisSettings(position="right"))
        self.assertEqual(visual_margin(right), Margin(top=5.0, bottom=5.0, left=15.0, right=5.0))


class EngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = BarChartLayoutEngine(metrics=FixedTextMetrics())

    def test_resize_and_scroll_require_update(self) -> None:
        with self.assertRaises(RuntimeError):
            self.engine.resize(Size(100.0, 100.0))
        with self.assertRaises(RuntimeError):
            self.engine.scroll_by(1)

    def test_scroll_by_moves_window(self) -> None:
        self.engine.update(_named_points(50), Size(400.0, 300.0))
        result = self.engine.scroll_by(5)
        self.assertEqual(result.scroll.offset, 5)
        self.assertEqual(result.points[0].category, "cat05")
        self.assertEqual(self.engine.scroll_by(1000).scroll.offset, 38)

    def test_scroll_without_scrollbar_is_a_no_op(self) -> None:
        first = self.engine.update(_named_points(3), Size(400.0, 300.0))
        self.assertIs(self.engine.scroll_by(3), first)

    def test_update_keeps_scroll_position(self) -> None:
        self.engine.update(_named_points(50), Size(400.0, 300.0))
        self.engine.scroll_by(7)
        result = self.engine.update(_named_points(50), Size(400.0, 300.0))
        self.assertEqual(result.scroll.offset, 7)

    def test_settings_mapping_is_accepted(self) -> None:
        result = self.engine.update(_named_points(3), Size(400.0, 300.0), {"categoryAxis": {"show": False}})
        self.assertFalse(result.settings.category_axis.show)
        self.assertIs(self.engine.last_result, result)

    def test_resize_reruns_with_last_inputs(self) -> None:
        self.engine.update(_named_points(3), Size(400.0, 300.0))
        result = self.engine.resize(Size(600.0, 300.0))
        self.assertEqual(len(result.points), 3)
        self.assertEqual(result.chart.plot.width, 600.0 - 5.0 - 15.0 - 15.0 - 42.0)


if __name__ == "__main__":
    unittest.main()
