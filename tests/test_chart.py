"""
Tests for the chart geometry engine.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import math
import pytest


class TestDomains:
    """Axis domains."""

    def test_degenerate_x_widened(self):
        from growthtrack.engines.chart import x_domain

        domain = x_domain([5, 5])
        assert (domain.min, domain.max) == (5, 6)

    def test_explicit_x_wins(self):
        from growthtrack.engines.chart import x_domain

        domain = x_domain([0, 100], explicit=(10, 20))
        assert (domain.min, domain.max) == (10, 20)

    def test_zero_y_range(self):
        from growthtrack.engines.chart import y_domain

        domain = y_domain([10, 10])
        assert domain.min == pytest.approx(9.82)
        assert domain.max == pytest.approx(10.18)

    def test_y_padding(self):
        from growthtrack.engines.chart import y_domain

        domain = y_domain([100, 150])
        assert domain.min == pytest.approx(91)
        assert domain.max == pytest.approx(159)


class TestCurveStyle:
    """Percentile curve weights."""

    def test_styles(self):
        from growthtrack.engines.chart import curve_style

        keys = ["3rd", "10th", "50th", "97th"]
        assert curve_style("50th", keys) == "major"
        assert curve_style("3rd", keys) == "mid"
        assert curve_style("97th", keys) == "mid"
        assert curve_style("10th", keys) == "minor"
        assert curve_style("median", keys) == "minor"


class TestEvents:
    """Event deconfliction."""

    def test_two_events_spread(self):
        from growthtrack.engines.chart import deconflict_events
        from growthtrack.models import ChartEvent

        events = deconflict_events([
            ChartEvent(x=12, label="a", category="growth"),
            ChartEvent(x=12, label="b", category="suppression"),
            ChartEvent(x=18, label="c", category="growth"),
        ])
        assert [e.offset for e in events] == [-8, 8, None]

    def test_three_events_left_alone(self):
        from growthtrack.engines.chart import deconflict_events
        from growthtrack.models import ChartEvent

        events = deconflict_events([ChartEvent(x=1, label=str(i), category="growth") for i in range(3)])
        assert [e.offset for e in events] == [None, None, None]

    def test_explicit_offset_kept(self):
        from growthtrack.engines.chart import deconflict_events
        from growthtrack.models import ChartEvent

        events = deconflict_events([
            ChartEvent(x=3, label="a", category="growth", offset=2),
            ChartEvent(x=3, label="b", category="growth"),
        ])
        assert [e.offset for e in events] == [2, 8]


class TestBuildChart:
    """Scene construction."""

    def test_empty_state(self):
        from growthtrack.engines.chart import EMPTY_PLACEHOLDER, build_chart

        scene = build_chart("height", [])
        assert scene.empty
        assert scene.placeholder == EMPTY_PLACEHOLDER
        assert scene.trajectory == []

    def test_only_non_finite_points_is_empty(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [Point(math.nan, 1), Point(2, math.inf)])
        assert scene.empty

    def test_point_mapping(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [Point(0, 10), Point(12, 20)])
        first, last = scene.trajectory
        assert first.x == pytest.approx(52)
        assert last.x == pytest.approx(576)
        # larger values are drawn higher up
        assert last.y < first.y
        assert len(scene.dots) == 2
        assert all(dot.radius == 4 for dot in scene.dots)
        assert len(scene.grid) == 5
        assert scene.grid[0].y == pytest.approx(204)
        assert scene.grid[-1].y == pytest.approx(18)

    def test_single_point(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("weight", [Point(12, 10)])
        assert (scene.x_domain.min, scene.x_domain.max) == (12, 13)
        assert scene.trajectory[0].x == pytest.approx(52)
        assert scene.trajectory[0].y == pytest.approx(18 + 186 / 2)

    def test_non_finite_points_dropped(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [Point(0, 10), Point(math.nan, 5), Point(12, 20)])
        assert len(scene.trajectory) == 2
        assert scene.y_domain.min > 5

    def test_reference_curves_clipped_to_x_range(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point, ReferenceSeries

        curves = [
            ReferenceSeries("50th", [Point(age, 50 + age) for age in range(0, 25)]),
            ReferenceSeries("97th", [Point(age, 60 + age) for age in range(0, 25)]),
        ]
        scene = build_chart("height", [Point(12, 62)], reference_curves=curves, x_range=(10, 14))
        assert [c.key for c in scene.curves] == ["50th", "97th"]
        assert len(scene.curves[0].points) == 5
        assert scene.curves[0].style == "major"

    def test_curve_outside_window_omitted(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point, ReferenceSeries

        curves = [ReferenceSeries("50th", [Point(100, 50)])]
        scene = build_chart("height", [Point(12, 62)], reference_curves=curves, x_range=(10, 14))
        assert scene.curves == []

    def test_highlight(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [Point(0, 10), Point(12, 20)], highlight=Point(12, 20))
        assert scene.highlight.radius == 5.2
        assert scene.highlight.x == pytest.approx(576)

    def test_highlight_alone_draws_chart(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [], highlight=Point(6, 70))
        assert not scene.empty
        assert scene.trajectory == []
        assert scene.highlight is not None

    def test_events_on_axis(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import ChartEvent, Point

        events = [
            ChartEvent(x=12, label="Growth inj.", category="growth"),
            ChartEvent(x=12, label="Suppression inj.", category="suppression"),
        ]
        scene = build_chart("height", [Point(0, 10), Point(12, 20)], events=events)
        growth, suppression = scene.events
        # growth arrow points up, suppression arrow points down
        assert growth.polygon[0].x == pytest.approx(568)
        assert growth.polygon[0].y < growth.polygon[1].y
        assert suppression.polygon[0].x == pytest.approx(584)
        assert suppression.polygon[0].y > suppression.polygon[1].y

    def test_x_labels_from_formatter(self):
        from growthtrack.engines.chart import build_chart
        from growthtrack.models import Point

        scene = build_chart("height", [Point(0, 10), Point(12, 20)], x_label_formatter=lambda v: f"{v:g}m")
        assert [label.text for label in scene.x_labels] == ["0m", "12m"]
        assert [label.anchor for label in scene.x_labels] == ["start", "end"]

    def test_scene_to_dict(self):
        from growthtrack.engines.chart import build_chart, scene_to_dict
        from growthtrack.models import Point

        data = scene_to_dict(build_chart("height", [Point(0, 10), Point(12, 20)]))
        assert data["trajectory"].startswith("M 52 ")
        assert data["highlight"] is None
        assert scene_to_dict(build_chart("height", []))["empty"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
