"""
Chart geometry.

Turns a patient's visit series, percentile reference curves, an optional
highlighted point and event markers into a ChartScene: a renderer-neutral
list of grid lines, paths, markers and labels on a fixed canvas.

The x axis is age in months, shared by every series on the chart. Both
domains are derived from the data unless an explicit x range is given.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import replace
from typing import Callable, Optional, Sequence

from growthtrack.models.chart import (
    Canvas,
    ChartEvent,
    ChartScene,
    CurvePath,
    Domain,
    EventGlyph,
    GridLine,
    Marker,
    Point,
    ReferenceSeries,
    TextLabel,
)
from knowledge.growth.reference_table import percentile_number

Y_PADDING_RATIO = 0.18
GRID_ROWS = 5
DOT_RADIUS = 4
HIGHLIGHT_RADIUS = 5.2
EVENT_OFFSET = 8
ARROW_SIZE = 6
EMPTY_PLACEHOLDER = "No records yet."
MEDIAN_PERCENTILE = 50


def _finite(point: Point) -> bool:
    return math.isfinite(point.x) and math.isfinite(point.y)


def x_domain(
    xs: Sequence[float],
    explicit: Optional[tuple[float, float]] = None,
) -> Domain:
    """
    X domain from an explicit range or the data.

    A degenerate domain (min == max) is widened to a width of 1.
    """
    if explicit is not None:
        lo, hi = explicit
    else:
        lo, hi = min(xs), max(xs)
    if hi == lo:
        hi = lo + 1
    return Domain(lo, hi)


def y_domain(ys: Sequence[float], ratio: float = Y_PADDING_RATIO) -> Domain:
    """
    Y domain padded by ``ratio`` of the value range on both ends.

    A zero range counts as 1 so a single value still gets room.
    """
    lo, hi = min(ys), max(ys)
    span = hi - lo
    if span == 0:
        span = 1
    pad = span * ratio
    return Domain(lo - pad, hi + pad)


def curve_style(key: str, keys: Sequence[str]) -> str:
    """
    Visual weight of a percentile curve, derived from its label.

    The median is "major", the lowest and highest percentiles present are
    "mid", everything else "minor".
    """
    number = percentile_number(key)
    if number is None:
        return "minor"
    if number == MEDIAN_PERCENTILE:
        return "major"
    numbers = [n for n in (percentile_number(k) for k in keys) if n is not None]
    if number in (min(numbers), max(numbers)):
        return "mid"
    return "minor"


def deconflict_events(events: Sequence[ChartEvent], offset: float = EVENT_OFFSET) -> list[ChartEvent]:
    """
    Spread events that share an x position.

    When exactly two events share an x, the first moves left and the second
    right by ``offset``. Events with an explicit offset are left alone.
    """
    groups: dict[float, list[int]] = defaultdict(list)
    for index, event in enumerate(events):
        groups[event.x].append(index)

    result = list(events)
    for indexes in groups.values():
        if len(indexes) != 2:
            continue
        first, second = indexes
        if result[first].offset is None:
            result[first] = replace(result[first], offset=-offset)
        if result[second].offset is None:
            result[second] = replace(result[second], offset=offset)
    return result


def _event_polygon(x: float, base_y: float, category: str) -> list[Point]:
    if category == "growth":
        return [
            Point(x, base_y - ARROW_SIZE),
            Point(x - ARROW_SIZE, base_y + ARROW_SIZE),
            Point(x + ARROW_SIZE, base_y + ARROW_SIZE),
        ]
    return [
        Point(x, base_y + ARROW_SIZE),
        Point(x - ARROW_SIZE, base_y - ARROW_SIZE),
        Point(x + ARROW_SIZE, base_y - ARROW_SIZE),
    ]


def build_chart(
    metric: str,
    points: Sequence[Point],
    reference_curves: Sequence[ReferenceSeries] = (),
    highlight: Optional[Point] = None,
    events: Sequence[ChartEvent] = (),
    x_range: Optional[tuple[float, float]] = None,
    labels: Sequence[str] = (),
    x_label_formatter: Optional[Callable[[float], str]] = None,
    canvas: Optional[Canvas] = None,
) -> ChartScene:
    """
    Compute the scene for one metric chart.

    Args:
        metric: "height" or "weight", carried through for the renderer
        points: Visit series as (age in months, value)
        reference_curves: Percentile curves keyed by label
        highlight: Single emphasised point, e.g. unsaved form input
        events: Markers on the age axis
        x_range: Explicit (min, max) age window
        labels: String labels for the visit points; the first and last are
            used as x-axis end labels when no formatter is given
        x_label_formatter: Formats the x-domain ends
        canvas: Drawing area (default 600x240)

    Returns:
        ChartScene; ``empty`` is set when there is nothing to plot.
    """
    canvas = canvas or Canvas()

    series = [p for p in points if _finite(p)]
    curves = [
        ReferenceSeries(curve.key, [p for p in curve.points if _finite(p)])
        for curve in reference_curves
    ]
    reference_points = [p for curve in curves for p in curve.points]
    if highlight is not None and not _finite(highlight):
        highlight = None

    if not series and not reference_points and highlight is None:
        return ChartScene(metric=metric, canvas=canvas, empty=True, placeholder=EMPTY_PLACEHOLDER)

    all_x = [p.x for p in series] + [p.x for p in reference_points]
    all_y = [p.y for p in series] + [p.y for p in reference_points]
    if highlight is not None:
        all_x.append(highlight.x)
        all_y.append(highlight.y)
    all_x.extend(event.x for event in events if math.isfinite(event.x))

    xd = x_domain(all_x, x_range)
    yd = y_domain(all_y)
    pad = canvas.padding

    def x_for(value: float) -> float:
        return pad.left + (value - xd.min) / xd.span * canvas.plot_width

    def y_for(value: float) -> float:
        return pad.top + canvas.plot_height * (1 - (value - yd.min) / yd.span)

    grid = []
    for row in range(GRID_ROWS):
        value = yd.min + yd.span * row / (GRID_ROWS - 1)
        grid.append(GridLine(value=value, y=y_for(value), label=f"{value:.1f}"))

    keys = [curve.key for curve in curves]
    curve_paths = []
    for curve in curves:
        visible = [p for p in curve.points if xd.min <= p.x <= xd.max]
        if not visible:
            continue
        curve_paths.append(CurvePath(
            key=curve.key,
            style=curve_style(curve.key, keys),
            points=[Point(x_for(p.x), y_for(p.y)) for p in visible],
        ))

    trajectory = [Point(x_for(p.x), y_for(p.y)) for p in series]
    dots = [Marker(p.x, p.y, DOT_RADIUS, "dot") for p in trajectory]

    highlight_marker = None
    if highlight is not None:
        highlight_marker = Marker(x_for(highlight.x), y_for(highlight.y), HIGHLIGHT_RADIUS, "current")

    base_y = canvas.axis_y - ARROW_SIZE
    glyphs = []
    for event in deconflict_events([e for e in events if math.isfinite(e.x)]):
        x = x_for(event.x) + (event.offset or 0)
        glyphs.append(EventGlyph(
            category=event.category,
            label=event.label,
            polygon=_event_polygon(x, base_y, event.category),
            label_position=Point(x, base_y - ARROW_SIZE - 6),
        ))

    x_labels = []
    if x_label_formatter is not None or len(labels) >= 2:
        start = x_label_formatter(xd.min) if x_label_formatter else labels[0]
        end = x_label_formatter(xd.max) if x_label_formatter else labels[-1]
        label_y = canvas.height - 10
        x_labels = [
            TextLabel(pad.left, label_y, start, "start"),
            TextLabel(canvas.width - pad.right, label_y, end, "end"),
        ]

    return ChartScene(
        metric=metric,
        canvas=canvas,
        x_domain=xd,
        y_domain=yd,
        grid=grid,
        curves=curve_paths,
        trajectory=trajectory,
        dots=dots,
        highlight=highlight_marker,
        events=glyphs,
        x_labels=x_labels,
    )


def scene_to_dict(scene: ChartScene) -> dict:
    """JSON-ready form of a scene."""
    def point(p: Point) -> dict:
        return {"x": round(p.x, 2), "y": round(p.y, 2)}

    if scene.empty:
        return {"metric": scene.metric, "empty": True, "placeholder": scene.placeholder}

    return {
        "metric": scene.metric,
        "empty": False,
        "width": scene.canvas.width,
        "height": scene.canvas.height,
        "xDomain": {"min": scene.x_domain.min, "max": scene.x_domain.max},
        "yDomain": {"min": scene.y_domain.min, "max": scene.y_domain.max},
        "grid": [{"value": g.value, "y": round(g.y, 2), "label": g.label} for g in scene.grid],
        "curves": [
            {"key": c.key, "style": c.style, "d": scene.path_data(c.points)}
            for c in scene.curves
        ],
        "trajectory": scene.path_data(scene.trajectory),
        "dots": [point(Point(m.x, m.y)) for m in scene.dots],
        "highlight": point(Point(scene.highlight.x, scene.highlight.y)) if scene.highlight else None,
        "events": [
            {
                "category": e.category,
                "label": e.label,
                "polygon": [point(p) for p in e.polygon],
                "labelPosition": point(e.label_position),
            }
            for e in scene.events
        ],
        "xLabels": [{"x": l.x, "y": l.y, "text": l.text, "anchor": l.anchor} for l in scene.x_labels],
    }
