"""
SVG exporter for chart scenes.
"""

from __future__ import annotations

from pathlib import Path
from xml.dom import minidom
from xml.etree import ElementTree as ET

from growthtrack.models import ChartScene

NS_SVG = "http://www.w3.org/2000/svg"
ARIA_LABEL = "Growth tracking chart"


def _num(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _element(parent: ET.Element, tag: str, text: str | None = None, **attrs) -> ET.Element:
    """Child element in the SVG namespace; ``class_`` is written as ``class``."""
    element = ET.SubElement(parent, f"{{{NS_SVG}}}{tag}")
    for name, value in attrs.items():
        element.set(name.rstrip("_").replace("_", "-"), value)
    if text is not None:
        element.text = text
    return element


def render_svg(scene: ChartScene, output_path: Path | None = None) -> str:
    """
    Render a scene as an SVG document.

    Styling is left to CSS; elements carry the classes chart-grid,
    chart-label, chart-percentile (major/mid), chart-axis, chart-line,
    chart-dot, chart-current and chart-event-growth/suppression.
    """
    ET.register_namespace("", NS_SVG)

    canvas = scene.canvas
    root = ET.Element(f"{{{NS_SVG}}}svg")
    root.set("viewBox", f"0 0 {_num(canvas.width)} {_num(canvas.height)}")
    root.set("role", "img")
    root.set("aria-label", ARIA_LABEL)
    root.set("preserveAspectRatio", "xMidYMid meet")

    if scene.empty:
        _element(
            root, "text", scene.placeholder or "",
            x=_num(canvas.width / 2), y=_num(canvas.height / 2),
            class_="chart-empty", text_anchor="middle",
        )
        return _write(root, output_path)

    pad = canvas.padding
    left = _num(pad.left)
    right = _num(canvas.width - pad.right)

    for row in scene.grid:
        y = _num(row.y)
        _element(root, "line", x1=left, x2=right, y1=y, y2=y, class_="chart-grid")
        _element(
            root, "text", row.label,
            x=_num(pad.left - 10), y=_num(row.y + 4), class_="chart-label", text_anchor="end",
        )

    for curve in scene.curves:
        css = "chart-percentile" if curve.style == "minor" else f"chart-percentile {curve.style}"
        _element(root, "path", d=scene.path_data(curve.points), class_=css)

    axis_y = _num(canvas.axis_y)
    _element(root, "line", x1=left, x2=right, y1=axis_y, y2=axis_y, class_="chart-axis")

    if scene.trajectory:
        line_class = "chart-line weight" if scene.metric == "weight" else "chart-line"
        path = _element(root, "path", d=scene.path_data(scene.trajectory), class_=line_class)
        path.set("pathLength", "1")

    for dot in scene.dots:
        _element(root, "circle", cx=_num(dot.x), cy=_num(dot.y), r=_num(dot.radius), class_="chart-dot")

    if scene.highlight:
        h = scene.highlight
        _element(root, "circle", cx=_num(h.x), cy=_num(h.y), r=_num(h.radius), class_="chart-current")

    for event in scene.events:
        group = _element(root, "g", class_=f"chart-event-{event.category}")
        points = " ".join(f"{_num(p.x)},{_num(p.y)}" for p in event.polygon)
        _element(group, "polygon", points=points, class_="chart-event")
        _element(
            group, "text", event.label,
            x=_num(event.label_position.x), y=_num(event.label_position.y),
            class_="chart-event-label", text_anchor="middle",
        )

    for label in scene.x_labels:
        _element(
            root, "text", label.text,
            x=_num(label.x), y=_num(label.y), class_="chart-label", text_anchor=label.anchor,
        )

    return _write(root, output_path)


def _write(root: ET.Element, output_path: Path | None) -> str:
    xml_str = ET.tostring(root, encoding="unicode")
    svg = minidom.parseString(xml_str).documentElement.toprettyxml(indent="  ")
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(svg)
    return svg
