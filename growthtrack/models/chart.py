"""
Chart scene description.

The geometry engine produces these plain dataclasses; any backend (SVG,
canvas, terminal) can draw them. Coordinates are in canvas units with the
origin at the top-left corner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Padding:
    top: float = 18
    right: float = 24
    bottom: float = 36
    left: float = 52


@dataclass(frozen=True)
class Canvas:
    """Fixed drawing area; the padding is reserved for axis labels."""
    width: float = 600
    height: float = 240
    padding: Padding = field(default_factory=Padding)

    @property
    def plot_width(self) -> float:
        return self.width - self.padding.left - self.padding.right

    @property
    def plot_height(self) -> float:
        return self.height - self.padding.top - self.padding.bottom

    @property
    def axis_y(self) -> float:
        return self.height - self.padding.bottom


@dataclass(frozen=True)
class Domain:
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class ReferenceSeries:
    """One percentile curve as data points (age in months, value)."""
    key: str
    points: list[Point]


@dataclass(frozen=True)
class ChartEvent:
    """A discrete marker on the age axis, e.g. an injection."""
    x: float
    label: str
    category: str
    offset: Optional[float] = None


@dataclass(frozen=True)
class GridLine:
    value: float
    y: float
    label: str


@dataclass(frozen=True)
class CurvePath:
    key: str
    style: str  # "major", "mid" or "minor"
    points: list[Point]


@dataclass(frozen=True)
class Marker:
    x: float
    y: float
    radius: float
    kind: str  # "dot" or "current"


@dataclass(frozen=True)
class EventGlyph:
    category: str
    label: str
    polygon: list[Point]
    label_position: Point


@dataclass(frozen=True)
class TextLabel:
    x: float
    y: float
    text: str
    anchor: str  # "start", "middle" or "end"


@dataclass(frozen=True)
class ChartScene:
    """Everything needed to draw one metric chart."""
    metric: str
    canvas: Canvas
    empty: bool = False
    placeholder: Optional[str] = None
    x_domain: Optional[Domain] = None
    y_domain: Optional[Domain] = None
    grid: list[GridLine] = field(default_factory=list)
    curves: list[CurvePath] = field(default_factory=list)
    trajectory: list[Point] = field(default_factory=list)
    dots: list[Marker] = field(default_factory=list)
    highlight: Optional[Marker] = None
    events: list[EventGlyph] = field(default_factory=list)
    x_labels: list[TextLabel] = field(default_factory=list)

    def path_data(self, points: list[Point]) -> str:
        """SVG-style path data ("M x y L x y ...") for a list of points."""
        return " ".join(
            f"{'M' if index == 0 else 'L'} {_fmt(p.x)} {_fmt(p.y)}"
            for index, p in enumerate(points)
        )


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")
