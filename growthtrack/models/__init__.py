"""
Data models for growthtrack.
"""

from .patient import (
    EventCategory,
    Metric,
    Patient,
    Status,
    StatusType,
    Visit,
    VisitForm,
)
from .chart import (
    Canvas,
    ChartEvent,
    ChartScene,
    CurvePath,
    Domain,
    EventGlyph,
    GridLine,
    Marker,
    Padding,
    Point,
    ReferenceSeries,
    TextLabel,
)

__all__ = [
    "EventCategory",
    "Metric",
    "Patient",
    "Status",
    "StatusType",
    "Visit",
    "VisitForm",
    "Canvas",
    "ChartEvent",
    "ChartScene",
    "CurvePath",
    "Domain",
    "EventGlyph",
    "GridLine",
    "Marker",
    "Padding",
    "Point",
    "ReferenceSeries",
    "TextLabel",
]
