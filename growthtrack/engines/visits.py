"""
Visit aggregation and derived values.

Visits are always handled as a series sorted by timestamp; "current" and
"previous" are picked from that series and compared.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from growthtrack.models import Visit

HISTORY_LIMIT = 5
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class VisitDelta:
    """Change between the previous and the current visit."""
    height_cm: float
    weight_kg: float
    elapsed_days: int
    previous_date: datetime

    @property
    def height_label(self) -> str:
        return f"{format_signed(self.height_cm)} cm"

    @property
    def weight_label(self) -> str:
        return f"{format_signed(self.weight_kg)} kg"

    @property
    def height_trend(self) -> str:
        return "up" if self.height_cm >= 0 else "down"

    @property
    def weight_trend(self) -> str:
        return "up" if self.weight_kg >= 0 else "down"

    def to_dict(self) -> dict:
        return {
            "heightCm": self.height_cm,
            "weightKg": self.weight_kg,
            "heightLabel": self.height_label,
            "weightLabel": self.weight_label,
            "heightTrend": self.height_trend,
            "weightTrend": self.weight_trend,
            "elapsedDays": self.elapsed_days,
            "previousDate": self.previous_date.isoformat(),
        }


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    """BMI = weight / height(m)^2, unrounded."""
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def format_bmi(bmi: float) -> str:
    """BMI for display, one decimal."""
    return f"{bmi:.1f}"


def bmi_status(bmi: float) -> str:
    """Descriptive BMI band. Not a diagnosis."""
    if bmi < 18.5:
        return "low"
    elif bmi < 23:
        return "normal"
    elif bmi < 25:
        return "high"
    else:
        return "caution"


def format_signed(value: float) -> str:
    """One decimal with an explicit '+' for non-negative values."""
    return f"{'+' if value >= 0 else ''}{value:.1f}"


def visit_timestamp(visit_date: date) -> datetime:
    """
    Timestamp stored for a visit: local noon on the visit date.

    Noon keeps the calendar day stable when the value is shown in a
    neighbouring time zone.
    """
    return datetime.combine(visit_date, time(12, 0)).astimezone()


def sort_visits(visits: list[Visit]) -> list[Visit]:
    """Ascending by timestamp; equal timestamps keep their creation order."""
    return sorted(visits, key=lambda v: v.created_at)


def select_current_previous(
    visits: list[Visit],
    focus_id: Optional[str] = None,
) -> tuple[Optional[Visit], Optional[Visit]]:
    """
    Pick the current visit and its predecessor.

    Args:
        visits: Visits of one patient, any order
        focus_id: Visit to treat as current (e.g. the one just edited).
            Defaults to the latest visit.

    Returns:
        (current, previous). previous is None for the first visit.
    """
    ordered = sort_visits(visits)
    if not ordered:
        return None, None

    index = len(ordered) - 1
    if focus_id is not None:
        matches = [i for i, visit in enumerate(ordered) if visit.id == focus_id]
        if not matches:
            return None, None
        index = matches[0]

    previous = ordered[index - 1] if index > 0 else None
    return ordered[index], previous


def elapsed_days(start: datetime, end: datetime) -> int:
    """Whole days between two timestamps, never less than 1."""
    days = (end - start).total_seconds() / SECONDS_PER_DAY
    return max(1, math.floor(days + 0.5))


def compute_delta(current: Optional[Visit], previous: Optional[Visit]) -> Optional[VisitDelta]:
    """Height/weight change and elapsed days; None without a previous visit."""
    if current is None or previous is None:
        return None
    return VisitDelta(
        height_cm=current.height_cm - previous.height_cm,
        weight_kg=current.weight_kg - previous.weight_kg,
        elapsed_days=elapsed_days(previous.created_at, current.created_at),
        previous_date=previous.created_at,
    )


def recent_history(visits: list[Visit], limit: int = HISTORY_LIMIT) -> list[Visit]:
    """The latest visits, newest first."""
    return list(reversed(sort_visits(visits)))[:limit]


def age_range(visits: list[Visit]) -> Optional[tuple[float, float]]:
    """
    Age window (months) for the charts, padded around the visit ages.

    The pad is 10% of the span but at least 3 months; the window never
    starts below 0.
    """
    ages = [visit.age_months for visit in visits]
    if not ages:
        return None
    min_age = min(ages)
    max_age = max(ages)
    span = max(1, max_age - min_age)
    pad = max(3, math.floor(span * 0.1 + 0.5))
    return max(0, min_age - pad), max_age + pad
