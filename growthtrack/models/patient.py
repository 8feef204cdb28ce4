"""
Core data models for growthtrack.

Patient and Visit mirror the rows of the ``patients`` and ``visits`` tables.
VisitForm is the clinician's (unsaved) input; Status is the user-facing
outcome of an action.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Metric(str, Enum):
    HEIGHT = "height"
    WEIGHT = "weight"


class StatusType(str, Enum):
    INFO = "info"
    ERROR = "error"
    WARN = "warn"
    SUCCESS = "success"


class EventCategory(str, Enum):
    GROWTH = "growth"
    SUPPRESSION = "suppression"


# =============================================================================
# RECORDS
# =============================================================================


def _to_number(value: Any) -> float:
    """Numeric columns may come back from the store as strings."""
    if value is None:
        return 0.0
    return float(value)


class Patient(BaseModel):
    """Identity record. The resident id is normalized to 13 digits."""
    id: str
    name: str
    resident_id: str
    chart_no: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db(cls, row: dict) -> "Patient":
        """Create Patient from a database row."""
        return cls(
            id=str(row["id"]),
            name=row["name"],
            resident_id=row["resident_id"],
            chart_no=row.get("chart_no"),
            created_at=row.get("created_at"),
        )


class Visit(BaseModel):
    """A timestamped measurement of one patient."""
    id: str
    patient_id: Optional[str] = None
    height_cm: float
    weight_kg: float
    bmi: float
    age_months: int = Field(ge=0)
    created_at: datetime
    growth_injection: bool = False
    suppression_injection: bool = False

    @classmethod
    def from_db(cls, row: dict) -> "Visit":
        """Create Visit from a database row."""
        return cls(
            id=str(row["id"]),
            patient_id=str(row["patient_id"]) if row.get("patient_id") is not None else None,
            height_cm=_to_number(row.get("height_cm")),
            weight_kg=_to_number(row.get("weight_kg")),
            bmi=_to_number(row.get("bmi")),
            age_months=int(row["age_months"]),
            created_at=row["created_at"],
            growth_injection=bool(row.get("growth_injection")),
            suppression_injection=bool(row.get("suppression_injection")),
        )

    def value_for(self, metric: Metric) -> float:
        """Measurement plotted on the chart for ``metric``."""
        return self.height_cm if metric == Metric.HEIGHT else self.weight_kg


# =============================================================================
# INPUT / OUTPUT
# =============================================================================


class VisitForm(BaseModel):
    """
    Raw form state.

    Every field is kept as entered; validation happens when the form is
    submitted so that invalid input can be reported without losing it.
    """
    name: str = ""
    resident_id: str = ""
    chart_no: str = ""
    visit_date: str = ""
    height: str = ""
    weight: str = ""
    growth_injection: bool = False
    suppression_injection: bool = False

    model_config = {"frozen": True, "coerce_numbers_to_str": True}


class Status(BaseModel):
    """User-facing status line."""
    message: str
    type: StatusType = StatusType.INFO

    model_config = {"frozen": True}
