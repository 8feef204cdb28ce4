"""
Visit recording.

Saving the form is a two step sequence: find or create the patient, then
insert the visit. The steps are not wrapped in a transaction; if the
visit insert fails the patient row stays committed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from growthtrack.engines.resident_id import AgeInfo, normalize_resident_id, parse_resident_id
from growthtrack.engines.visits import (
    VisitDelta,
    calculate_bmi,
    compute_delta,
    select_current_previous,
    sort_visits,
    visit_timestamp,
)
from growthtrack.errors import StorageError, StorageNotConfigured, ValidationError
from growthtrack.models import Patient, Status, StatusType, Visit, VisitForm

DEFAULT_STATUS = Status(message="Enter the measurements and save to calculate growth status.")
MISSING_FIELDS = "Please fill in all required fields."
INVALID_MEASUREMENT = "Height and weight must be positive numbers."
INVALID_VISIT_DATE = "Please check the visit date."
INVALID_RESIDENT_ID = "Please enter a valid resident registration number."
NOT_CONFIGURED = "Storage is not configured. Set the Supabase environment variables."
STORAGE_FAILED = "An error occurred while saving. Please try again later."
CHART_NO_MISMATCH = (
    "The chart number is linked to an existing patient. "
    "Please verify the resident registration number."
)
SAVED = "Growth record saved."

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidatedVisit:
    """Form values after validation."""
    name: str
    resident_id: str
    chart_no: Optional[str]
    visit_date: date
    height_cm: float
    weight_kg: float
    age: AgeInfo
    growth_injection: bool
    suppression_injection: bool


@dataclass
class RecordResult:
    """Outcome of a save: the patient, the focused visit and the series."""
    patient: Patient
    current: Optional[Visit]
    previous: Optional[Visit]
    visits: list[Visit] = field(default_factory=list)
    status: Status = field(default_factory=lambda: Status(message=SAVED, type=StatusType.SUCCESS))

    @property
    def delta(self) -> Optional[VisitDelta]:
        return compute_delta(self.current, self.previous)


def _parse_measurement(value: str) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def parse_visit_date(value: str) -> Optional[date]:
    """``YYYY-MM-DD`` to a date, None when invalid."""
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def validate_form(form: VisitForm) -> ValidatedVisit:
    """
    Check a submitted form.

    Raises:
        ValidationError: With the message to show; the form is untouched.
    """
    name = form.name.strip()
    resident_raw = form.resident_id.strip()
    chart_no = form.chart_no.strip()
    height = _parse_measurement(form.height)
    weight = _parse_measurement(form.weight)

    if not name or not resident_raw or not form.visit_date.strip() or height is None or weight is None:
        raise ValidationError(MISSING_FIELDS)
    if height <= 0 or weight <= 0:
        raise ValidationError(INVALID_MEASUREMENT, field="height" if height <= 0 else "weight")

    visit_date = parse_visit_date(form.visit_date)
    if visit_date is None:
        raise ValidationError(INVALID_VISIT_DATE, field="visit_date")

    age = parse_resident_id(resident_raw, visit_date)
    if age is None:
        raise ValidationError(INVALID_RESIDENT_ID, field="resident_id")

    return ValidatedVisit(
        name=name,
        resident_id=normalize_resident_id(resident_raw),
        chart_no=chart_no or None,
        visit_date=visit_date,
        height_cm=height,
        weight_kg=weight,
        age=age,
        growth_injection=form.growth_injection,
        suppression_injection=form.suppression_injection,
    )


class VisitRecorder:
    """
    Saves visits through a patient and a visit repository.

    The repositories are either the Supabase ones or the in-memory ones.
    """

    def __init__(self, patients, visits):
        self.patients = patients
        self.visits = visits

    def _find_or_create_patient(self, entry: ValidatedVisit) -> tuple[Patient, Optional[str]]:
        """Returns the patient and how it was matched ("resident", "chart" or None)."""
        patient = self.patients.get_by_resident_id(entry.resident_id)
        match = "resident" if patient else None

        if patient is None and entry.chart_no:
            patient = self.patients.get_by_chart_no(entry.chart_no)
            if patient is not None:
                match = "chart"

        if patient is None:
            return self.patients.create(entry.name, entry.resident_id, entry.chart_no), None

        updates = {}
        if entry.name and patient.name != entry.name:
            updates["name"] = entry.name
        if entry.chart_no and patient.chart_no != entry.chart_no:
            updates["chart_no"] = entry.chart_no
        if updates:
            patient = self.patients.update(patient.id, **updates)
        return patient, match

    def _result(self, patient: Patient, focus_id: str, status: Status) -> RecordResult:
        series = sort_visits(self.visits.get_by_patient(patient.id))
        current, previous = select_current_previous(series, focus_id)
        return RecordResult(
            patient=patient,
            current=current,
            previous=previous,
            visits=series,
            status=status,
        )

    def record(self, form: VisitForm) -> RecordResult:
        """
        Validate and save a form.

        Raises:
            ValidationError: Invalid input, nothing written
            StorageError: The store failed; earlier steps stay committed
        """
        entry = validate_form(form)
        patient, match = self._find_or_create_patient(entry)

        visit = self.visits.create(
            patient.id,
            height_cm=entry.height_cm,
            weight_kg=entry.weight_kg,
            bmi=calculate_bmi(entry.weight_kg, entry.height_cm),
            age_months=entry.age.age_months,
            growth_injection=entry.growth_injection,
            suppression_injection=entry.suppression_injection,
            created_at=visit_timestamp(entry.visit_date),
        )

        if match == "chart" and patient.resident_id != entry.resident_id:
            _LOGGER.warning("Chart number %s matched patient %s with a different resident id",
                            entry.chart_no, patient.id)
            status = Status(message=CHART_NO_MISMATCH, type=StatusType.WARN)
        else:
            status = Status(message=SAVED, type=StatusType.SUCCESS)

        return self._result(patient, visit.id, status)

    def update_visit(
        self,
        visit_id: str,
        height_cm: float,
        weight_kg: float,
        growth_injection: Optional[bool] = None,
        suppression_injection: Optional[bool] = None,
    ) -> RecordResult:
        """
        Correct the measurements of a saved visit and focus it.

        Raises:
            ValidationError: Non-positive measurement
            LookupError: Unknown visit
            StorageError: The store failed
        """
        if not (math.isfinite(height_cm) and math.isfinite(weight_kg)) or height_cm <= 0 or weight_kg <= 0:
            raise ValidationError(INVALID_MEASUREMENT)

        existing = self.visits.get_by_id(visit_id)
        if existing is None:
            raise LookupError(f"Visit {visit_id} not found")

        updates = {
            "height_cm": height_cm,
            "weight_kg": weight_kg,
            "bmi": calculate_bmi(weight_kg, height_cm),
        }
        if growth_injection is not None:
            updates["growth_injection"] = growth_injection
        if suppression_injection is not None:
            updates["suppression_injection"] = suppression_injection
        visit = self.visits.update(visit_id, **updates)

        patient = self.patients.get_by_id(visit.patient_id)
        if patient is None:
            raise LookupError(f"Patient {visit.patient_id} not found")
        return self._result(patient, visit.id, Status(message=SAVED, type=StatusType.SUCCESS))

    def load(self, resident_id: str) -> Optional[RecordResult]:
        """Patient and sorted visits by resident id; latest visit is current."""
        patient = self.patients.get_by_resident_id(normalize_resident_id(resident_id))
        if patient is None:
            return None
        series = sort_visits(self.visits.get_by_patient(patient.id))
        current, previous = select_current_previous(series)
        return RecordResult(
            patient=patient,
            current=current,
            previous=previous,
            visits=series,
            status=DEFAULT_STATUS,
        )

    def submit(self, form: VisitForm) -> tuple[Status, Optional[RecordResult]]:
        """
        Save a form and report the outcome as a status line.

        Never raises for validation or storage problems.
        """
        try:
            result = self.record(form)
        except ValidationError as e:
            return Status(message=e.message, type=StatusType.ERROR), None
        except StorageNotConfigured:
            return Status(message=NOT_CONFIGURED, type=StatusType.ERROR), None
        except StorageError:
            _LOGGER.exception("Saving visit failed")
            return Status(message=STORAGE_FAILED, type=StatusType.ERROR), None
        return result.status, result
