"""
In-memory repositories.

Same interface as the Supabase repositories, kept in process memory.
Used when Supabase is not configured (demo) and by the tests.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from growthtrack.errors import StorageError
from growthtrack.models import Patient, Visit

_LOGGER = logging.getLogger(__name__)


def _new_id() -> str:
  return str(uuid4())


class MemoryPatientRepository:
  """Patients keyed by id, unique on resident id and chart number."""

  def __init__(self):
    self._rows: dict[str, Patient] = {}

  def get_by_id(self, patient_id: str) -> Optional[Patient]:
    return self._rows.get(patient_id)

  def get_by_resident_id(self, resident_id: str) -> Optional[Patient]:
    return next((p for p in self._rows.values() if p.resident_id == resident_id), None)

  def get_by_chart_no(self, chart_no: str) -> Optional[Patient]:
    return next((p for p in self._rows.values() if p.chart_no == chart_no), None)

  def _check_unique(self, patient_id: Optional[str], resident_id: str, chart_no: Optional[str]) -> None:
    for other in self._rows.values():
      if other.id == patient_id:
        continue
      if other.resident_id == resident_id:
        raise StorageError("duplicate resident_id")
      if chart_no and other.chart_no == chart_no:
        raise StorageError("duplicate chart_no")

  def create(self, name: str, resident_id: str, chart_no: Optional[str] = None) -> Patient:
    self._check_unique(None, resident_id, chart_no)
    patient = Patient(
      id=_new_id(),
      name=name,
      resident_id=resident_id,
      chart_no=chart_no or None,
      created_at=datetime.now().astimezone(),
    )
    self._rows[patient.id] = patient
    _LOGGER.info("Created patient %s", patient.id)
    return patient

  def update(self, patient_id: str, **kwargs) -> Patient:
    current = self._rows.get(patient_id)
    if current is None:
      raise StorageError(f"patient {patient_id} not found for update")
    updated = current.model_copy(update=kwargs)
    self._check_unique(patient_id, updated.resident_id, updated.chart_no)
    self._rows[patient_id] = updated
    return updated


class MemoryVisitRepository:
  """Visits in insertion order."""

  def __init__(self):
    self._rows: list[Visit] = []

  def get_by_id(self, visit_id: str) -> Optional[Visit]:
    return next((v for v in self._rows if v.id == visit_id), None)

  def get_by_patient(self, patient_id: str) -> list[Visit]:
    rows = [v for v in self._rows if v.patient_id == patient_id]
    return sorted(rows, key=lambda v: v.created_at)

  def create(self, patient_id: str, **fields) -> Visit:
    visit = Visit(id=_new_id(), patient_id=patient_id, **fields)
    self._rows.append(visit)
    _LOGGER.info("Recorded visit %s for patient %s", visit.id, patient_id)
    return visit

  def update(self, visit_id: str, **kwargs) -> Visit:
    for index, visit in enumerate(self._rows):
      if visit.id == visit_id:
        updated = visit.model_copy(update=kwargs)
        self._rows[index] = updated
        return updated
    raise StorageError(f"visit {visit_id} not found for update")
