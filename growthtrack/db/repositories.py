"""
Repository classes for database operations.

Each repository handles the queries for one table and returns model
objects. Every failure reported by Supabase is raised as StorageError.
"""

import logging
from typing import Optional

from growthtrack.db.client import get_client, is_configured, SupabaseClient
from growthtrack.errors import StorageError, StorageNotConfigured
from growthtrack.models import Patient, Visit

PATIENT_COLUMNS = "id, name, resident_id, chart_no, created_at"
VISIT_COLUMNS = (
  "id, patient_id, height_cm, weight_kg, bmi, age_months, created_at, "
  "growth_injection, suppression_injection"
)

_LOGGER = logging.getLogger(__name__)


class BaseRepository:
  """Base class for all repositories."""

  table_name: str = ""

  def __init__(self, client: Optional[SupabaseClient] = None):
    """
    Initialize repository with optional client.

    Args:
      client: Supabase client to use. If None, gets default client.
    """
    if client:
      self._client = client
    elif not is_configured():
      raise StorageNotConfigured("Supabase environment variables are not set")
    else:
      self._client = get_client()

  @property
  def table(self):
    """Get the table reference."""
    return self._client.table(self.table_name)

  def _execute(self, query, action: str):
    """Run a query, turning any client failure into StorageError."""
    try:
      return query.execute()
    except Exception as e:
      _LOGGER.exception("Supabase %s on %s failed", action, self.table_name)
      raise StorageError(f"{action} on {self.table_name} failed") from e

  @staticmethod
  def _first(response) -> Optional[dict]:
    if response is None or not response.data:
      return None
    if isinstance(response.data, list):
      return response.data[0]
    return response.data


class PatientRepository(BaseRepository):
  """Repository for patient identity records."""

  table_name = "patients"

  def get_by_id(self, patient_id: str) -> Optional[Patient]:
    """Get patient by ID."""
    query = self.table.select(PATIENT_COLUMNS).eq("id", str(patient_id)).limit(1)
    row = self._first(self._execute(query, "select"))
    return Patient.from_db(row) if row else None

  def get_by_resident_id(self, resident_id: str) -> Optional[Patient]:
    """Get patient by normalized resident id."""
    query = self.table.select(PATIENT_COLUMNS).eq("resident_id", resident_id).limit(1)
    row = self._first(self._execute(query, "select"))
    return Patient.from_db(row) if row else None

  def get_by_chart_no(self, chart_no: str) -> Optional[Patient]:
    """Get patient by chart number."""
    query = self.table.select(PATIENT_COLUMNS).eq("chart_no", chart_no).limit(1)
    row = self._first(self._execute(query, "select"))
    return Patient.from_db(row) if row else None

  def create(self, name: str, resident_id: str, chart_no: Optional[str] = None) -> Patient:
    """Create a new patient."""
    data = {
      "name": name,
      "resident_id": resident_id,
      "chart_no": chart_no or None,
    }
    row = self._first(self._execute(self.table.insert(data), "insert"))
    if row is None:
      raise StorageError("insert on patients returned no row")
    _LOGGER.info("Created patient %s", row["id"])
    return Patient.from_db(row)

  def update(self, patient_id: str, **kwargs) -> Patient:
    """Update name and/or chart number."""
    query = self.table.update(kwargs).eq("id", str(patient_id))
    row = self._first(self._execute(query, "update"))
    if row is None:
      raise StorageError(f"patient {patient_id} not found for update")
    _LOGGER.info("Updated patient %s (%s)", patient_id, ", ".join(kwargs))
    return Patient.from_db(row)


class VisitRepository(BaseRepository):
  """Repository for visit measurements."""

  table_name = "visits"

  def get_by_id(self, visit_id: str) -> Optional[Visit]:
    """Get visit by ID."""
    query = self.table.select(VISIT_COLUMNS).eq("id", str(visit_id)).limit(1)
    row = self._first(self._execute(query, "select"))
    return Visit.from_db(row) if row else None

  def get_by_patient(self, patient_id: str) -> list[Visit]:
    """All visits of a patient, oldest first; ties in insertion order."""
    query = (
      self.table.select(VISIT_COLUMNS)
      .eq("patient_id", str(patient_id))
      .order("created_at")
      .order("seq")
    )
    response = self._execute(query, "select")
    return [Visit.from_db(row) for row in (response.data or [])]

  def create(self, patient_id: str, **fields) -> Visit:
    """Insert a visit. ``created_at`` must be a datetime."""
    data = {"patient_id": str(patient_id), **fields}
    data["created_at"] = data["created_at"].isoformat()
    row = self._first(self._execute(self.table.insert(data), "insert"))
    if row is None:
      raise StorageError("insert on visits returned no row")
    _LOGGER.info("Recorded visit %s for patient %s", row["id"], patient_id)
    return Visit.from_db(row)

  def update(self, visit_id: str, **kwargs) -> Visit:
    """Update measurement fields of a visit."""
    query = self.table.update(kwargs).eq("id", str(visit_id))
    row = self._first(self._execute(query, "update"))
    if row is None:
      raise StorageError(f"visit {visit_id} not found for update")
    _LOGGER.info("Updated visit %s", visit_id)
    return Visit.from_db(row)
