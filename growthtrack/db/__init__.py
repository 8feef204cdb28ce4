"""
Database module for growthtrack.

Provides the Supabase client, Supabase-backed repositories and their
in-memory counterparts.
"""

from growthtrack.db.client import get_client, is_configured, SupabaseClient
from growthtrack.db.repositories import PatientRepository, VisitRepository
from growthtrack.db.memory import MemoryPatientRepository, MemoryVisitRepository


def create_repositories(backend: str):
  """
  Build the (patients, visits) repository pair for a storage backend.

  Args:
    backend: "supabase" or "memory"
  """
  if backend == "supabase":
    return PatientRepository(), VisitRepository()
  if backend == "memory":
    return MemoryPatientRepository(), MemoryVisitRepository()
  raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
  "get_client",
  "is_configured",
  "SupabaseClient",
  "PatientRepository",
  "VisitRepository",
  "MemoryPatientRepository",
  "MemoryVisitRepository",
  "create_repositories",
]
