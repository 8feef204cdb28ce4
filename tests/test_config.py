"""
Tests for settings and repository selection.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    from growthtrack.config import reset_settings
    from growthtrack.db.client import reset_clients

    for name in ("GROWTHTRACK_STORAGE", "GROWTHTRACK_TABLE_DIR", "LOGLEVEL",
                 "SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_KEY"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    reset_clients()
    yield
    reset_settings()
    reset_clients()


class TestSettings:
    """Environment driven settings."""

    def test_defaults(self):
        from growthtrack.config import DEFAULT_TABLE_DIR, get_settings

        settings = get_settings()
        assert settings.table_dir == DEFAULT_TABLE_DIR
        assert settings.log_level == "info"
        assert settings.storage == "memory"
        assert not settings.storage_explicit

    def test_supabase_when_configured(self, monkeypatch):
        from growthtrack.config import get_settings

        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        assert get_settings().storage == "supabase"

    def test_explicit_storage(self, monkeypatch):
        from growthtrack.config import get_settings

        monkeypatch.setenv("GROWTHTRACK_STORAGE", "MEMORY")
        monkeypatch.setenv("GROWTHTRACK_TABLE_DIR", "/data/tables")
        settings = get_settings()
        assert settings.storage == "memory"
        assert settings.storage_explicit
        assert settings.table_dir == Path("/data/tables")

    def test_invalid_storage(self, monkeypatch):
        from growthtrack.config import get_settings

        monkeypatch.setenv("GROWTHTRACK_STORAGE", "sqlite")
        with pytest.raises(ValueError):
            get_settings()

    def test_invalid_log_level(self):
        from growthtrack.config import configure_logging

        with pytest.raises(ValueError):
            configure_logging("verbose")


class TestRepositories:
    """Backend selection."""

    def test_memory_backend(self):
        from growthtrack.db import MemoryPatientRepository, MemoryVisitRepository, create_repositories

        patients, visits = create_repositories("memory")
        assert isinstance(patients, MemoryPatientRepository)
        assert isinstance(visits, MemoryVisitRepository)

    def test_supabase_not_configured(self):
        from growthtrack.db import create_repositories
        from growthtrack.errors import StorageNotConfigured

        with pytest.raises(StorageNotConfigured):
            create_repositories("supabase")

    def test_unknown_backend(self):
        from growthtrack.db import create_repositories

        with pytest.raises(ValueError):
            create_repositories("sqlite")

    def test_memory_uniqueness(self):
        from growthtrack.db import MemoryPatientRepository
        from growthtrack.errors import StorageError

        patients = MemoryPatientRepository()
        patients.create("A", "2001013234567", "C-1")
        with pytest.raises(StorageError):
            patients.create("B", "2001013234567")
        with pytest.raises(StorageError):
            patients.create("B", "2001014234567", "C-1")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
