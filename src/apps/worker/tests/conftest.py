"""Shared fixtures for worker tests."""
import pytest

from bulk_transfer_core.settings import Settings
from bulk_transfer_core.store import SQLiteStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sqlite_path=str(tmp_path / "test.db"),
        upload_dir=str(tmp_path / "uploads"),
        staging_dir=str(tmp_path / "staging"),
        export_dir=str(tmp_path / "exports"),
    )


@pytest.fixture
def store(settings):
    s = SQLiteStore(settings.sqlite_path)
    s.init_db()
    return s
