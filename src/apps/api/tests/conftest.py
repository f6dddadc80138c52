"""Shared fixtures for API tests."""
import pytest
from fastapi.testclient import TestClient

from bulk_transfer_api.deps import get_settings, get_store
from bulk_transfer_api.main import app
from bulk_transfer_core.settings import Settings
from bulk_transfer_core.store import SQLiteStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sqlite_path=str(tmp_path / "api.db"),
        upload_dir=str(tmp_path / "uploads"),
        staging_dir=str(tmp_path / "staging"),
        export_dir=str(tmp_path / "exports"),
    )


@pytest.fixture
def store(settings):
    s = SQLiteStore(settings.sqlite_path)
    s.init_db()
    return s


@pytest.fixture
def client(store, settings):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()
