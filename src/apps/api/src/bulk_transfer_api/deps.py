"""Shared request dependencies."""
from functools import lru_cache

from bulk_transfer_core.settings import get_settings
from bulk_transfer_core.store import SQLiteStore


@lru_cache
def get_store() -> SQLiteStore:
    """Get the store for the configured database."""
    return SQLiteStore(get_settings().sqlite_path)


__all__ = ["get_settings", "get_store"]
