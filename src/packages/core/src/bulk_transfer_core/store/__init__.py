"""Persistence for jobs and domain records."""
from bulk_transfer_core.store.base import Predicate, RecordStore
from bulk_transfer_core.store.sqlite import SQLiteStore

__all__ = ["Predicate", "RecordStore", "SQLiteStore"]
