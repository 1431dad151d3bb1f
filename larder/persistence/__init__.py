"""Persistence layer for larder records and workflow state."""

from __future__ import annotations

from typing import Optional

from ..config import LarderConfig, load_config
from .inmemory import InMemoryRecordStore
from .models import CREATED_AT, UPDATED_AT, Document, TimeFilter
from .repository import RecordStore, WorkflowStateStore
from .sqlite import SQLiteRecordStore
from .state import JsonStateStore

_record_store_instance: RecordStore | None = None


def get_record_store(
    database_url: Optional[str] = None, config: Optional[LarderConfig] = None
) -> RecordStore:
    """Factory function to obtain a record store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``LARDER_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory store is returned.
    """

    global _record_store_instance
    if _record_store_instance is not None and database_url is None and config is None:
        return _record_store_instance

    config = config or load_config()
    database_url = database_url or config.database_url

    if not database_url:
        _record_store_instance = InMemoryRecordStore()
    elif database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _record_store_instance = SQLiteRecordStore(path)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _record_store_instance


def get_state_store(
    state_dir: Optional[str] = None, config: Optional[LarderConfig] = None
) -> JsonStateStore:
    """Return a state store rooted at ``state_dir`` or the configured directory."""
    config = config or load_config()
    return JsonStateStore(state_dir or config.state_dir)


__all__ = [
    "CREATED_AT",
    "UPDATED_AT",
    "Document",
    "TimeFilter",
    "RecordStore",
    "WorkflowStateStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "JsonStateStore",
    "get_record_store",
    "get_state_store",
]
