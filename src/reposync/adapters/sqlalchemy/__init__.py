"""SQLAlchemy adapter: durable key-value storage with Alembic migrations."""

from __future__ import annotations

from .mappings import kv_entry_table, mapper_registry
from .state import (
    StartupError,
    is_started,
    session_factory,
    shutdown,
    startup,
)
from .store import SqlAlchemyKeyValueStore

__all__ = [
    "SqlAlchemyKeyValueStore",
    "StartupError",
    "is_started",
    "kv_entry_table",
    "mapper_registry",
    "session_factory",
    "shutdown",
    "startup",
]
