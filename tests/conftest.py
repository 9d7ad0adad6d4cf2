from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from reposync.adapters.kv_state import KeyValueStateStore
from reposync.adapters.memory import InMemoryKeyValueStore
from reposync.adapters.sqlalchemy import SqlAlchemyKeyValueStore, shutdown, startup
from reposync.adapters.sqlalchemy.migrations import upgrade_head
from reposync.domain.activity import ActivityLog, StatsAggregator
from reposync.domain.reconciliation import ReconciliationEngine
from tests.helpers.repositories import NOW

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def state_store(kv: InMemoryKeyValueStore) -> KeyValueStateStore:
    return KeyValueStateStore(kv)


@pytest.fixture
def engine(state_store: KeyValueStateStore) -> ReconciliationEngine:
    return ReconciliationEngine(state_store, clock=lambda: NOW)


@pytest.fixture
def activity_log(state_store: KeyValueStateStore) -> ActivityLog:
    return ActivityLog(state_store, clock=lambda: NOW)


@pytest.fixture
def stats(activity_log: ActivityLog) -> StatsAggregator:
    return StatsAggregator(activity_log)


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyKeyValueStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyKeyValueStore()
    finally:
        shutdown()
