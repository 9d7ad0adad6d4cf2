"""Key-value store backed by the ``kv_entry`` table."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from reposync.domain.ports import StorageCapacityError, StorageWriteError

from .mappings import kv_entry_table
from .state import session_factory

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from reposync.domain.ports import KeyValueStore

log = getLogger(__name__)


class SqlAlchemyKeyValueStore:
    """Durable key-value store with an optional total size budget.

    ``max_bytes`` caps the summed length of keys and values; a write that would
    exceed it raises :class:`StorageCapacityError` and leaves the table as is.
    """

    def __init__(
        self,
        *,
        max_bytes: int | None = None,
        sessions: sessionmaker[Session] | None = None,
    ) -> None:
        self.max_bytes = max_bytes
        self._sessions = sessions or session_factory()

    def get(self, key: str) -> str | None:
        with self._sessions() as session:
            return session.execute(
                select(kv_entry_table.c.value).where(kv_entry_table.c.key == key)
            ).scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        table = kv_entry_table
        try:
            with self._sessions.begin() as session:
                if self.max_bytes is not None:
                    self._check_capacity(session, key, value)
                exists = session.execute(
                    select(table.c.key).where(table.c.key == key)
                ).scalar_one_or_none()
                values = {"value": value, "updated_at": datetime.now(UTC)}
                if exists is None:
                    session.execute(table.insert().values(key=key, **values))
                else:
                    session.execute(table.update().where(table.c.key == key).values(**values))
        except SQLAlchemyError as exc:
            raise StorageWriteError(f"Failed to write {key!r}: {exc}") from exc

    def keys(self) -> list[str]:
        with self._sessions() as session:
            return list(
                session.execute(select(kv_entry_table.c.key).order_by(kv_entry_table.c.key))
                .scalars()
                .all()
            )

    def _check_capacity(self, session: Session, key: str, value: str) -> None:
        table = kv_entry_table
        others = session.execute(
            select(
                func.coalesce(func.sum(func.length(table.c.key) + func.length(table.c.value)), 0)
            ).where(table.c.key != key)
        ).scalar_one()
        size = int(others) + len(key) + len(value)
        if self.max_bytes is not None and size > self.max_bytes:
            log.debug("Rejecting write of %s: %d > %d bytes", key, size, self.max_bytes)
            raise StorageCapacityError(
                f"Writing {key!r} needs {size} bytes, capacity is {self.max_bytes}",
                key=key,
                size=size,
            )


if TYPE_CHECKING:
    _store_check: KeyValueStore = SqlAlchemyKeyValueStore()
