"""Typed state collections persisted as JSON under well-known keys."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import TypeAdapter, ValidationError

from reposync.domain.model import ActivityEvent, RepositoryRecord, Tombstone

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reposync.domain.ports import KeyValueStore, StateStore

log = getLogger(__name__)

REPOSITORIES_KEY: Final[str] = "reposync_repos"
TOMBSTONES_KEY: Final[str] = "reposync_deleted_repos"
ACTIVITIES_KEY: Final[str] = "reposync_activities"
MARKER_PREFIX: Final[str] = "reposync_marker:"

_RECORD_ADAPTER: Final = TypeAdapter(RepositoryRecord)
_TOMBSTONE_ADAPTER: Final = TypeAdapter(Tombstone)
_ACTIVITY_ADAPTER: Final = TypeAdapter(ActivityEvent)


def marker_key(name: str) -> str:
    return f"{MARKER_PREFIX}{name}"


class KeyValueStateStore:
    """:class:`StateStore` over any :class:`KeyValueStore`.

    Each collection is one JSON array. Entries that no longer validate are
    dropped on load with a warning instead of failing the whole collection.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def load_repositories(self) -> list[RepositoryRecord]:
        return self._load(REPOSITORIES_KEY, _RECORD_ADAPTER)

    def save_repositories(self, records: Sequence[RepositoryRecord]) -> None:
        self._save(REPOSITORIES_KEY, _RECORD_ADAPTER, records)

    def load_tombstones(self) -> list[Tombstone]:
        return self._load(TOMBSTONES_KEY, _TOMBSTONE_ADAPTER)

    def save_tombstones(self, tombstones: Sequence[Tombstone]) -> None:
        self._save(TOMBSTONES_KEY, _TOMBSTONE_ADAPTER, tombstones)

    def load_activities(self) -> list[ActivityEvent]:
        return self._load(ACTIVITIES_KEY, _ACTIVITY_ADAPTER)

    def save_activities(self, events: Sequence[ActivityEvent]) -> None:
        self._save(ACTIVITIES_KEY, _ACTIVITY_ADAPTER, events)

    def get_marker(self, name: str) -> str | None:
        return self.kv.get(marker_key(name))

    def set_marker(self, name: str, value: str) -> None:
        self.kv.set(marker_key(name), value)

    def _load[T](self, key: str, adapter: TypeAdapter[T]) -> list[T]:
        raw = self.kv.get(key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Stored value under %s is not JSON, treating it as empty", key)
            return []
        if not isinstance(payload, list):
            log.warning("Stored value under %s is not a list, treating it as empty", key)
            return []

        items: list[T] = []
        for position, entry in enumerate(payload):
            try:
                items.append(adapter.validate_python(entry))
            except ValidationError as exc:
                log.warning(
                    "Skipping invalid entry %d under %s (%d validation errors)",
                    position,
                    key,
                    exc.error_count(),
                )
        return items

    def _save[T](self, key: str, adapter: TypeAdapter[T], items: Sequence[T]) -> None:
        payload = [adapter.dump_python(item, mode="json") for item in items]
        self.kv.set(key, json.dumps(payload, separators=(",", ":")))


if TYPE_CHECKING:
    from .memory import InMemoryKeyValueStore

    _state_check: StateStore = KeyValueStateStore(InMemoryKeyValueStore())
