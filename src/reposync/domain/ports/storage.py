"""Ports for durable state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reposync.domain.model import ActivityEvent, RepositoryRecord, Tombstone


class StorageCapacityError(RuntimeError):
    """Raised by a store when a write would exceed its capacity."""

    def __init__(self, message: str, *, key: str, size: int | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.size = size


class StorageWriteError(RuntimeError):
    """Raised when a write still fails after eviction and one retry."""


@runtime_checkable
class KeyValueStore(Protocol):
    """Generic string key-value persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


@runtime_checkable
class StateStore(Protocol):
    """Typed collections the engine and activity log persist through."""

    def load_repositories(self) -> list[RepositoryRecord]: ...

    def save_repositories(self, records: Sequence[RepositoryRecord]) -> None: ...

    def load_tombstones(self) -> list[Tombstone]: ...

    def save_tombstones(self, tombstones: Sequence[Tombstone]) -> None: ...

    def load_activities(self) -> list[ActivityEvent]: ...

    def save_activities(self, events: Sequence[ActivityEvent]) -> None: ...

    def get_marker(self, name: str) -> str | None: ...

    def set_marker(self, name: str, value: str) -> None: ...
