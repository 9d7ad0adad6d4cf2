"""In-process store and transport implementations.

Both are used by tests and by the file-replay CLI path; neither persists
anything beyond the life of the process.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from reposync.adapters.nostr.filters import matches_any
from reposync.domain.ports import StorageCapacityError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from reposync.domain.ports import KeyValueStore, SourceTransport
    from reposync.domain.ports.transport import (
        EndOfStreamCallback,
        EventCallback,
        RawEvent,
        SubscriptionFilter,
        Unsubscribe,
    )

log = getLogger(__name__)


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


@dataclass(slots=True)
class InMemoryKeyValueStore:
    """Dictionary-backed store with an optional byte capacity."""

    capacity_bytes: int | None = None
    entries: dict[str, str] = field(default_factory=dict[str, str])
    writes: int = 0

    def get(self, key: str) -> str | None:
        return self.entries.get(key)

    def set(self, key: str, value: str) -> None:
        if self.capacity_bytes is not None:
            size = self.size_with(key, value)
            if size > self.capacity_bytes:
                raise StorageCapacityError(
                    f"Writing {key!r} needs {size} bytes, capacity is {self.capacity_bytes}",
                    key=key,
                    size=size,
                )
        self.entries[key] = value
        self.writes += 1

    def size_with(self, key: str, value: str) -> int:
        others = sum(_entry_size(k, v) for k, v in self.entries.items() if k != key)
        return others + _entry_size(key, value)


@dataclass(slots=True)
class _Subscription:
    filters: tuple[SubscriptionFilter, ...]
    sources: tuple[str, ...]
    on_event: EventCallback
    on_end_of_stream: EndOfStreamCallback
    active: bool = True
    ended: set[str] = field(default_factory=set[str])

    def close(self) -> None:
        self.active = False


class InMemoryTransport:
    """Transport over per-source event lists.

    Stored matches are delivered on the next loop iteration followed by an
    end-of-stream signal per source. Sources marked silent never deliver nor
    signal, which lets callers exercise the settle timeout.
    """

    def __init__(self, *, silent: Iterable[str] = ()) -> None:
        self._events: dict[str, list[RawEvent]] = {}
        self._silent: set[str] = set(silent)
        self._subscriptions: list[_Subscription] = []

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(self._events)

    def add(self, source_id: str, *events: RawEvent) -> None:
        """Store events on a source without notifying live subscriptions."""

        self._events.setdefault(source_id, []).extend(events)

    def silence(self, source_id: str) -> None:
        self._silent.add(source_id)

    def subscribe(
        self,
        filters: Sequence[SubscriptionFilter],
        sources: Sequence[str],
        on_event: EventCallback,
        on_end_of_stream: EndOfStreamCallback,
    ) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        subscription = _Subscription(
            filters=tuple(filters),
            sources=tuple(sources),
            on_event=on_event,
            on_end_of_stream=on_end_of_stream,
        )
        self._subscriptions.append(subscription)
        for source_id in subscription.sources:
            if source_id in self._silent:
                continue
            loop.call_soon(self._deliver_stored, subscription, source_id)
        return lambda: self._unsubscribe(subscription)

    def publish(self, event: RawEvent, sources: Sequence[str]) -> None:
        for source_id in sources:
            self._events.setdefault(source_id, []).append(event)
            if source_id in self._silent:
                continue
            for subscription in self._subscriptions:
                if (
                    subscription.active
                    and source_id in subscription.ended
                    and matches_any(event, subscription.filters)
                ):
                    subscription.on_event(event, True, source_id)

    def _deliver_stored(self, subscription: _Subscription, source_id: str) -> None:
        if not subscription.active:
            return
        for event in list(self._events.get(source_id, ())):
            if matches_any(event, subscription.filters):
                subscription.on_event(event, False, source_id)
        subscription.ended.add(source_id)
        subscription.on_end_of_stream(source_id)

    def _unsubscribe(self, subscription: _Subscription) -> None:
        subscription.close()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


if TYPE_CHECKING:
    _store_check: KeyValueStore = InMemoryKeyValueStore()
    _transport_check: SourceTransport = InMemoryTransport()
