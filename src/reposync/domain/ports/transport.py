"""Ports for the source transport and identity lookups."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Protocol, runtime_checkable

type RawEvent = Mapping[str, object]
type SubscriptionFilter = Mapping[str, object]
type EventCallback = Callable[[RawEvent, bool, str], None]
type EndOfStreamCallback = Callable[[str], None]
type Unsubscribe = Callable[[], None]


@runtime_checkable
class SourceTransport(Protocol):
    """Delivers events from, and publishes events to, a set of sources.

    ``on_event`` receives ``(event, after_end_of_stream, source_id)``;
    ``on_end_of_stream`` is called once per source when it has delivered all
    currently stored matches.
    """

    def subscribe(
        self,
        filters: Sequence[SubscriptionFilter],
        sources: Sequence[str],
        on_event: EventCallback,
        on_end_of_stream: EndOfStreamCallback,
    ) -> Unsubscribe: ...

    def publish(self, event: RawEvent, sources: Sequence[str]) -> None: ...


@runtime_checkable
class IdentityLookup(Protocol):
    """Resolve an identifier the pure resolver cannot handle (e.g. ``name@domain``)."""

    def __call__(self, identifier: str) -> str | None: ...
