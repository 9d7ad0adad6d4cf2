"""Callback subscriptions exposed as settling async streams.

A :class:`SubscriptionStream` subscribes through a
:class:`~reposync.domain.ports.SourceTransport`, buffers every delivered event in
an :class:`asyncio.Queue`, and stops once a quorum of sources reported
end-of-stream or the settle timeout elapsed. Leaving the ``async with`` block
always unsubscribes; nothing is retried automatically.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from reposync.domain.ports.transport import (
        RawEvent,
        SourceTransport,
        SubscriptionFilter,
        Unsubscribe,
    )

log = getLogger(__name__)

DEFAULT_QUORUM = 3
DEFAULT_TIMEOUT_SECONDS = 10.0


class SettleReason(StrEnum):
    QUORUM = "quorum"
    TIMEOUT = "timeout"
    NO_SOURCES = "no_sources"


@dataclass(frozen=True, slots=True)
class SettlePolicy:
    quorum: int = DEFAULT_QUORUM
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def required(self, source_count: int) -> int:
        """End-of-stream signals needed; capped by the number of sources."""

        return min(self.quorum, source_count)


@dataclass(frozen=True, slots=True)
class StreamItem:
    event: RawEvent
    source_id: str
    after_end_of_stream: bool = False


@dataclass(frozen=True, slots=True)
class _EndOfStream:
    source_id: str


class SubscriptionStream:
    """Async iterator over one subscription that settles on quorum or timeout."""

    def __init__(
        self,
        transport: SourceTransport,
        filters: Sequence[SubscriptionFilter],
        sources: Sequence[str],
        *,
        policy: SettlePolicy | None = None,
    ) -> None:
        self._transport = transport
        self._filters = tuple(filters)
        self._sources = tuple(dict.fromkeys(sources))
        self.policy = policy or SettlePolicy()
        self._queue: asyncio.Queue[StreamItem | _EndOfStream] = asyncio.Queue()
        self._ended: set[str] = set()
        self._unsubscribe: Unsubscribe | None = None
        self._deadline: float | None = None
        self.settled_by: SettleReason | None = None

    @property
    def ended_sources(self) -> tuple[str, ...]:
        return tuple(source for source in self._sources if source in self._ended)

    async def __aenter__(self) -> SubscriptionStream:
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + self.policy.timeout_seconds
        if not self._sources:
            self.settled_by = SettleReason.NO_SOURCES
            return self
        self._unsubscribe = self._transport.subscribe(
            self._filters, self._sources, self._on_event, self._on_end_of_stream
        )
        log.debug(
            "Subscribed to %d sources, waiting for %d end-of-stream signals",
            len(self._sources),
            self.policy.required(len(self._sources)),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            log.debug("Unsubscribed (settled by %s)", self.settled_by)

    def __aiter__(self) -> SubscriptionStream:
        return self

    async def __anext__(self) -> StreamItem:
        loop = asyncio.get_running_loop()
        while True:
            if self.settled_by is not None:
                item = self._next_buffered()
                if item is None:
                    raise StopAsyncIteration
                return item

            if self._deadline is None:
                raise RuntimeError("SubscriptionStream must be entered with 'async with'")
            remaining = self._deadline - loop.time()
            if remaining <= 0:
                self._settle(SettleReason.TIMEOUT)
                continue
            try:
                async with asyncio.timeout(remaining):
                    queued = await self._queue.get()
            except TimeoutError:
                self._settle(SettleReason.TIMEOUT)
                continue

            if isinstance(queued, _EndOfStream):
                self._record_end_of_stream(queued.source_id)
                continue
            return queued

    def _next_buffered(self) -> StreamItem | None:
        while not self._queue.empty():
            queued = self._queue.get_nowait()
            if isinstance(queued, StreamItem):
                return queued
        return None

    def _record_end_of_stream(self, source_id: str) -> None:
        if source_id not in self._sources:
            return
        self._ended.add(source_id)
        if len(self._ended) >= self.policy.required(len(self._sources)):
            self._settle(SettleReason.QUORUM)

    def _settle(self, reason: SettleReason) -> None:
        if self.settled_by is None:
            self.settled_by = reason
            log.debug(
                "Subscription settled by %s after %d/%d end-of-stream signals",
                reason.value,
                len(self._ended),
                len(self._sources),
            )

    def _on_event(self, event: RawEvent, after_end_of_stream: bool, source_id: str) -> None:
        self._queue.put_nowait(StreamItem(event, source_id, after_end_of_stream))

    def _on_end_of_stream(self, source_id: str) -> None:
        self._queue.put_nowait(_EndOfStream(source_id))
