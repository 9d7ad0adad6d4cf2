"""Ports implemented by adapters."""

from __future__ import annotations

from .storage import (
    KeyValueStore,
    StateStore,
    StorageCapacityError,
    StorageWriteError,
)
from .transport import (
    EndOfStreamCallback,
    EventCallback,
    IdentityLookup,
    RawEvent,
    SourceTransport,
    SubscriptionFilter,
    Unsubscribe,
)

__all__ = [
    "EndOfStreamCallback",
    "EventCallback",
    "IdentityLookup",
    "KeyValueStore",
    "RawEvent",
    "SourceTransport",
    "StateStore",
    "StorageCapacityError",
    "StorageWriteError",
    "SubscriptionFilter",
    "Unsubscribe",
]
