"""Settling subscription streams and sync passes."""

from __future__ import annotations

from .service import NormalizeEvent, SyncPassResult, sync_repositories
from .stream import SettlePolicy, SettleReason, StreamItem, SubscriptionStream

__all__ = [
    "NormalizeEvent",
    "SettlePolicy",
    "SettleReason",
    "StreamItem",
    "SubscriptionStream",
    "SyncPassResult",
    "sync_repositories",
]
