"""Append-only activity log entries."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import ActivityType

# JSON-friendly scalar values only; entries round-trip through the key-value store.
MetadataValue = str | int | float | bool | None


@dataclass(frozen=True, slots=True, kw_only=True)
class ActivityEvent:
    id: str
    type: ActivityType
    actor_key: str
    timestamp: int
    repo_ref: str | None = None
    metadata: dict[str, MetadataValue] = field(default_factory=dict)
