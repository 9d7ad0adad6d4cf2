"""Bounded eviction of cached records when the store runs out of room."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reposync.domain.timestamps import to_millis

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from reposync.domain.model import ActivityEvent, CompositeKey, RepositoryRecord


@dataclass(slots=True)
class EvictionPlan:
    kept: list[RepositoryRecord] = field(default_factory=list["RepositoryRecord"])
    evicted: list[RepositoryRecord] = field(default_factory=list["RepositoryRecord"])


def _recently_active_refs(
    activities: Iterable[ActivityEvent],
    *,
    cutoff: int,
) -> set[str]:
    return {
        event.repo_ref.lower()
        for event in activities
        if event.repo_ref and to_millis(event.timestamp) >= cutoff
    }


def _refs_for(record: RepositoryRecord) -> set[str]:
    refs = {record.repo_ref.lower()}
    if record.canonical_owner_key:
        refs.add(f"{record.canonical_owner_key}/{record.repo_name}".lower())
    return refs


def plan_eviction(
    records: Sequence[RepositoryRecord],
    *,
    activities: Iterable[ActivityEvent],
    now: int,
    fraction: float,
    recent_window_ms: int,
    protect: CompositeKey | None = None,
) -> EvictionPlan:
    """Pick the oldest records with no recent activity, at most ``fraction`` of them.

    The record under ``protect`` is never evicted.
    """

    active = _recently_active_refs(activities, cutoff=now - recent_window_ms)
    candidates = [
        record
        for record in records
        if record.composite_key != protect and not (_refs_for(record) & active)
    ]
    candidates.sort(key=lambda record: to_millis(record.source_timestamp))
    budget = max(1, math.floor(len(records) * fraction))
    evicted = candidates[:budget]
    evicted_ids = {id(record) for record in evicted}
    kept = [record for record in records if id(record) not in evicted_ids]
    return EvictionPlan(kept=kept, evicted=evicted)
