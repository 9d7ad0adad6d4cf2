"""Repository reconciliation: merge, filter and deduplicate cached records."""

from __future__ import annotations

from .contracts import (
    ACCEPTED_REASONS,
    ReconcileBatchResult,
    ReconcileOutcome,
    ReconcileReason,
)
from .deduplicate import DeduplicateRepositories, dedupe, dedupe_key
from .engine import ReconciliationEngine
from .eviction import EvictionPlan, plan_eviction
from .visibility import (
    CorruptionReason,
    FilterRepositories,
    HiddenReason,
    corruption_reason,
    filter_visible,
    find_tombstone,
    hidden_reason,
    is_visible,
    matching_tombstone,
    visible_repositories,
)

__all__ = [
    "ACCEPTED_REASONS",
    "CorruptionReason",
    "DeduplicateRepositories",
    "EvictionPlan",
    "FilterRepositories",
    "HiddenReason",
    "ReconcileBatchResult",
    "ReconcileOutcome",
    "ReconcileReason",
    "ReconciliationEngine",
    "corruption_reason",
    "dedupe",
    "dedupe_key",
    "filter_visible",
    "find_tombstone",
    "hidden_reason",
    "is_visible",
    "matching_tombstone",
    "plan_eviction",
    "visible_repositories",
]
