"""Reconciliation outcomes shared by the engine and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reposync.domain.model import CompositeKey


class ReconcileReason(StrEnum):
    """Why a draft was or was not applied to the cache."""

    INSERTED = "inserted"
    NEWER = "newer_timestamp"
    SAME_TIMESTAMP = "same_timestamp"
    STALE = "stale_timestamp"
    INVALID = "invalid_draft"
    FAILED = "reconcile_failed"


ACCEPTED_REASONS = frozenset({ReconcileReason.INSERTED, ReconcileReason.NEWER})


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconcileOutcome:
    accepted: bool
    reason: ReconcileReason
    key: CompositeKey | None = None
    event_id: str | None = None
    unresolved_owner: bool = False
    error: str | None = None


@dataclass(slots=True)
class ReconcileBatchResult:
    """Outcome of reconciling several drafts with per-draft isolation."""

    outcomes: list[ReconcileOutcome] = field(default_factory=list["ReconcileOutcome"])

    @property
    def accepted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.accepted)

    @property
    def rejected(self) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if not outcome.accepted and outcome.reason is not ReconcileReason.FAILED
        )

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.reason is ReconcileReason.FAILED)
