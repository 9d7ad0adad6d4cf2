"""Reconciliation engine for announced repository state.

The engine owns the read-modify-write cycle against the injected
:class:`~reposync.domain.ports.StateStore`. Every accepted draft replaces the
whole cached record; a draft is only accepted when its timestamp is strictly
newer than the cached one, which makes per-key updates commutative no matter
which source delivers first.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from reposync.domain.identity import (
    IdentityIndex,
    IdentityResolution,
    display_identity,
    resolve_identity,
    resolve_key,
)
from reposync.domain.model import (
    RepositoryRecord,
    Tombstone,
    normalize_contributors,
    normalize_repo_name,
)
from reposync.domain.ports.storage import StorageCapacityError, StorageWriteError
from reposync.domain.timestamps import MS_PER_DAY, now_millis, to_millis

from .contracts import ReconcileBatchResult, ReconcileOutcome, ReconcileReason
from .deduplicate import dedupe
from .eviction import plan_eviction
from .visibility import filter_visible, hidden_reason

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from reposync.domain.model import CompositeKey, RepositoryDraft
    from reposync.domain.ports.storage import StateStore

    from .deduplicate import DeduplicateRepositories
    from .visibility import FilterRepositories, HiddenReason

log = getLogger(__name__)

DEFAULT_EVICTION_FRACTION = 0.1
DEFAULT_RECENT_ACTIVITY_MS = 30 * MS_PER_DAY


@dataclass(slots=True)
class ReconciliationEngine:
    """Merge drafts into the cache and serve the filtered, deduplicated view."""

    store: StateStore
    filter_records: FilterRepositories = filter_visible
    deduplicate: DeduplicateRepositories = dedupe
    eviction_fraction: float = DEFAULT_EVICTION_FRACTION
    recent_activity_ms: int = DEFAULT_RECENT_ACTIVITY_MS
    clock: Callable[[], int] = now_millis

    # -- reads -----------------------------------------------------------------

    def records(self) -> list[RepositoryRecord]:
        return self.store.load_repositories()

    def tombstones(self) -> list[Tombstone]:
        return self.store.load_tombstones()

    def index(self, records: Iterable[RepositoryRecord] | None = None) -> IdentityIndex:
        """Identity snapshot built from cached owners and the activity log."""

        snapshot = self.store.load_repositories() if records is None else records
        return IdentityIndex.from_snapshot(
            records=snapshot, activities=self.store.load_activities()
        )

    def visible(self) -> list[RepositoryRecord]:
        records = self.store.load_repositories()
        index = self.index(records)
        filtered = self.filter_records(
            records, tombstones=self.store.load_tombstones(), index=index
        )
        return self.deduplicate(filtered, index=index)

    def hidden(self) -> list[tuple[RepositoryRecord, HiddenReason]]:
        records = self.store.load_repositories()
        index = self.index(records)
        tombstones = self.store.load_tombstones()
        hidden: list[tuple[RepositoryRecord, HiddenReason]] = []
        for record in records:
            reason = hidden_reason(record, tombstones=tombstones, index=index)
            if reason is not None:
                hidden.append((record, reason))
        return hidden

    # -- writes ----------------------------------------------------------------

    def reconcile(self, draft: RepositoryDraft) -> ReconcileOutcome:
        """Merge one draft into the cache.

        Raises:
            StorageWriteError: the write failed again after eviction.
        """

        repo_name = normalize_repo_name(draft.repo_name)
        owner_raw = draft.owner_identity.strip()
        if not repo_name or not owner_raw:
            log.warning("Rejecting draft %s without owner or repository name", draft.source_event_id)
            return ReconcileOutcome(
                accepted=False, reason=ReconcileReason.INVALID, event_id=draft.source_event_id
            )

        records = self.store.load_repositories()
        index = self.index(records)
        resolution = resolve_identity(owner_raw, index=index)
        positions = _matching_records(
            records, owner_raw=owner_raw, owner_key=resolution.key, repo_name=repo_name, index=index
        )

        if not positions:
            record = RepositoryRecord.from_draft(
                draft,
                canonical_owner_key=resolution.key,
                display_identity=_choose_display_identity(resolution, existing=None),
            )
            records.append(record)
            self._write(records, protect=record.composite_key)
            if record.needs_resolution:
                log.info("Stored %s with unresolved owner %s", record.repo_name, owner_raw)
            log.debug("Inserted %s from event %s", record.composite_key, draft.source_event_id)
            return ReconcileOutcome(
                accepted=True,
                reason=ReconcileReason.INSERTED,
                key=record.composite_key,
                event_id=draft.source_event_id,
                unresolved_owner=record.needs_resolution,
            )

        primary = records[positions[0]]
        # Loose duplicates of the key may be older than the canonical record.
        existing = max(
            (records[position] for position in positions),
            key=lambda candidate: to_millis(candidate.source_timestamp),
        )
        incoming_ts = to_millis(draft.source_timestamp)
        existing_ts = to_millis(existing.source_timestamp)
        if incoming_ts <= existing_ts:
            reason = (
                ReconcileReason.SAME_TIMESTAMP
                if incoming_ts == existing_ts
                else ReconcileReason.STALE
            )
            log.debug(
                "Kept %s at %s, ignoring event %s (%s)",
                existing.composite_key,
                existing_ts,
                draft.source_event_id,
                reason.value,
            )
            return ReconcileOutcome(
                accepted=False,
                reason=reason,
                key=primary.composite_key,
                event_id=draft.source_event_id,
                unresolved_owner=primary.needs_resolution,
            )

        record = RepositoryRecord.from_draft(
            draft,
            canonical_owner_key=resolution.key or primary.canonical_owner_key,
            display_identity=_choose_display_identity(resolution, existing=primary),
            created_at=primary.created_at,
        )
        records[positions[0]] = record
        for position in sorted(positions[1:], reverse=True):
            folded = records.pop(position)
            log.debug("Folded %s into %s", folded.repo_ref, record.composite_key)
        self._write(records, protect=record.composite_key)
        log.debug(
            "Replaced %s: %s -> %s (event %s)",
            record.composite_key,
            existing_ts,
            incoming_ts,
            draft.source_event_id,
        )
        return ReconcileOutcome(
            accepted=True,
            reason=ReconcileReason.NEWER,
            key=record.composite_key,
            event_id=draft.source_event_id,
            unresolved_owner=record.needs_resolution,
        )

    def reconcile_many(self, drafts: Iterable[RepositoryDraft]) -> ReconcileBatchResult:
        """Reconcile drafts one by one; a failing draft never aborts the batch."""

        result = ReconcileBatchResult()
        for draft in drafts:
            try:
                outcome = self.reconcile(draft)
            except Exception as exc:  # noqa: BLE001
                log.exception("Failed to reconcile event %s", draft.source_event_id)
                outcome = ReconcileOutcome(
                    accepted=False,
                    reason=ReconcileReason.FAILED,
                    event_id=draft.source_event_id,
                    error=str(exc),
                )
            result.outcomes.append(outcome)
        return result

    def tombstone(self, owner_identity: str, repo_name: str) -> Tombstone:
        """Record a local deletion that hides every encoding of ``owner_identity``."""

        owner = owner_identity.strip()
        name = normalize_repo_name(repo_name)
        if not owner or not name:
            raise ValueError("Tombstones need both an owner identity and a repository name")

        tombstone = Tombstone(
            owner_identity=owner,
            repo_name=name,
            deleted_at=self.clock(),
            owner_key=resolve_key(owner, index=self.index()),
        )
        tombstones = [
            existing
            for existing in self.store.load_tombstones()
            if not (
                existing.owner_identity.lower() == owner.lower()
                and normalize_repo_name(existing.repo_name) == name
            )
        ]
        tombstones.append(tombstone)
        try:
            self.store.save_tombstones(tombstones)
        except StorageCapacityError as exc:
            raise StorageWriteError(
                f"Store is full, tombstone for {owner}/{name} not written"
            ) from exc
        log.info("Tombstoned %s/%s (owner key %s)", owner, name, tombstone.owner_key)
        return tombstone

    def re_resolve(self) -> int:
        """Retry owner resolution for records stored without a canonical key."""

        records = self.store.load_repositories()
        index = self.index(records)
        resolved = 0
        for position, record in enumerate(records):
            if not record.needs_resolution:
                continue
            key = resolve_key(record.display_identity, index=index)
            if key is None:
                continue
            records[position] = dataclasses.replace(
                record,
                canonical_owner_key=key,
                display_identity=display_identity(key),
                contributors=normalize_contributors(record.contributors, owner_key=key),
            )
            resolved += 1
        if resolved:
            self._write(records, protect=None)
            log.info("Resolved owners for %d cached records", resolved)
        return resolved

    def _write(self, records: list[RepositoryRecord], *, protect: CompositeKey | None) -> None:
        try:
            self.store.save_repositories(records)
        except StorageCapacityError as exc:
            log.warning("Repository cache is full (%s); evicting stale records", exc)
            plan = plan_eviction(
                records,
                activities=self.store.load_activities(),
                now=self.clock(),
                fraction=self.eviction_fraction,
                recent_window_ms=self.recent_activity_ms,
                protect=protect,
            )
            if not plan.evicted:
                raise StorageWriteError("Repository cache is full and nothing can be evicted") from exc
            log.warning(
                "Evicted %d records: %s",
                len(plan.evicted),
                ", ".join(record.repo_ref for record in plan.evicted),
            )
            try:
                self.store.save_repositories(plan.kept)
            except StorageCapacityError as retry_exc:
                raise StorageWriteError(
                    f"Repository cache write failed after evicting {len(plan.evicted)} records"
                ) from retry_exc
            records[:] = plan.kept


def _matching_records(
    records: list[RepositoryRecord],
    *,
    owner_raw: str,
    owner_key: str | None,
    repo_name: str,
    index: IdentityIndex,
) -> list[int]:
    """Positions of every cached record for the key, exact canonical matches first."""

    raw = owner_raw.lower()
    exact: list[int] = []
    loose: list[int] = []
    for position, record in enumerate(records):
        if normalize_repo_name(record.repo_name) != repo_name:
            continue
        if owner_key is not None and record.canonical_owner_key == owner_key:
            exact.append(position)
        elif record.display_identity.strip().lower() == raw or (
            owner_key is not None
            and record.canonical_owner_key is None
            and resolve_key(record.display_identity, index=index) == owner_key
        ):
            loose.append(position)
    return exact + loose


def _choose_display_identity(
    resolution: IdentityResolution,
    *,
    existing: RepositoryRecord | None,
) -> str:
    if existing is not None and existing.canonical_owner_key is not None:
        return existing.display_identity
    if resolution.key is not None:
        return display_identity(resolution.key)
    return resolution.identifier
