"""Append-only activity log kept in the state store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from reposync.domain.identity import EMPTY_INDEX, IdentityIndex, resolve_key
from reposync.domain.model import ActivityEvent, ActivityType, Provenance
from reposync.domain.ports.storage import StorageCapacityError, StorageWriteError
from reposync.domain.reconciliation.visibility import find_tombstone
from reposync.domain.timestamps import MS_PER_DAY, now_millis, to_millis

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from reposync.domain.model import RepositoryRecord, Tombstone
    from reposync.domain.ports.storage import StateStore

log = getLogger(__name__)

BACKFILL_MARKER: Final[str] = "activities_backfilled"
DEFAULT_MAX_AGE_MS: Final[int] = 365 * MS_PER_DAY
DEFAULT_MAX_ENTRIES: Final[int] = 10_000
DEFAULT_BACKFILL_INTERVAL_MS: Final[int] = MS_PER_DAY


@dataclass(frozen=True, slots=True)
class BackfillResult:
    ran: bool
    added: int = 0


def split_repo_ref(repo_ref: str) -> tuple[str, str] | None:
    owner, separator, repo = repo_ref.partition("/")
    if not separator or not owner or not repo:
        return None
    return owner, repo


def actor_matches(event_actor: str, *, key: str | None, raw: str) -> bool:
    """Match an activity actor against a full key, its raw form, or a legacy prefix."""

    actor = event_actor.strip().lower()
    if actor == raw or (key is not None and actor == key):
        return True
    # older clients logged the 8-character prefix instead of the full key
    return key is not None and len(actor) == 8 and key.startswith(actor)


def derive_repository_activities(records: Iterable[RepositoryRecord]) -> list[ActivityEvent]:
    """Creation and release events implied by cached repositories.

    Ids are deterministic, so deriving twice yields the same entries.
    """

    derived: list[ActivityEvent] = []
    for record in records:
        actor = record.canonical_owner_key
        if actor is None:
            continue
        owner_ref = f"{actor}/{record.repo_name}"
        imported = record.provenance is Provenance.IMPORTED_STATIC or bool(record.source_url)
        activity_type = ActivityType.REPO_IMPORTED if imported else ActivityType.REPO_CREATED
        derived.append(
            ActivityEvent(
                id=f"backfill:{activity_type.value}:{owner_ref}",
                type=activity_type,
                actor_key=actor,
                timestamp=to_millis(record.created_at or record.source_timestamp),
                repo_ref=record.repo_ref,
                metadata={"repo_name": record.repo_name},
            )
        )
        for release in record.releases:
            derived.append(
                ActivityEvent(
                    id=f"backfill:{ActivityType.RELEASE_CREATED.value}:{owner_ref}:{release.tag}",
                    type=ActivityType.RELEASE_CREATED,
                    actor_key=actor,
                    timestamp=to_millis(release.created_at or record.source_timestamp),
                    repo_ref=record.repo_ref,
                    metadata={"tag": release.tag},
                )
            )
    return derived


@dataclass(slots=True)
class ActivityLog:
    """Activity entries used to derive counters; never reconciled against sources."""

    store: StateStore
    max_age_ms: int = DEFAULT_MAX_AGE_MS
    max_entries: int = DEFAULT_MAX_ENTRIES
    backfill_interval_ms: int = DEFAULT_BACKFILL_INTERVAL_MS
    clock: Callable[[], int] = now_millis

    def events(self) -> list[ActivityEvent]:
        return self.store.load_activities()

    def record(self, event: ActivityEvent) -> bool:
        """Append ``event`` unless an entry with the same id exists."""

        return self.record_many([event]) == 1

    def record_many(self, events: Iterable[ActivityEvent]) -> int:
        existing = self.store.load_activities()
        known = {event.id for event in existing}
        added: list[ActivityEvent] = []
        for event in events:
            if event.id in known:
                continue
            known.add(event.id)
            added.append(event)
        if added:
            self._save(self.prune([*existing, *added]))
        return len(added)

    def prune(self, events: Sequence[ActivityEvent]) -> list[ActivityEvent]:
        """Drop entries past the retention age and keep the newest ``max_entries``."""

        cutoff = self.clock() - self.max_age_ms
        fresh = [event for event in events if to_millis(event.timestamp) >= cutoff]
        fresh.sort(key=lambda event: to_millis(event.timestamp))
        if len(fresh) > self.max_entries:
            fresh = fresh[-self.max_entries :]
        dropped = len(events) - len(fresh)
        if dropped:
            log.debug("Pruned %d activity entries", dropped)
        return fresh

    def visible_events(
        self,
        *,
        tombstones: Sequence[Tombstone] = (),
        index: IdentityIndex = EMPTY_INDEX,
    ) -> list[ActivityEvent]:
        """Entries whose repository (if any) has not been tombstoned locally."""

        if not tombstones:
            return self.events()
        visible: list[ActivityEvent] = []
        for event in self.events():
            parts = split_repo_ref(event.repo_ref) if event.repo_ref else None
            if parts is not None and find_tombstone(*parts, tombstones, index=index) is not None:
                continue
            visible.append(event)
        return visible

    def events_for(
        self,
        actor: str,
        *,
        tombstones: Sequence[Tombstone] = (),
        index: IdentityIndex = EMPTY_INDEX,
    ) -> list[ActivityEvent]:
        raw = actor.strip().lower()
        key = resolve_key(actor, index=index)
        return [
            event
            for event in self.visible_events(tombstones=tombstones, index=index)
            if actor_matches(event.actor_key, key=key, raw=raw)
        ]

    def backfill(
        self,
        records: Iterable[RepositoryRecord],
        *,
        force: bool = False,
    ) -> BackfillResult:
        """Derive missing entries from cached records.

        Runs only when the log is empty, the marker is missing or older than
        ``backfill_interval_ms``, or ``force`` is set.
        """

        now = self.clock()
        existing = self.store.load_activities()
        if not force and existing and not self._marker_stale(now):
            log.debug("Activity backfill skipped, marker is fresh")
            return BackfillResult(ran=False)

        known = {event.id for event in existing}
        derived = [event for event in derive_repository_activities(records) if event.id not in known]
        if derived:
            self._save(self.prune([*existing, *derived]))
        try:
            self.store.set_marker(BACKFILL_MARKER, str(now))
        except StorageCapacityError as exc:
            raise StorageWriteError("Store is full, backfill marker not written") from exc
        log.info("Activity backfill added %d entries", len(derived))
        return BackfillResult(ran=True, added=len(derived))

    def _save(self, events: list[ActivityEvent]) -> None:
        try:
            self.store.save_activities(events)
        except StorageCapacityError as exc:
            raise StorageWriteError(
                f"Store is full, {len(events)} activity entries not written"
            ) from exc

    def _marker_stale(self, now: int) -> bool:
        marker = self.store.get_marker(BACKFILL_MARKER)
        if marker is None:
            return True
        try:
            marked_at = int(marker)
        except ValueError:
            log.warning("Ignoring unreadable backfill marker %r", marker)
            return True
        return now - marked_at >= self.backfill_interval_ms
