"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from reposync.adapters.kv_state import KeyValueStateStore
from reposync.adapters.nip05 import Nip05Resolver
from reposync.adapters.nostr import SourceCountQuery, normalize_event, repository_filters
from reposync.adapters.replay import JsonlReplayTransport
from reposync.adapters.sqlalchemy import SqlAlchemyKeyValueStore, is_started, startup
from reposync.config import (
    SyncConfig,
    get_activity_config,
    get_eviction_config,
    get_nip05_config,
    get_source_config,
    get_storage_config,
    get_sync_config,
)
from reposync.domain.activity import (
    ActivityCounts,
    ActivityLog,
    BackfillResult,
    RepoStats,
    StatsAggregator,
    UserStats,
    contribution_graph,
    top_by_type,
    top_repos,
    top_users,
)
from reposync.domain.identity import resolve_identity, resolve_with_lookup
from reposync.domain.reconciliation import ReconciliationEngine
from reposync.domain.sync import SettlePolicy, SyncPassResult, sync_repositories

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from reposync.domain.activity import CorroboratedCountQuery
    from reposync.domain.identity import IdentityResolution
    from reposync.domain.model import ActivityType, RepositoryRecord, Tombstone
    from reposync.domain.ports import IdentityLookup, KeyValueStore, StateStore
    from reposync.domain.reconciliation.visibility import HiddenReason

log = getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Wired engine, activity log and counters sharing one state store."""

    store: StateStore
    engine: ReconciliationEngine
    activity: ActivityLog
    stats: StatsAggregator


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_services(
    *,
    kv: KeyValueStore | None = None,
    query: CorroboratedCountQuery | None = None,
) -> Services:
    """Wire the domain services over ``kv`` (the SQL store by default)."""

    if kv is None:
        _ensure_started()
        kv = SqlAlchemyKeyValueStore(max_bytes=get_storage_config().max_bytes)
    store = KeyValueStateStore(kv)
    eviction = get_eviction_config()
    activity_config = get_activity_config()
    engine = ReconciliationEngine(
        store,
        eviction_fraction=eviction.fraction,
        recent_activity_ms=eviction.recent_activity_ms,
    )
    activity = ActivityLog(
        store,
        max_age_ms=activity_config.max_age_ms,
        max_entries=activity_config.max_entries,
        backfill_interval_ms=activity_config.backfill_interval_ms,
    )
    return Services(
        store=store,
        engine=engine,
        activity=activity,
        stats=StatsAggregator(activity, query=query),
    )


def settle_policy(config: SyncConfig | None = None) -> SettlePolicy:
    effective = config or get_sync_config()
    return SettlePolicy(
        quorum=effective.settle_quorum,
        timeout_seconds=effective.settle_timeout_seconds,
    )


def select_sources(available: Sequence[str], configured: Sequence[str] = ()) -> tuple[str, ...]:
    """Sources to subscribe to: the configured ones, else everything available."""

    wanted = tuple(configured) or get_source_config().sources
    if not wanted:
        return tuple(available)
    missing = [source for source in wanted if source not in available]
    if missing:
        log.warning("Configured sources without recorded events: %s", ", ".join(missing))
    return wanted


def ingest_event_file(
    path: Path,
    *,
    services: Services | None = None,
    sync_config: SyncConfig | None = None,
    sources: Sequence[str] = (),
) -> SyncPassResult:
    """Run one reconciliation pass over the events recorded in ``path``."""

    effective = services or build_services()
    transport = JsonlReplayTransport(path)
    selected = select_sources(transport.sources, sources)
    log.info("Ingesting %s from %d sources", path, len(selected))
    result = asyncio.run(
        sync_repositories(
            engine=effective.engine,
            transport=transport,
            sources=selected,
            filters=repository_filters(),
            normalize=normalize_event,
            policy=settle_policy(sync_config),
        )
    )
    resolved = effective.engine.re_resolve()
    if resolved:
        log.info("Resolved %d previously unresolved owners", resolved)
    return result


def list_repositories(*, services: Services | None = None) -> list[RepositoryRecord]:
    return (services or build_services()).engine.visible()


def list_hidden_repositories(
    *, services: Services | None = None
) -> list[tuple[RepositoryRecord, HiddenReason]]:
    return (services or build_services()).engine.hidden()


def delete_repository(
    owner_identity: str,
    repo_name: str,
    *,
    services: Services | None = None,
) -> Tombstone:
    return (services or build_services()).engine.tombstone(owner_identity, repo_name)


def resolve_identifier(
    identifier: str,
    *,
    services: Services | None = None,
    lookup: IdentityLookup | None = None,
    allow_lookup: bool = True,
) -> IdentityResolution:
    """Resolve any owner encoding, including ``name@domain`` via NIP-05."""

    index = (services or build_services()).engine.index()
    if not allow_lookup:
        return resolve_identity(identifier, index=index)
    effective_lookup = lookup or Nip05Resolver(config=get_nip05_config())
    return resolve_with_lookup(identifier, lookup=effective_lookup, index=index)


def activity_counts(
    actor: str,
    *,
    services: Services | None = None,
    refresh_file: Path | None = None,
    sync_config: SyncConfig | None = None,
) -> ActivityCounts:
    """Counters for ``actor``; ``refresh_file`` adds counts corroborated by its sources."""

    effective = services or build_services()
    engine = effective.engine
    index = engine.index()
    if refresh_file is not None:
        transport = JsonlReplayTransport(refresh_file)
        effective.stats.query = SourceCountQuery(
            transport, select_sources(transport.sources), policy=settle_policy(sync_config)
        )
        asyncio.run(effective.stats.refresh_from_sources(actor, index=index))
    return effective.stats.counts(actor, tombstones=engine.tombstones(), index=index)


def leaderboards(
    *,
    services: Services | None = None,
    limit: int = 10,
) -> tuple[list[RepoStats], list[UserStats]]:
    effective = services or build_services()
    events = effective.activity.visible_events(
        tombstones=effective.engine.tombstones(), index=effective.engine.index()
    )
    return top_repos(events, limit=limit), top_users(events, limit=limit)


def run_backfill(*, services: Services | None = None, force: bool = False) -> BackfillResult:
    effective = services or build_services()
    return effective.activity.backfill(effective.engine.records(), force=force)


def ranked_actors(
    activity_type: ActivityType,
    *,
    services: Services | None = None,
    limit: int = 10,
) -> list[tuple[str, int]]:
    """Actors with the most ``activity_type`` entries, e.g. merges or bounty claims."""

    effective = services or build_services()
    events = effective.activity.visible_events(
        tombstones=effective.engine.tombstones(), index=effective.engine.index()
    )
    return top_by_type(events, activity_type, limit=limit)


def activity_graph(
    actor: str,
    *,
    services: Services | None = None,
    days: int = 365,
) -> list[tuple[str, int]]:
    effective = services or build_services()
    engine = effective.engine
    events = effective.activity.events_for(
        actor, tombstones=engine.tombstones(), index=engine.index()
    )
    return contribution_graph(events, days=days)
