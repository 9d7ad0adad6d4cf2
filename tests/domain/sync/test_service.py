from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from reposync.adapters.memory import InMemoryTransport
from reposync.adapters.nostr import normalize_event, repository_filters
from reposync.domain.sync import SettlePolicy, SettleReason, sync_repositories
from tests.helpers.repositories import ALICE, tagged_event

if TYPE_CHECKING:
    from reposync.domain.model import RepositoryDraft
    from reposync.domain.ports.transport import RawEvent
    from reposync.domain.reconciliation import ReconciliationEngine
    from reposync.domain.sync import NormalizeEvent, SyncPassResult

FAST = SettlePolicy(quorum=3, timeout_seconds=0.05)


def _run(
    engine: ReconciliationEngine,
    transport: InMemoryTransport,
    normalize: NormalizeEvent = normalize_event,
) -> SyncPassResult:
    return asyncio.run(
        sync_repositories(
            engine=engine,
            transport=transport,
            sources=transport.sources,
            filters=repository_filters(),
            normalize=normalize,
            policy=FAST,
        )
    )


def test_pass_reconciles_announcements_from_every_source(engine: ReconciliationEngine) -> None:
    transport = InMemoryTransport()
    shared = tagged_event(event_id="shared")
    transport.add("a", shared)
    transport.add("b", shared, tagged_event(event_id="other", tags=[["d", "tools"]]))

    result = _run(engine, transport)

    assert (result.received, result.duplicates, result.accepted) == (3, 1, 2)
    assert result.settled_by is SettleReason.QUORUM
    assert result.sources_ended == ("a", "b")
    assert sorted(record.repo_name for record in engine.records()) == ["demo", "tools"]


def test_malformed_announcements_are_skipped(engine: ReconciliationEngine) -> None:
    transport = InMemoryTransport()
    transport.add(
        "a",
        tagged_event(event_id="nameless", tags=[["t", "nostr"]]),
        {"id": "no-author", "kind": 30617, "created_at": 1},
        tagged_event(event_id="good"),
    )

    result = _run(engine, transport)

    assert result.skipped == 2
    assert result.accepted == 1


def test_stale_versions_are_rejected(engine: ReconciliationEngine) -> None:
    transport = InMemoryTransport()
    transport.add(
        "a",
        tagged_event(event_id="new", created_at=1_700_000_100),
        tagged_event(event_id="old", created_at=1_700_000_000),
    )

    result = _run(engine, transport)

    assert (result.accepted, result.rejected) == (1, 1)
    [record] = engine.records()
    assert record.last_source_event_id == "new"
    assert record.canonical_owner_key == ALICE


def test_failing_event_does_not_abort_the_pass(engine: ReconciliationEngine) -> None:
    transport = InMemoryTransport()
    transport.add("a", tagged_event(event_id="bad"), tagged_event(event_id="good"))

    def normalize(raw: RawEvent) -> RepositoryDraft | None:
        if raw.get("id") == "bad":
            raise ValueError("cannot translate")
        return normalize_event(raw)

    result = _run(engine, transport, normalize)

    assert result.failed == 1
    assert result.accepted == 1


def test_pass_without_sources_reports_no_sources(engine: ReconciliationEngine) -> None:
    result = _run(engine, InMemoryTransport())

    assert result.received == 0
    assert result.settled_by is SettleReason.NO_SOURCES
