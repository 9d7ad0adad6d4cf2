from __future__ import annotations

import json

from reposync.adapters.kv_state import (
    ACTIVITIES_KEY,
    REPOSITORIES_KEY,
    TOMBSTONES_KEY,
    KeyValueStateStore,
    marker_key,
)
from reposync.adapters.memory import InMemoryKeyValueStore
from reposync.domain.model import (
    ActivityType,
    Contributor,
    ContributorRole,
    Provenance,
    Release,
    Tombstone,
)
from reposync.domain.ports import StateStore
from tests.helpers.repositories import ALICE, BOB, NOW, make_activity, make_record


def test_collections_persist_under_their_keys(
    kv: InMemoryKeyValueStore, state_store: KeyValueStateStore
) -> None:
    record = make_record(
        provenance=Provenance.LOCAL,
        topics=("nostr",),
        releases=(Release(tag="v1", created_at=NOW),),
        contributors=(
            Contributor(pubkey=ALICE, weight=100, role=ContributorRole.OWNER),
            Contributor(pubkey=BOB, weight=10),
        ),
    )
    tombstone = Tombstone(owner_identity=ALICE, repo_name="gone", deleted_at=NOW, owner_key=ALICE)
    activity = make_activity(ActivityType.PR_MERGED, repo_ref=record.repo_ref)

    state_store.save_repositories([record])
    state_store.save_tombstones([tombstone])
    state_store.save_activities([activity])

    assert state_store.load_repositories() == [record]
    assert state_store.load_tombstones() == [tombstone]
    assert state_store.load_activities() == [activity]
    assert json.loads(kv.entries[REPOSITORIES_KEY])[0]["provenance"] == "local"
    assert {REPOSITORIES_KEY, TOMBSTONES_KEY, ACTIVITIES_KEY} <= set(kv.entries)
    assert isinstance(state_store, StateStore)


def test_missing_or_unreadable_collections_load_empty(kv: InMemoryKeyValueStore) -> None:
    store = KeyValueStateStore(kv)
    kv.set(TOMBSTONES_KEY, "{not json")
    kv.set(ACTIVITIES_KEY, json.dumps({"not": "a list"}))

    assert store.load_repositories() == []
    assert store.load_tombstones() == []
    assert store.load_activities() == []


def test_invalid_entries_are_dropped_individually(kv: InMemoryKeyValueStore) -> None:
    store = KeyValueStateStore(kv)
    store.save_activities([make_activity(event_id="good")])
    payload = json.loads(kv.entries[ACTIVITIES_KEY])
    payload.append({"id": "bad", "type": "not-a-type"})
    kv.set(ACTIVITIES_KEY, json.dumps(payload))

    assert [event.id for event in store.load_activities()] == ["good"]


def test_markers_are_namespaced(kv: InMemoryKeyValueStore) -> None:
    store = KeyValueStateStore(kv)

    store.set_marker("backfill", "123")

    assert store.get_marker("backfill") == "123"
    assert kv.get(marker_key("backfill")) == "123"
    assert store.get_marker("other") is None
