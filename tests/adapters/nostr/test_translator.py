from __future__ import annotations

import json

from reposync.adapters.nostr import derive_source_url, filter_clone_urls, normalize_event
from reposync.domain.model import Contributor, ContributorRole, Provenance, Release
from tests.helpers.repositories import ALICE, BOB, tagged_event


def _legacy_event(content: object, *, tags: list[list[str]] | None = None) -> dict[str, object]:
    return {
        "id": "legacy-1",
        "kind": 51,
        "pubkey": ALICE,
        "created_at": 1_700_000_000,
        "tags": tags or [],
        "content": content if isinstance(content, str) else json.dumps(content),
    }


def test_tagged_announcement_becomes_a_draft() -> None:
    event = tagged_event(
        tags=[
            ["d", "demo"],
            ["name", "Demo Project"],
            ["description", "A demo"],
            ["t", "nostr"],
            ["t", "git"],
            ["clone", "https://github.com/alice/demo.git", "http://localhost:8080/demo.git"],
            ["relays", "wss://relay.one", "wss://relay.two"],
            ["web", "https://demo.example"],
            ["maintainers", BOB.upper()],
            ["p", BOB, "60", "maintainer"],
            ["r", "abc123", "euc"],
        ]
    )

    draft = normalize_event(event)

    assert draft is not None
    assert draft.owner_identity == ALICE
    assert draft.repo_name == "demo"
    assert draft.display_name == "Demo Project"
    assert draft.description == "A demo"
    assert draft.topics == ("nostr", "git")
    assert draft.clone_urls == ("https://github.com/alice/demo.git",)
    assert draft.relays == ("wss://relay.one", "wss://relay.two")
    assert draft.web == ("https://demo.example",)
    assert draft.maintainers == (BOB,)
    assert draft.contributors == (
        Contributor(pubkey=BOB, weight=60, role=ContributorRole.MAINTAINER),
    )
    assert draft.earliest_unique_commit == "abc123"
    assert draft.source_url == "https://github.com/alice/demo"
    assert draft.source_timestamp == 1_700_000_000_000
    assert draft.source_event_id == "e1"
    assert draft.provenance is Provenance.SYNCED


def test_tagged_announcement_falls_back_to_name_tag() -> None:
    draft = normalize_event(tagged_event(tags=[["name", "Only Name"]]))

    assert draft is not None
    assert draft.repo_name == "Only Name"


def test_legacy_announcement_reads_json_content() -> None:
    event = _legacy_event(
        {
            "repositoryName": "demo",
            "name": "Demo",
            "description": "Legacy demo",
            "clone": ["https://codeberg.org/alice/demo.git"],
            "topics": ["nostr"],
            "contributors": [{"pubkey": BOB, "weight": 10, "role": "contributor"}],
            "branches": ["main", {"name": "dev", "commit": "ff"}],
            "releases": [{"tag": "v1", "createdAt": 1_700_000_000}],
            "defaultBranch": "main",
            "forkedFrom": "npub1upstream/demo",
        },
        tags=[["clone", "https://gitlab.com/alice/demo"]],
    )

    draft = normalize_event(event)

    assert draft is not None
    assert draft.repo_name == "demo"
    assert draft.display_name == "Demo"
    assert draft.description == "Legacy demo"
    assert draft.branches == ("main", "dev")
    assert draft.releases == (Release(tag="v1", created_at=1_700_000_000),)
    assert draft.contributors == (
        Contributor(pubkey=BOB, weight=10, role=ContributorRole.CONTRIBUTOR),
    )
    assert draft.clone_urls == (
        "https://codeberg.org/alice/demo.git",
        "https://gitlab.com/alice/demo",
    )
    assert draft.source_url == "https://codeberg.org/alice/demo"
    assert draft.default_branch == "main"
    assert draft.forked_from == "npub1upstream/demo"


def test_legacy_announcement_uses_tags_when_content_is_sparse() -> None:
    event = _legacy_event({"deleted": True}, tags=[["d", "demo"], ["p", BOB, "5"]])

    draft = normalize_event(event)

    assert draft is not None
    assert draft.repo_name == "demo"
    assert draft.deleted
    assert draft.contributors == (Contributor(pubkey=BOB, weight=5),)


def test_malformed_events_are_skipped() -> None:
    assert normalize_event(_legacy_event("not json")) is None
    assert normalize_event(_legacy_event(["a", "list"])) is None
    assert normalize_event(_legacy_event({"description": "no name"})) is None
    assert normalize_event({"id": "x", "kind": 1, "pubkey": ALICE, "created_at": 1}) is None
    assert normalize_event({"kind": 30617, "pubkey": " ", "created_at": 1}) is None


def test_clone_urls_drop_loopback_and_duplicates() -> None:
    urls = [
        "https://github.com/a/b.git",
        " https://github.com/a/b.git ",
        "http://127.0.0.1/a.git",
        "git@localhost:a.git",
        "",
    ]

    assert filter_clone_urls(urls) == ("https://github.com/a/b.git",)


def test_source_url_only_for_known_forges() -> None:
    assert derive_source_url(["https://example.org/a/b.git"]) is None
    assert derive_source_url(["ssh://github.com/a/b.git"]) is None
    assert (
        derive_source_url(["https://example.org/x.git", "http://gitlab.com/a/b.git/"])
        == "https://gitlab.com/a/b"
    )
