from __future__ import annotations

from reposync.domain.activity import (
    contribution_graph,
    repo_stats,
    top_by_type,
    top_repos,
    top_users,
)
from reposync.domain.model import ActivityEvent, ActivityType
from tests.helpers.repositories import ALICE, ALICE_NPUB, BOB, NOW, make_activity

DAY = 86_400_000
DEMO = f"{ALICE_NPUB}/demo"
OTHER = f"{ALICE_NPUB}/other"


def _events() -> list[ActivityEvent]:
    return [
        make_activity(ActivityType.COMMIT_CREATED, repo_ref=DEMO, event_id="1"),
        make_activity(ActivityType.PR_CREATED, repo_ref=DEMO, event_id="2"),
        make_activity(ActivityType.ISSUE_CREATED, actor=BOB, repo_ref=DEMO, event_id="3"),
        make_activity(ActivityType.REPO_ZAPPED, actor=BOB, repo_ref=OTHER, event_id="4"),
        make_activity(ActivityType.BOUNTY_CLAIMED, actor=BOB, event_id="5"),
        make_activity(ActivityType.REPO_CREATED, repo_ref=OTHER, event_id="6"),
    ]


def test_repo_stats_count_by_type() -> None:
    stats = repo_stats(_events())

    demo = stats[DEMO.lower()]
    assert (demo.activity_count, demo.commit_count, demo.pr_count, demo.issue_count) == (
        3,
        1,
        1,
        1,
    )
    assert stats[OTHER.lower()].zap_count == 1


def test_top_repos_and_users_rank_by_activity() -> None:
    events = _events()

    assert [entry.repo_ref for entry in top_repos(events)] == [DEMO, OTHER]
    users = top_users(events, limit=1)
    assert len(users) == 1
    assert users[0].actor_key == ALICE
    assert users[0].activity_count == 3


def test_top_users_break_ties_by_latest_activity() -> None:
    events = [
        make_activity(actor=ALICE, timestamp=NOW - DAY, event_id="a"),
        make_activity(actor=BOB, timestamp=NOW, event_id="b"),
    ]

    assert [entry.actor_key for entry in top_users(events)] == [BOB, ALICE]


def test_top_by_type_counts_one_activity_type() -> None:
    events = [
        *_events(),
        make_activity(ActivityType.BOUNTY_CLAIMED, actor=BOB, event_id="7"),
        make_activity(ActivityType.BOUNTY_CLAIMED, actor=ALICE, event_id="8"),
    ]

    assert top_by_type(events, ActivityType.BOUNTY_CLAIMED) == [(BOB, 2), (ALICE, 1)]


def test_contribution_graph_buckets_by_day() -> None:
    events = [
        make_activity(timestamp=NOW, event_id="today"),
        make_activity(timestamp=NOW - 1_000, event_id="today-too"),
        make_activity(timestamp=NOW - DAY, event_id="yesterday"),
    ]

    graph = contribution_graph(events, days=3, now=NOW)

    assert graph == [("2025-10-07", 0), ("2025-10-08", 1), ("2025-10-09", 2)]
