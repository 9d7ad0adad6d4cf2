"""Leaderboards and contribution graphs derived from activity entries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from reposync.domain.model import ActivityType
from reposync.domain.timestamps import day_bucket, millis_to_datetime, now_millis, to_millis

if TYPE_CHECKING:
    from collections.abc import Iterable

    from reposync.domain.model import ActivityEvent


@dataclass(slots=True)
class RepoStats:
    repo_ref: str
    activity_count: int = 0
    pr_count: int = 0
    commit_count: int = 0
    issue_count: int = 0
    zap_count: int = 0
    last_activity: int = 0


@dataclass(slots=True)
class UserStats:
    actor_key: str
    activity_count: int = 0
    pr_count: int = 0
    pr_merged_count: int = 0
    commit_count: int = 0
    bounty_claimed_count: int = 0
    repos_created_count: int = 0
    last_activity: int = 0


def repo_stats(events: Iterable[ActivityEvent]) -> dict[str, RepoStats]:
    stats: dict[str, RepoStats] = {}
    for event in events:
        if not event.repo_ref:
            continue
        ref = event.repo_ref.lower()
        entry = stats.setdefault(ref, RepoStats(repo_ref=event.repo_ref))
        entry.activity_count += 1
        entry.last_activity = max(entry.last_activity, to_millis(event.timestamp))
        match event.type:
            case ActivityType.PR_CREATED | ActivityType.PR_MERGED:
                entry.pr_count += 1
            case ActivityType.COMMIT_CREATED:
                entry.commit_count += 1
            case ActivityType.ISSUE_CREATED:
                entry.issue_count += 1
            case ActivityType.REPO_ZAPPED:
                entry.zap_count += 1
            case _:
                pass
    return stats


def user_stats(events: Iterable[ActivityEvent]) -> dict[str, UserStats]:
    stats: dict[str, UserStats] = {}
    for event in events:
        actor = event.actor_key.lower()
        entry = stats.setdefault(actor, UserStats(actor_key=actor))
        entry.activity_count += 1
        entry.last_activity = max(entry.last_activity, to_millis(event.timestamp))
        match event.type:
            case ActivityType.PR_CREATED:
                entry.pr_count += 1
            case ActivityType.PR_MERGED:
                entry.pr_merged_count += 1
            case ActivityType.COMMIT_CREATED:
                entry.commit_count += 1
            case ActivityType.BOUNTY_CLAIMED:
                entry.bounty_claimed_count += 1
            case ActivityType.REPO_CREATED | ActivityType.REPO_IMPORTED:
                entry.repos_created_count += 1
            case _:
                pass
    return stats


def top_repos(events: Iterable[ActivityEvent], *, limit: int = 10) -> list[RepoStats]:
    ranked = sorted(
        repo_stats(events).values(),
        key=lambda entry: (entry.activity_count, entry.last_activity),
        reverse=True,
    )
    return ranked[:limit]


def top_users(events: Iterable[ActivityEvent], *, limit: int = 10) -> list[UserStats]:
    ranked = sorted(
        user_stats(events).values(),
        key=lambda entry: (entry.activity_count, entry.last_activity),
        reverse=True,
    )
    return ranked[:limit]


def top_by_type(
    events: Iterable[ActivityEvent],
    activity_type: ActivityType,
    *,
    limit: int = 10,
) -> list[tuple[str, int]]:
    """Actors ranked by how many ``activity_type`` entries they have."""

    counter = Counter(event.actor_key.lower() for event in events if event.type is activity_type)
    return counter.most_common(limit)


def contribution_graph(
    events: Iterable[ActivityEvent],
    *,
    days: int = 365,
    now: int | None = None,
) -> list[tuple[str, int]]:
    """Per-day entry counts for the last ``days`` days, oldest first."""

    end = millis_to_datetime(now if now is not None else now_millis()).date()
    counter = Counter(day_bucket(event.timestamp) for event in events)
    return [
        (day.isoformat(), counter.get(day.isoformat(), 0))
        for day in (end - timedelta(days=offset) for offset in range(days - 1, -1, -1))
    ]
