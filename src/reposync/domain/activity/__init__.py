"""Activity log, counters and leaderboards."""

from __future__ import annotations

from .leaderboards import (
    RepoStats,
    UserStats,
    contribution_graph,
    repo_stats,
    top_by_type,
    top_repos,
    top_users,
    user_stats,
)
from .log import (
    BACKFILL_MARKER,
    ActivityLog,
    BackfillResult,
    actor_matches,
    derive_repository_activities,
)
from .stats import (
    CATEGORY_BY_ACTIVITY,
    ActivityCounts,
    CorroboratedCountQuery,
    CountCategory,
    NoCountQueryError,
    StatsAggregator,
    local_counts,
)

__all__ = [
    "BACKFILL_MARKER",
    "CATEGORY_BY_ACTIVITY",
    "ActivityCounts",
    "ActivityLog",
    "BackfillResult",
    "CorroboratedCountQuery",
    "CountCategory",
    "NoCountQueryError",
    "RepoStats",
    "StatsAggregator",
    "UserStats",
    "actor_matches",
    "contribution_graph",
    "derive_repository_activities",
    "local_counts",
    "repo_stats",
    "top_by_type",
    "top_repos",
    "top_users",
    "user_stats",
]
