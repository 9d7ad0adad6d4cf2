"""Per-actor counters that never regress within a session.

Two count sources feed a displayed value: the local activity log and a
corroborated count queried from sources. The value shown is the maximum of the
two and of anything already shown for that actor during this session.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from reposync.domain.identity import EMPTY_INDEX, IdentityIndex, resolve_key
from reposync.domain.model import ActivityType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from reposync.domain.model import ActivityEvent, Tombstone

    from .log import ActivityLog

log = getLogger(__name__)


class CountCategory(StrEnum):
    PUSHES = "pushes"
    MERGED_CHANGES = "merged_changes"
    ISSUES_OPENED = "issues_opened"
    BOUNTIES_CLAIMED = "bounties_claimed"


CATEGORY_BY_ACTIVITY: dict[ActivityType, CountCategory] = {
    ActivityType.COMMIT_CREATED: CountCategory.PUSHES,
    ActivityType.PR_MERGED: CountCategory.MERGED_CHANGES,
    ActivityType.ISSUE_CREATED: CountCategory.ISSUES_OPENED,
    ActivityType.BOUNTY_CLAIMED: CountCategory.BOUNTIES_CLAIMED,
}


@dataclass(frozen=True, slots=True)
class ActivityCounts:
    pushes: int = 0
    merged_changes: int = 0
    issues_opened: int = 0
    bounties_claimed: int = 0
    total: int = 0

    @classmethod
    def from_categories(cls, counts: Mapping[CountCategory, int]) -> ActivityCounts:
        values = {category.value: counts.get(category, 0) for category in CountCategory}
        return cls(**values, total=sum(values.values()))

    def maximum(self, other: ActivityCounts) -> ActivityCounts:
        """Per-category maximum of two count sets; ``total`` is the sum of the maxima."""

        return ActivityCounts.from_categories(
            {
                category: max(getattr(self, category.value), getattr(other, category.value))
                for category in CountCategory
            }
        )


def local_counts(events: Iterable[ActivityEvent]) -> ActivityCounts:
    counter: Counter[CountCategory] = Counter()
    for event in events:
        category = CATEGORY_BY_ACTIVITY.get(event.type)
        if category is not None:
            counter[category] += 1
    return ActivityCounts.from_categories(counter)


class CorroboratedCountQuery(Protocol):
    """Query sources for an actor's counts (keyed by canonical key)."""

    async def __call__(self, actor_key: str) -> ActivityCounts: ...


class NoCountQueryError(RuntimeError):
    """Raised when corroborated counts are requested without a configured query."""


@dataclass(slots=True)
class StatsAggregator:
    log: ActivityLog
    query: CorroboratedCountQuery | None = None
    _corroborated: dict[str, ActivityCounts] = field(default_factory=dict[str, ActivityCounts])
    _shown: dict[str, ActivityCounts] = field(default_factory=dict[str, ActivityCounts])

    def counts(
        self,
        actor: str,
        *,
        tombstones: Sequence[Tombstone] = (),
        index: IdentityIndex = EMPTY_INDEX,
    ) -> ActivityCounts:
        """Counts to display for ``actor``: never lower than anything shown before."""

        session_key = self._session_key(actor, index=index)
        local = local_counts(self.log.events_for(actor, tombstones=tombstones, index=index))
        displayed = local.maximum(self._corroborated.get(session_key, ActivityCounts()))
        previous = self._shown.get(session_key)
        if previous is not None:
            displayed = displayed.maximum(previous)
        self._shown[session_key] = displayed
        return displayed

    async def refresh_from_sources(
        self,
        actor: str,
        *,
        index: IdentityIndex = EMPTY_INDEX,
    ) -> ActivityCounts:
        """Query sources for ``actor`` and remember the corroborated counts."""

        if self.query is None:
            raise NoCountQueryError("No corroborating source query configured")
        key = resolve_key(actor, index=index)
        if key is None:
            log.warning("Cannot query sources for unresolved actor %s", actor)
            return ActivityCounts()

        corroborated = await self.query(key)
        previous = self._corroborated.get(key)
        self._corroborated[key] = (
            corroborated if previous is None else corroborated.maximum(previous)
        )
        log.info("Corroborated counts for %s: %s", key, corroborated)
        return corroborated

    def _session_key(self, actor: str, *, index: IdentityIndex) -> str:
        return resolve_key(actor, index=index) or actor.strip().lower()
