"""Corroborated activity counts queried from sources."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from reposync.domain.activity import ActivityCounts, CountCategory
from reposync.domain.sync import SettlePolicy, SubscriptionStream

from .kinds import (
    KIND_BOUNTY,
    KIND_ISSUE,
    KIND_ISSUE_NIP34,
    KIND_PULL_REQUEST,
    KIND_REPOSITORY_STATE,
    KIND_STATUS_APPLIED,
    activity_filters,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reposync.domain.ports.transport import RawEvent, SourceTransport

log = getLogger(__name__)


def _tags(event: RawEvent) -> list[list[str]]:
    tags = event.get("tags")
    if not isinstance(tags, list):
        return []
    return [
        [str(item) for item in tag]
        for tag in tags
        if isinstance(tag, list) and tag
    ]


def categorize_event(event: RawEvent, actor_key: str) -> CountCategory | None:
    """Counter category an event corroborates for ``actor_key``, if any."""

    kind = event.get("kind")
    author = str(event.get("pubkey", "")).lower()
    tags = _tags(event)

    if kind == KIND_BOUNTY:
        claimed = any(
            tag[0] == "p" and len(tag) > 2 and tag[1].lower() == actor_key and tag[2] == "claimed_by"
            for tag in tags
        )
        return CountCategory.BOUNTIES_CLAIMED if claimed else None
    if author != actor_key:
        return None
    if kind == KIND_REPOSITORY_STATE:
        return CountCategory.PUSHES
    if kind == KIND_STATUS_APPLIED:
        return CountCategory.MERGED_CHANGES
    if kind == KIND_PULL_REQUEST:
        merged = any(tag[0] == "status" and len(tag) > 1 and tag[1] == "merged" for tag in tags)
        return CountCategory.MERGED_CHANGES if merged else None
    if kind in {KIND_ISSUE, KIND_ISSUE_NIP34}:
        return CountCategory.ISSUES_OPENED
    return None


@dataclass(slots=True)
class SourceCountQuery:
    """Count an actor's events across sources until the subscription settles."""

    transport: SourceTransport
    sources: Sequence[str]
    policy: SettlePolicy = field(default_factory=SettlePolicy)

    async def __call__(self, actor_key: str) -> ActivityCounts:
        key = actor_key.lower()
        counter: Counter[CountCategory] = Counter()
        seen: set[str] = set()
        async with SubscriptionStream(
            self.transport, activity_filters(key), self.sources, policy=self.policy
        ) as stream:
            async for item in stream:
                event_id = item.event.get("id")
                if isinstance(event_id, str):
                    if event_id in seen:
                        continue
                    seen.add(event_id)
                category = categorize_event(item.event, key)
                if category is not None:
                    counter[category] += 1
        log.debug("Counted %s for %s (settled by %s)", dict(counter), key, stream.settled_by)
        return ActivityCounts.from_categories(counter)
