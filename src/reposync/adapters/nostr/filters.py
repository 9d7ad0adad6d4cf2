"""Local evaluation of subscription filters against raw events."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reposync.domain.ports.transport import RawEvent, SubscriptionFilter


def _tag_values(event: RawEvent, name: str) -> set[str]:
    tags = event.get("tags")
    values: set[str] = set()
    if not isinstance(tags, Sequence):
        return values
    for tag in tags:
        if isinstance(tag, Sequence) and not isinstance(tag, str) and len(tag) >= 2:
            if tag[0] == name and isinstance(tag[1], str):
                values.add(tag[1])
    return values


def matches_filter(event: RawEvent, subscription_filter: SubscriptionFilter) -> bool:
    """Apply ``ids``/``kinds``/``authors``/``#tag``/``since``/``until`` constraints."""

    for name, expected in subscription_filter.items():
        if name in {"ids", "kinds", "authors"}:
            field_name = {"ids": "id", "kinds": "kind", "authors": "pubkey"}[name]
            if not isinstance(expected, Sequence) or event.get(field_name) not in expected:
                return False
        elif name.startswith("#") and len(name) == 2:
            if not isinstance(expected, Sequence) or not (
                _tag_values(event, name[1]) & {str(value) for value in expected}
            ):
                return False
        elif name in {"since", "until"}:
            created_at = event.get("created_at")
            if not isinstance(created_at, int) or not isinstance(expected, int):
                return False
            if name == "since" and created_at < expected:
                return False
            if name == "until" and created_at > expected:
                return False
    return True


def matches_any(event: RawEvent, filters: Sequence[SubscriptionFilter]) -> bool:
    if not filters:
        return True
    return any(matches_filter(event, item) for item in filters if isinstance(item, Mapping))
