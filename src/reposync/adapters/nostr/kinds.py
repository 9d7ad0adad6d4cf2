"""Event kinds and subscription filters used on the wire."""

from __future__ import annotations

from typing import Final

KIND_DELETION: Final[int] = 5
KIND_REPOSITORY: Final[int] = 51
KIND_ISSUE_NIP34: Final[int] = 1621
KIND_STATUS_APPLIED: Final[int] = 1631
KIND_ZAP: Final[int] = 9735
KIND_ISSUE: Final[int] = 9803
KIND_PULL_REQUEST: Final[int] = 9804
KIND_BOUNTY: Final[int] = 9806
KIND_REPOSITORY_ANNOUNCEMENT: Final[int] = 30617
KIND_REPOSITORY_STATE: Final[int] = 30618

REPOSITORY_KINDS: Final[tuple[int, ...]] = (KIND_REPOSITORY, KIND_REPOSITORY_ANNOUNCEMENT)


def repository_filters(authors: list[str] | None = None) -> list[dict[str, object]]:
    announcement: dict[str, object] = {"kinds": list(REPOSITORY_KINDS)}
    if authors:
        announcement["authors"] = authors
    return [announcement]


def activity_filters(actor_key: str) -> list[dict[str, object]]:
    """Filters for the events that corroborate an actor's counters."""

    return [
        {
            "kinds": [
                KIND_REPOSITORY_STATE,
                KIND_STATUS_APPLIED,
                KIND_PULL_REQUEST,
                KIND_ISSUE,
                KIND_ISSUE_NIP34,
            ],
            "authors": [actor_key],
        },
        {"kinds": [KIND_BOUNTY], "#p": [actor_key]},
    ]
