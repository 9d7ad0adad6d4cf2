"""Collapse records that name the same logical repository.

Records keyed under a stale identity encoding (an 8-character prefix, say) are
re-resolved against the supplied snapshot before grouping, so they fall into
the same group as their fully resolved sibling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from reposync.domain.identity import EMPTY_INDEX, IdentityIndex, resolve_key
from reposync.domain.model import PROVENANCE_RANK, normalize_repo_name
from reposync.domain.timestamps import to_millis

if TYPE_CHECKING:
    from collections.abc import Iterable

    from reposync.domain.model import CompositeKey, RepositoryRecord


class DeduplicateRepositories(Protocol):
    """Return one record per composite key."""

    def __call__(
        self,
        records: Iterable[RepositoryRecord],
        *,
        index: IdentityIndex,
    ) -> list[RepositoryRecord]: ...


def dedupe_key(record: RepositoryRecord, *, index: IdentityIndex = EMPTY_INDEX) -> CompositeKey:
    owner = (
        record.canonical_owner_key
        or resolve_key(record.display_identity, index=index)
        or record.display_identity.strip().lower()
    )
    return (owner, normalize_repo_name(record.repo_name))


def preference(record: RepositoryRecord) -> tuple[bool, int, int]:
    """Sort key: confirmed event id, then newest timestamp, then provenance rank."""

    return (
        record.last_source_event_id is not None,
        to_millis(record.source_timestamp),
        PROVENANCE_RANK[record.provenance],
    )


def dedupe(
    records: Iterable[RepositoryRecord],
    *,
    index: IdentityIndex = EMPTY_INDEX,
) -> list[RepositoryRecord]:
    """Keep the preferred record for every composite key, in first-seen order."""

    chosen: dict[CompositeKey, RepositoryRecord] = {}
    for record in records:
        key = dedupe_key(record, index=index)
        current = chosen.get(key)
        if current is None or preference(record) > preference(current):
            chosen[key] = record
    return list(chosen.values())


if TYPE_CHECKING:
    _dedupe_check: DeduplicateRepositories = dedupe
