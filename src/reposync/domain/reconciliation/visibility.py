"""Corruption and tombstone filtering for cached repositories.

Every read path goes through :func:`visible_repositories`; records are filtered
here, never removed from storage.
"""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from reposync.domain.identity import (
    EMPTY_INDEX,
    IdentityIndex,
    IdentityKind,
    classify_identity,
    decode_npub,
    resolve_key,
    tombstone_key,
)
from reposync.domain.model import normalize_repo_name

from .deduplicate import dedupe

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from reposync.domain.model import RepositoryRecord, Tombstone

log = getLogger(__name__)


class CorruptionReason(StrEnum):
    MISSING_REPO_NAME = "missing_repo_name"
    MISSING_IDENTITY = "missing_identity"
    DOMAIN_IDENTITY = "domain_identity"
    UNRECOGNIZED_IDENTITY = "unrecognized_identity"
    UNDECODABLE_NPUB = "undecodable_npub"
    OWNER_MISMATCH = "owner_mismatch"


class HiddenReason(StrEnum):
    CORRUPT = "corrupt"
    TOMBSTONED = "tombstoned"
    DELETED = "deleted"
    ARCHIVED = "archived"


class FilterRepositories(Protocol):
    def __call__(
        self,
        records: Iterable[RepositoryRecord],
        *,
        tombstones: Sequence[Tombstone],
        index: IdentityIndex,
    ) -> list[RepositoryRecord]: ...


def corruption_reason(record: RepositoryRecord) -> CorruptionReason | None:
    """Return why ``record`` fails the identity encoding check, if it does."""

    identity = record.display_identity.strip()
    if not record.repo_name.strip():
        return CorruptionReason.MISSING_REPO_NAME
    if not identity:
        return CorruptionReason.MISSING_IDENTITY

    owner = record.canonical_owner_key
    match classify_identity(identity):
        case IdentityKind.NPUB:
            decoded = decode_npub(identity)
            if decoded is None:
                return CorruptionReason.UNDECODABLE_NPUB
            if owner is not None and decoded != owner:
                return CorruptionReason.OWNER_MISMATCH
        case IdentityKind.HEX:
            if owner is not None and identity.lower() != owner:
                return CorruptionReason.OWNER_MISMATCH
        case IdentityKind.SHORT:
            if owner is not None and not owner.startswith(identity.lower()):
                return CorruptionReason.OWNER_MISMATCH
        case _:
            # website hosts and name@domain strings were stored as owners by older clients
            if "." in identity:
                return CorruptionReason.DOMAIN_IDENTITY
            return CorruptionReason.UNRECOGNIZED_IDENTITY
    return None


def find_tombstone(
    owner_identity: str,
    repo_name: str,
    tombstones: Iterable[Tombstone],
    *,
    owner_key: str | None = None,
    index: IdentityIndex = EMPTY_INDEX,
) -> Tombstone | None:
    """Find a tombstone by raw identity string or, failing that, canonical key."""

    name = normalize_repo_name(repo_name)
    raw_identity = owner_identity.strip().lower()
    resolved_key = owner_key
    key_computed = owner_key is not None

    for tombstone in tombstones:
        if normalize_repo_name(tombstone.repo_name) != name:
            continue
        if tombstone.owner_identity.strip().lower() == raw_identity:
            return tombstone
        if not key_computed:
            resolved_key = resolve_key(owner_identity, index=index)
            key_computed = True
        if resolved_key is not None and tombstone_key(tombstone, index=index) == resolved_key:
            return tombstone
    return None


def matching_tombstone(
    record: RepositoryRecord,
    tombstones: Iterable[Tombstone],
    *,
    index: IdentityIndex = EMPTY_INDEX,
) -> Tombstone | None:
    return find_tombstone(
        record.display_identity,
        record.repo_name,
        tombstones,
        owner_key=record.canonical_owner_key,
        index=index,
    )


def hidden_reason(
    record: RepositoryRecord,
    *,
    tombstones: Sequence[Tombstone] = (),
    index: IdentityIndex = EMPTY_INDEX,
) -> HiddenReason | None:
    corruption = corruption_reason(record)
    if corruption is not None:
        log.debug("Hiding corrupt record %s: %s", record.repo_ref, corruption.value)
        return HiddenReason.CORRUPT
    if matching_tombstone(record, tombstones, index=index) is not None:
        return HiddenReason.TOMBSTONED
    if record.deleted:
        return HiddenReason.DELETED
    if record.archived:
        return HiddenReason.ARCHIVED
    return None


def is_visible(
    record: RepositoryRecord,
    *,
    tombstones: Sequence[Tombstone] = (),
    index: IdentityIndex = EMPTY_INDEX,
) -> bool:
    return hidden_reason(record, tombstones=tombstones, index=index) is None


def filter_visible(
    records: Iterable[RepositoryRecord],
    *,
    tombstones: Sequence[Tombstone] = (),
    index: IdentityIndex = EMPTY_INDEX,
) -> list[RepositoryRecord]:
    return [
        record for record in records if is_visible(record, tombstones=tombstones, index=index)
    ]


def visible_repositories(
    records: Iterable[RepositoryRecord],
    *,
    tombstones: Sequence[Tombstone] = (),
    index: IdentityIndex = EMPTY_INDEX,
) -> list[RepositoryRecord]:
    """Filter then deduplicate ``records`` into the view consumers read."""

    return dedupe(filter_visible(records, tombstones=tombstones, index=index), index=index)


if TYPE_CHECKING:
    _filter_check: FilterRepositories = filter_visible
