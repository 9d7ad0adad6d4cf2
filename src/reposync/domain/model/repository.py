"""Repository records, drafts and tombstones."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .enums import ContributorRole, Provenance

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

OWNER_WEIGHT: Final[int] = 100
MAINTAINER_WEIGHT: Final[int] = 50

type CompositeKey = tuple[str, str]


def normalize_repo_name(name: str) -> str:
    return name.strip().lower()


def role_for_weight(weight: int) -> ContributorRole:
    if weight >= OWNER_WEIGHT:
        return ContributorRole.OWNER
    if weight >= MAINTAINER_WEIGHT:
        return ContributorRole.MAINTAINER
    return ContributorRole.CONTRIBUTOR


@dataclass(frozen=True, slots=True)
class Contributor:
    pubkey: str
    weight: int = 0
    role: ContributorRole | None = None


@dataclass(frozen=True, slots=True)
class Release:
    tag: str
    name: str | None = None
    description: str | None = None
    created_at: int | None = None


def normalize_contributors(
    contributors: Iterable[Contributor],
    *,
    owner_key: str | None,
) -> tuple[Contributor, ...]:
    """Enforce the single-owner invariant on a contributor list.

    The owner (when known) is always first with weight 100. Every other entry is
    capped below the owner weight and keeps an explicit non-owner role, or one
    derived from its weight.
    """

    owner = owner_key.lower() if owner_key else None
    seen: set[str] = set()
    others: list[Contributor] = []
    fallback_owner: Contributor | None = None

    for contributor in contributors:
        pubkey = contributor.pubkey.strip().lower()
        if not pubkey or pubkey in seen:
            continue
        seen.add(pubkey)
        if pubkey == owner:
            continue
        if owner is None and fallback_owner is None and contributor.weight >= OWNER_WEIGHT:
            fallback_owner = Contributor(
                pubkey=pubkey, weight=OWNER_WEIGHT, role=ContributorRole.OWNER
            )
            continue
        weight = max(0, min(contributor.weight, OWNER_WEIGHT - 1))
        if weight != contributor.weight:
            log.debug("Clamped contributor %s weight %s -> %s", pubkey, contributor.weight, weight)
        role = contributor.role
        if role is None or role is ContributorRole.OWNER:
            role = role_for_weight(weight)
        others.append(Contributor(pubkey=pubkey, weight=weight, role=role))

    if owner is not None:
        head = Contributor(pubkey=owner, weight=OWNER_WEIGHT, role=ContributorRole.OWNER)
        return (head, *others)
    if fallback_owner is not None:
        return (fallback_owner, *others)
    return tuple(others)


@dataclass(frozen=True, slots=True, kw_only=True)
class RepositoryDraft:
    """Canonical shape of one repository announcement before reconciliation."""

    owner_identity: str
    repo_name: str
    source_timestamp: int
    source_event_id: str | None = None
    provenance: Provenance = Provenance.SYNCED
    display_name: str | None = None
    description: str = ""
    topics: tuple[str, ...] = ()
    branches: tuple[str, ...] = ()
    releases: tuple[Release, ...] = ()
    contributors: tuple[Contributor, ...] = ()
    clone_urls: tuple[str, ...] = ()
    relays: tuple[str, ...] = ()
    web: tuple[str, ...] = ()
    maintainers: tuple[str, ...] = ()
    earliest_unique_commit: str | None = None
    source_url: str | None = None
    forked_from: str | None = None
    default_branch: str | None = None
    deleted: bool = False
    archived: bool = False


@dataclass(slots=True, kw_only=True)
class RepositoryRecord:
    """Cached repository state for one composite key."""

    canonical_owner_key: str | None
    display_identity: str
    repo_name: str
    source_timestamp: int
    last_source_event_id: str | None = None
    provenance: Provenance = Provenance.SYNCED
    created_at: int | None = None
    display_name: str | None = None
    description: str = ""
    topics: tuple[str, ...] = ()
    branches: tuple[str, ...] = ()
    releases: tuple[Release, ...] = ()
    contributors: tuple[Contributor, ...] = ()
    clone_urls: tuple[str, ...] = ()
    relays: tuple[str, ...] = ()
    web: tuple[str, ...] = ()
    maintainers: tuple[str, ...] = ()
    earliest_unique_commit: str | None = None
    source_url: str | None = None
    forked_from: str | None = None
    default_branch: str | None = None
    deleted: bool = False
    archived: bool = False

    @property
    def owner_identity(self) -> str:
        """Owner key if resolved, else the identity string the record was keyed under."""

        return self.canonical_owner_key or self.display_identity.strip().lower()

    @property
    def composite_key(self) -> CompositeKey:
        return (self.owner_identity, normalize_repo_name(self.repo_name))

    @property
    def needs_resolution(self) -> bool:
        return self.canonical_owner_key is None

    @property
    def repo_ref(self) -> str:
        return f"{self.display_identity}/{self.repo_name}"

    @classmethod
    def from_draft(
        cls,
        draft: RepositoryDraft,
        *,
        canonical_owner_key: str | None,
        display_identity: str,
        created_at: int | None = None,
    ) -> RepositoryRecord:
        return cls(
            canonical_owner_key=canonical_owner_key,
            display_identity=display_identity,
            repo_name=normalize_repo_name(draft.repo_name),
            source_timestamp=draft.source_timestamp,
            last_source_event_id=draft.source_event_id,
            provenance=draft.provenance,
            created_at=created_at if created_at is not None else draft.source_timestamp,
            display_name=draft.display_name or draft.repo_name.strip(),
            description=draft.description,
            topics=draft.topics,
            branches=draft.branches,
            releases=draft.releases,
            contributors=normalize_contributors(
                draft.contributors, owner_key=canonical_owner_key
            ),
            clone_urls=draft.clone_urls,
            relays=draft.relays,
            web=draft.web,
            maintainers=draft.maintainers,
            earliest_unique_commit=draft.earliest_unique_commit,
            source_url=draft.source_url,
            forked_from=draft.forked_from,
            default_branch=draft.default_branch,
            deleted=draft.deleted,
            archived=draft.archived,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class Tombstone:
    """Local deletion marker for ``(owner_identity, repo_name)``."""

    owner_identity: str
    repo_name: str
    deleted_at: int
    owner_key: str | None = None
