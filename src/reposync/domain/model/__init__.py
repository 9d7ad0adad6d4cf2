"""Domain model for cached repositories and activity."""

from __future__ import annotations

from .activity import ActivityEvent, MetadataValue
from .enums import PROVENANCE_RANK, ActivityType, ContributorRole, Provenance
from .repository import (
    MAINTAINER_WEIGHT,
    OWNER_WEIGHT,
    CompositeKey,
    Contributor,
    Release,
    RepositoryDraft,
    RepositoryRecord,
    Tombstone,
    normalize_contributors,
    normalize_repo_name,
    role_for_weight,
)

__all__ = [
    "MAINTAINER_WEIGHT",
    "OWNER_WEIGHT",
    "PROVENANCE_RANK",
    "ActivityEvent",
    "ActivityType",
    "CompositeKey",
    "Contributor",
    "ContributorRole",
    "MetadataValue",
    "Provenance",
    "Release",
    "RepositoryDraft",
    "RepositoryRecord",
    "Tombstone",
    "normalize_contributors",
    "normalize_repo_name",
    "role_for_weight",
]
