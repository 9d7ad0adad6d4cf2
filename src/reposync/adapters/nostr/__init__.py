"""Nostr wire adapter: announcement schemas, translation and source queries."""

from __future__ import annotations

from .corroboration import SourceCountQuery, categorize_event
from .filters import matches_any, matches_filter
from .kinds import (
    KIND_REPOSITORY,
    KIND_REPOSITORY_ANNOUNCEMENT,
    REPOSITORY_KINDS,
    activity_filters,
    repository_filters,
)
from .schema import (
    ANNOUNCEMENT_ADAPTER,
    LegacyRepositoryContent,
    LegacyRepositoryEvent,
    TaggedRepositoryEvent,
)
from .translator import derive_source_url, filter_clone_urls, normalize_event

__all__ = [
    "ANNOUNCEMENT_ADAPTER",
    "KIND_REPOSITORY",
    "KIND_REPOSITORY_ANNOUNCEMENT",
    "REPOSITORY_KINDS",
    "LegacyRepositoryContent",
    "LegacyRepositoryEvent",
    "SourceCountQuery",
    "TaggedRepositoryEvent",
    "activity_filters",
    "categorize_event",
    "derive_source_url",
    "filter_clone_urls",
    "matches_any",
    "matches_filter",
    "normalize_event",
    "repository_filters",
]
