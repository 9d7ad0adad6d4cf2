"""Enumerations shared across the domain model."""

from __future__ import annotations

from enum import StrEnum


class Provenance(StrEnum):
    """Where a repository record came from."""

    LOCAL = "local"
    SYNCED = "synced"
    IMPORTED_STATIC = "imported_static"


class ContributorRole(StrEnum):
    OWNER = "owner"
    MAINTAINER = "maintainer"
    CONTRIBUTOR = "contributor"


class ActivityType(StrEnum):
    REPO_CREATED = "repo_created"
    REPO_IMPORTED = "repo_imported"
    PR_CREATED = "pr_created"
    PR_MERGED = "pr_merged"
    COMMIT_CREATED = "commit_created"
    ISSUE_CREATED = "issue_created"
    ISSUE_CLOSED = "issue_closed"
    BOUNTY_CREATED = "bounty_created"
    BOUNTY_CLAIMED = "bounty_claimed"
    REPO_ZAPPED = "repo_zapped"
    FILE_EDITED = "file_edited"
    RELEASE_CREATED = "release_created"


PROVENANCE_RANK: dict[Provenance, int] = {
    Provenance.SYNCED: 2,
    Provenance.LOCAL: 1,
    Provenance.IMPORTED_STATIC: 0,
}
