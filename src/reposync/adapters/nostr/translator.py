"""Translate validated announcements into repository drafts."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import urlparse

from pydantic import ValidationError

from reposync.domain.model import (
    Contributor,
    ContributorRole,
    Provenance,
    Release,
    RepositoryDraft,
)
from reposync.domain.timestamps import seconds_to_millis

from .schema import (
    ANNOUNCEMENT_ADAPTER,
    EventEnvelope,
    LegacyRepositoryEvent,
    TaggedRepositoryEvent,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from reposync.domain.ports.transport import RawEvent

log = getLogger(__name__)

LOCAL_HOSTS: Final[frozenset[str]] = frozenset({"localhost", "127.0.0.1"})
SOURCE_HOSTS: Final[frozenset[str]] = frozenset({"github.com", "gitlab.com", "codeberg.org"})


def normalize_event(raw: RawEvent) -> RepositoryDraft | None:
    """Return a draft for a repository announcement, or ``None`` if it is malformed."""

    event_id = raw.get("id") if isinstance(raw, Mapping) else None
    try:
        announcement = ANNOUNCEMENT_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        log.warning(
            "Skipping malformed announcement %s: %s",
            event_id,
            "; ".join(error["msg"] for error in exc.errors()),
        )
        return None

    if isinstance(announcement, LegacyRepositoryEvent):
        return draft_from_legacy(announcement)
    return draft_from_tags(announcement)


def draft_from_legacy(event: LegacyRepositoryEvent) -> RepositoryDraft | None:
    content = event.repository
    repo_name = content.repository_name or content.name or event.first_tag("d")
    if not repo_name:
        log.warning("Skipping kind 51 event %s without a repository name", event.id)
        return None

    contributors = [
        Contributor(
            pubkey=item.pubkey,
            weight=item.weight,
            role=_parse_role(item.role),
        )
        for item in content.contributors
    ] or _contributors_from_tags(event)
    clone_urls = filter_clone_urls([*content.clone, *event.tag_values("clone")])

    return RepositoryDraft(
        owner_identity=event.pubkey,
        repo_name=repo_name,
        display_name=content.name or repo_name,
        source_timestamp=seconds_to_millis(event.created_at),
        source_event_id=event.id,
        provenance=Provenance.SYNCED,
        description=content.description,
        topics=_unique(content.topics or event.tag_values("t")),
        branches=_unique(branch.name for branch in content.branches),
        releases=tuple(
            Release(
                tag=release.tag,
                name=release.name,
                description=release.description,
                created_at=release.created_at,
            )
            for release in content.releases
        ),
        contributors=tuple(contributors),
        clone_urls=clone_urls,
        relays=_unique([*content.relays, *event.tag_values("relays")]),
        source_url=content.source_url or derive_source_url(clone_urls),
        forked_from=content.forked_from,
        default_branch=content.default_branch,
        deleted=content.deleted,
        archived=content.archived,
    )


def draft_from_tags(event: TaggedRepositoryEvent) -> RepositoryDraft | None:
    slug = event.first_tag("d")
    name = event.first_tag("name")
    repo_name = slug or name
    if not repo_name:
        log.warning("Skipping kind 30617 event %s without d or name tag", event.id)
        return None

    clone_urls = filter_clone_urls(event.tag_values("clone"))
    return RepositoryDraft(
        owner_identity=event.pubkey,
        repo_name=repo_name,
        display_name=name or repo_name,
        source_timestamp=seconds_to_millis(event.created_at),
        source_event_id=event.id,
        provenance=Provenance.SYNCED,
        description=event.first_tag("description") or "",
        topics=_unique(event.tag_values("t")),
        contributors=tuple(_contributors_from_tags(event)),
        clone_urls=clone_urls,
        relays=_unique(event.tag_values("relays")),
        web=_unique(event.tag_values("web")),
        maintainers=_unique(value.lower() for value in event.tag_values("maintainers")),
        earliest_unique_commit=_earliest_unique_commit(event),
        source_url=derive_source_url(clone_urls),
    )


def filter_clone_urls(urls: Iterable[str]) -> tuple[str, ...]:
    """Drop loopback clone targets and duplicates, keeping announcement order."""

    kept: list[str] = []
    for url in urls:
        candidate = url.strip()
        if not candidate:
            continue
        host = urlparse(candidate).hostname or ""
        if host in LOCAL_HOSTS or any(local in candidate for local in LOCAL_HOSTS):
            continue
        kept.append(candidate)
    return _unique(kept)


def derive_source_url(clone_urls: Iterable[str]) -> str | None:
    """Web URL of the first clone target hosted on a known forge."""

    for url in clone_urls:
        parsed = urlparse(url)
        if parsed.scheme in {"http", "https"} and (parsed.hostname or "") in SOURCE_HOSTS:
            path = parsed.path.removesuffix("/").removesuffix(".git")
            return f"https://{parsed.hostname}{path}"
    return None


def _contributors_from_tags(event: EventEnvelope) -> list[Contributor]:
    contributors: list[Contributor] = []
    for tag in event.tags:
        if tag[0] != "p" or len(tag) < 2 or not tag[1].strip():
            continue
        weight = 0
        if len(tag) > 2:
            try:
                weight = int(tag[2])
            except ValueError:
                log.debug("Ignoring non-numeric contributor weight %r", tag[2])
        role = _parse_role(tag[3]) if len(tag) > 3 else None
        contributors.append(Contributor(pubkey=tag[1].strip(), weight=weight, role=role))
    return contributors


def _earliest_unique_commit(event: EventEnvelope) -> str | None:
    for tag in event.tags:
        if tag[0] == "r" and len(tag) > 2 and tag[2] == "euc" and tag[1].strip():
            return tag[1].strip()
    return None


def _parse_role(value: str | None) -> ContributorRole | None:
    if value is None:
        return None
    try:
        return ContributorRole(value.strip().lower())
    except ValueError:
        return None


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(value.strip() for value in values if value.strip()))
