"""Pydantic models for the two repository announcement schemas.

Kind 51 events carry a free-form JSON object in ``content``; kind 30617 events
carry the same information as ordered tags. Both share the signed event
envelope and are validated as one union discriminated on ``kind``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Annotated, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _string_list(value: object) -> object:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


class NostrBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EventEnvelope(NostrBaseModel):
    id: str | None = None
    pubkey: str
    created_at: int
    tags: list[list[str]] = Field(default_factory=list)
    content: str = ""
    sig: str | None = None

    @field_validator("pubkey")
    @classmethod
    def _require_pubkey(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("event author is blank")
        return stripped

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: object) -> object:
        if not isinstance(value, Sequence) or isinstance(value, str):
            return value
        tags: list[list[str]] = []
        for tag in cast(Sequence[object], value):
            if isinstance(tag, Sequence) and not isinstance(tag, str) and tag:
                tags.append([str(item) for item in cast(Sequence[object], tag)])
        return tags

    def tag_values(self, name: str) -> list[str]:
        """Every value after the tag name, across all tags called ``name``."""

        return [value for tag in self.tags if tag[0] == name for value in tag[1:] if value]

    def first_tag(self, name: str) -> str | None:
        for tag in self.tags:
            if tag[0] == name and len(tag) > 1 and tag[1].strip():
                return tag[1].strip()
        return None


class LegacyContributor(NostrBaseModel):
    pubkey: str
    weight: int = 0
    role: str | None = None

    _normalize_role = field_validator("role", mode="before")(_blank_to_none)


class LegacyRelease(NostrBaseModel):
    tag: str
    name: str | None = None
    description: str | None = None
    created_at: int | None = Field(default=None, alias="createdAt")


class LegacyBranch(NostrBaseModel):
    name: str
    commit: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_name(cls, value: object) -> object:
        if isinstance(value, str):
            return {"name": value}
        return value


class LegacyRepositoryContent(NostrBaseModel):
    repository_name: str | None = Field(default=None, alias="repositoryName")
    name: str | None = None
    description: str = ""
    clone: list[str] = Field(default_factory=list)
    relays: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    contributors: list[LegacyContributor] = Field(default_factory=list)
    branches: list[LegacyBranch] = Field(default_factory=list)
    releases: list[LegacyRelease] = Field(default_factory=list)
    default_branch: str | None = Field(default=None, alias="defaultBranch")
    source_url: str | None = Field(default=None, alias="sourceUrl")
    forked_from: str | None = Field(default=None, alias="forkedFrom")
    deleted: bool = False
    archived: bool = False

    _normalize_lists = field_validator("clone", "relays", "topics", mode="before")(_string_list)
    _normalize_optional = field_validator(
        "repository_name", "name", "default_branch", "source_url", "forked_from", mode="before"
    )(_blank_to_none)

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class LegacyRepositoryEvent(EventEnvelope):
    kind: Literal[51]
    repository: LegacyRepositoryContent

    @model_validator(mode="before")
    @classmethod
    def _parse_content(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("kind 51 content must be a JSON string")
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"kind 51 content is not valid JSON: {exc.msg}") from exc
        if not isinstance(parsed, dict):
            raise ValueError("kind 51 content must be a JSON object")
        data["repository"] = parsed
        return data


class TaggedRepositoryEvent(EventEnvelope):
    kind: Literal[30617]


ANNOUNCEMENT_ADAPTER: TypeAdapter[LegacyRepositoryEvent | TaggedRepositoryEvent] = TypeAdapter(
    Annotated[LegacyRepositoryEvent | TaggedRepositoryEvent, Field(discriminator="kind")]
)
