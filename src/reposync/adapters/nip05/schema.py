"""Schema of a ``/.well-known/nostr.json`` document."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Nip05Document(BaseModel):
    model_config = ConfigDict(extra="ignore")

    names: dict[str, str] = Field(default_factory=dict)
    relays: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("names", mode="before")
    @classmethod
    def _drop_non_string_names(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        return {
            str(name): key.strip().lower()
            for name, key in value.items()
            if isinstance(key, str)
        }

    def key_for(self, name: str) -> str | None:
        return self.names.get(name) or self.names.get(name.lower())
