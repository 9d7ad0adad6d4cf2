"""Source (relay) list configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_list, require_env_vars

SOURCES_ENV_VAR = "REPOSYNC_SOURCES"


@dataclass(frozen=True, slots=True)
class SourceConfig:
    sources: tuple[str, ...]


def get_source_config(*, required: bool = False) -> SourceConfig:
    if required:
        require_env_vars([SOURCES_ENV_VAR])
    return SourceConfig(sources=env_list(SOURCES_ENV_VAR))
