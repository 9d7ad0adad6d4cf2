"""Synchronization, activity and eviction defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_SETTLE_QUORUM: Final[int] = 3
DEFAULT_SETTLE_TIMEOUT_SECONDS: Final[float] = 10.0
MAX_SETTLE_TIMEOUT_SECONDS: Final[float] = 15.0

DEFAULT_BACKFILL_INTERVAL_HOURS: Final[float] = 24.0
DEFAULT_ACTIVITY_MAX_AGE_DAYS: Final[int] = 365
DEFAULT_ACTIVITY_MAX_ENTRIES: Final[int] = 10_000

DEFAULT_EVICTION_FRACTION: Final[float] = 0.1
DEFAULT_RECENT_ACTIVITY_DAYS: Final[int] = 30


@dataclass(frozen=True, slots=True)
class SyncConfig:
    settle_quorum: int = DEFAULT_SETTLE_QUORUM
    settle_timeout_seconds: float = DEFAULT_SETTLE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.settle_quorum < 1:
            raise ConfigurationError("settle quorum must be at least 1")
        if not 0 < self.settle_timeout_seconds <= MAX_SETTLE_TIMEOUT_SECONDS:
            raise ConfigurationError(
                f"settle timeout must be within (0, {MAX_SETTLE_TIMEOUT_SECONDS}] seconds"
            )


@dataclass(frozen=True, slots=True)
class ActivityConfig:
    backfill_interval_hours: float = DEFAULT_BACKFILL_INTERVAL_HOURS
    max_age_days: int = DEFAULT_ACTIVITY_MAX_AGE_DAYS
    max_entries: int = DEFAULT_ACTIVITY_MAX_ENTRIES

    @property
    def backfill_interval_ms(self) -> int:
        return int(self.backfill_interval_hours * 3_600_000)

    @property
    def max_age_ms(self) -> int:
        return self.max_age_days * 86_400_000


@dataclass(frozen=True, slots=True)
class EvictionConfig:
    fraction: float = DEFAULT_EVICTION_FRACTION
    recent_activity_days: int = DEFAULT_RECENT_ACTIVITY_DAYS

    def __post_init__(self) -> None:
        if not 0 < self.fraction <= 1:
            raise ConfigurationError("eviction fraction must be within (0, 1]")

    @property
    def recent_activity_ms(self) -> int:
        return self.recent_activity_days * 86_400_000


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        settle_quorum=env_int("REPOSYNC_SETTLE_QUORUM", DEFAULT_SETTLE_QUORUM),
        settle_timeout_seconds=env_float(
            "REPOSYNC_SETTLE_TIMEOUT", DEFAULT_SETTLE_TIMEOUT_SECONDS
        ),
    )


def get_activity_config() -> ActivityConfig:
    config = ActivityConfig(
        backfill_interval_hours=env_float(
            "REPOSYNC_BACKFILL_INTERVAL_HOURS", DEFAULT_BACKFILL_INTERVAL_HOURS
        ),
        max_age_days=env_int("REPOSYNC_ACTIVITY_MAX_AGE_DAYS", DEFAULT_ACTIVITY_MAX_AGE_DAYS),
        max_entries=env_int("REPOSYNC_ACTIVITY_MAX_ENTRIES", DEFAULT_ACTIVITY_MAX_ENTRIES),
    )
    if config.max_entries < 1 or config.max_age_days < 1:
        raise ConfigurationError("activity retention must keep at least one day and one entry")
    return config


def get_eviction_config() -> EvictionConfig:
    return EvictionConfig(
        fraction=env_float("REPOSYNC_EVICTION_FRACTION", DEFAULT_EVICTION_FRACTION),
        recent_activity_days=env_int(
            "REPOSYNC_RECENT_ACTIVITY_DAYS", DEFAULT_RECENT_ACTIVITY_DAYS
        ),
    )
