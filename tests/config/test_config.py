from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from reposync.config import (
    ConfigurationError,
    EvictionConfig,
    MissingConfigurationError,
    SyncConfig,
    get_activity_config,
    get_database_config,
    get_eviction_config,
    get_nip05_config,
    get_source_config,
    get_storage_config,
    get_sync_config,
    require_env_vars,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_reports_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.setenv("BLANK_VAR", "  ")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["PRESENT_VAR", "MISSING_VAR", "BLANK_VAR"])

    assert str(exc.value) == "Missing configuration for: BLANK_VAR, MISSING_VAR"


def test_sync_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REPOSYNC_SETTLE_QUORUM", raising=False)
    monkeypatch.delenv("REPOSYNC_SETTLE_TIMEOUT", raising=False)

    assert get_sync_config() == SyncConfig(settle_quorum=3, settle_timeout_seconds=10.0)


def test_sync_config_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_SETTLE_QUORUM", "2")
    monkeypatch.setenv("REPOSYNC_SETTLE_TIMEOUT", "4.5")

    config = get_sync_config()

    assert config.settle_quorum == 2
    assert config.settle_timeout_seconds == 4.5


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("REPOSYNC_SETTLE_TIMEOUT", "16"),
        ("REPOSYNC_SETTLE_TIMEOUT", "0"),
        ("REPOSYNC_SETTLE_TIMEOUT", "soon"),
        ("REPOSYNC_SETTLE_QUORUM", "0"),
        ("REPOSYNC_SETTLE_QUORUM", "many"),
    ],
)
def test_invalid_sync_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_sync_config()


def test_activity_and_eviction_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "REPOSYNC_BACKFILL_INTERVAL_HOURS",
        "REPOSYNC_ACTIVITY_MAX_AGE_DAYS",
        "REPOSYNC_ACTIVITY_MAX_ENTRIES",
        "REPOSYNC_EVICTION_FRACTION",
        "REPOSYNC_RECENT_ACTIVITY_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)

    activity = get_activity_config()
    eviction = get_eviction_config()

    assert activity.backfill_interval_ms == 24 * 3_600_000
    assert activity.max_age_ms == 365 * 86_400_000
    assert activity.max_entries == 10_000
    assert eviction.fraction == 0.1
    assert eviction.recent_activity_ms == 30 * 86_400_000


def test_invalid_eviction_fraction_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_EVICTION_FRACTION", "1.5")

    with pytest.raises(ConfigurationError):
        get_eviction_config()
    with pytest.raises(ConfigurationError):
        EvictionConfig(fraction=0)


def test_activity_retention_must_keep_something(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_ACTIVITY_MAX_ENTRIES", "0")

    with pytest.raises(ConfigurationError):
        get_activity_config()


def test_storage_config_uses_data_dir_and_capacity(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("REPOSYNC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("REPOSYNC_STORE_MAX_BYTES", "4096")
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()

    assert storage.max_bytes == 4096
    assert storage.database_path() == (tmp_path / "data" / "reposync.db").resolve()
    assert get_database_config().uri == f"sqlite+pysqlite:///{storage.database_path()}"


def test_storage_capacity_defaults_to_unbounded(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REPOSYNC_STORE_MAX_BYTES", raising=False)

    assert get_storage_config().max_bytes is None


def test_negative_capacity_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_STORE_MAX_BYTES", "-1")

    with pytest.raises(ConfigurationError):
        get_storage_config()


@pytest.mark.skipif(os.name == "nt", reason="XDG_DATA_HOME only applies on POSIX")
def test_default_data_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("REPOSYNC_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert get_storage_config().data_dir == (tmp_path / "reposync").resolve()


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///override.db")

    assert get_database_config().uri == "sqlite+pysqlite:///override.db"


def test_source_config_splits_the_list(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_SOURCES", " wss://one , ,wss://two")

    assert get_source_config().sources == ("wss://one", "wss://two")


def test_source_config_can_be_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REPOSYNC_SOURCES", raising=False)

    assert get_source_config().sources == ()
    with pytest.raises(MissingConfigurationError):
        get_source_config(required=True)


def test_nip05_config_reads_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOSYNC_NIP05_TIMEOUT", "3")

    resilience = get_nip05_config().resilience

    assert resilience.name == "nip05"
    assert resilience.timeout_seconds == 3.0
    assert resilience.cache is not None
    assert resilience.cache.default_ttl_seconds == 3600.0
    assert resilience.ratelimit is not None
