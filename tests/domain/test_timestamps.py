from __future__ import annotations

from reposync.domain.timestamps import day_bucket, seconds_to_millis, to_millis


def test_second_resolution_values_are_scaled() -> None:
    assert to_millis(1_700_000_000) == 1_700_000_000_000
    assert to_millis(1000) == 1_000_000


def test_millisecond_values_are_kept() -> None:
    assert to_millis(1_700_000_000_000) == 1_700_000_000_000


def test_seconds_to_millis_always_scales() -> None:
    assert seconds_to_millis(1_700_000_000) == 1_700_000_000_000


def test_day_bucket_uses_utc_dates() -> None:
    assert day_bucket(1_700_000_000_000) == "2023-11-14"
