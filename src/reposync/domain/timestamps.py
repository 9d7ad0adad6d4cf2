"""Millisecond timestamp helpers.

Sources announce ``created_at`` in seconds while the cache keeps milliseconds.
Values below :data:`SECONDS_THRESHOLD` are treated as seconds when compared.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Final

MS_PER_SECOND: Final[int] = 1_000
MS_PER_DAY: Final[int] = 86_400_000
SECONDS_THRESHOLD: Final[int] = 100_000_000_000


def to_millis(value: int | float) -> int:
    """Return ``value`` in milliseconds, scaling second-resolution input."""

    number = int(value)
    if abs(number) < SECONDS_THRESHOLD:
        return number * MS_PER_SECOND
    return number


def seconds_to_millis(value: int | float) -> int:
    return int(value * MS_PER_SECOND)


def now_millis() -> int:
    return int(datetime.now(UTC).timestamp() * MS_PER_SECOND)


def millis_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(to_millis(value) / MS_PER_SECOND, tz=UTC)


def day_bucket(value: int) -> str:
    """ISO date (UTC) for a millisecond timestamp."""

    return millis_to_datetime(value).date().isoformat()
