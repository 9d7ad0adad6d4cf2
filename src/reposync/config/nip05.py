"""NIP-05 lookup configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_USER_AGENT = "reposync (+https://github.com/nostr-protocol/nips/blob/master/05.md)"


@dataclass(frozen=True, slots=True)
class Nip05Config:
    resilience: ResilienceConfig


def get_nip05_config() -> Nip05Config:
    resilience = ResilienceConfig(
        name="nip05",
        timeout_seconds=env_float("REPOSYNC_NIP05_TIMEOUT", 10.0),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        retry=RetryPolicy(total=2),
        cache=CacheConfig(enabled=True, default_ttl_seconds=3600.0),
        default_headers={"User-Agent": DEFAULT_USER_AGENT, "Accept": "application/json"},
    )
    return Nip05Config(resilience=resilience)
