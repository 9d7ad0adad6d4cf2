"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, env_list, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .nip05 import Nip05Config, get_nip05_config
from .sources import SourceConfig, get_source_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_storage_config,
)
from .sync import (
    ActivityConfig,
    EvictionConfig,
    SyncConfig,
    get_activity_config,
    get_eviction_config,
    get_sync_config,
)

__all__ = [
    "ActivityConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EvictionConfig",
    "MissingConfigurationError",
    "Nip05Config",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SourceConfig",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "env_list",
    "get_activity_config",
    "get_database_config",
    "get_eviction_config",
    "get_nip05_config",
    "get_source_config",
    "get_storage_config",
    "get_sync_config",
    "require_env_vars",
]
