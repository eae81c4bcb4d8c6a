"""Application configuration helpers."""

from __future__ import annotations

from .deepl import DeepLConfig, get_deepl_config
from .dispatch import (
    BackoffPolicy,
    DispatcherConfig,
    get_deepl_dispatch_config,
    get_wanikani_dispatch_config,
)
from .env import env_flag, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config
from .sync import SyncConfig, get_sync_config
from .wanikani import WaniKaniConfig, get_wanikani_config

__all__ = [
    "BackoffPolicy",
    "CacheConfig",
    "ConfigurationError",
    "DeepLConfig",
    "DispatcherConfig",
    "MissingConfigurationError",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "WaniKaniConfig",
    "configure_logging",
    "env_flag",
    "get_deepl_config",
    "get_deepl_dispatch_config",
    "get_storage_config",
    "get_sync_config",
    "get_wanikani_config",
    "get_wanikani_dispatch_config",
    "require_env_vars",
]
