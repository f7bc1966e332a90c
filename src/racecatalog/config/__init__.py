"""Application configuration helpers."""

from __future__ import annotations

from .connections import ConnectionsConfig, get_connections_config, parse_connections
from .env import env_flag, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .geocoding import GeocodingConfig, get_geocoding_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "ConnectionsConfig",
    "DatabaseConfig",
    "GeocodingConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "env_flag",
    "get_connections_config",
    "get_database_config",
    "get_geocoding_config",
    "get_storage_config",
    "parse_connections",
    "require_env_vars",
]
