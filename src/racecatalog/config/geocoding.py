"""Nominatim geocoder settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import env_flag
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .storage import StorageConfig, get_storage_config

DEFAULT_NOMINATIM_BASE_URL: Final[str] = "https://nominatim.openstreetmap.org"
DEFAULT_USER_AGENT: Final[str] = "racecatalog"
# Nominatim usage policy: at most one request per second.
MIN_INTERVAL_SECONDS: Final[float] = 1.1


@dataclass(frozen=True, slots=True)
class GeocodingConfig:
    enabled: bool
    resilience: ResilienceConfig
    min_interval_seconds: float = MIN_INTERVAL_SECONDS


def get_geocoding_config(*, storage: StorageConfig | None = None) -> GeocodingConfig:
    base_url = os.getenv("NOMINATIM_BASE_URL") or DEFAULT_NOMINATIM_BASE_URL
    user_agent = os.getenv("NOMINATIM_USER_AGENT") or DEFAULT_USER_AGENT
    cache_path = (storage or get_storage_config()).http_cache_path()

    resilience = ResilienceConfig(
        name="nominatim",
        base_url=base_url.rstrip("/") + "/",
        ratelimit=RateLimit(max_calls=1, per_seconds=MIN_INTERVAL_SECONDS),
        retry=RetryPolicy(total=2),
        cache=CacheConfig(enabled=True, backend="sqlite", sqlite_path=str(cache_path)),
        default_headers={"User-Agent": user_agent, "Accept-Language": "fr"},
    )
    return GeocodingConfig(
        enabled=env_flag("GEOCODING_ENABLED", default=True),
        resilience=resilience,
    )
