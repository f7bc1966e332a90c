"""Nominatim API client and the :class:`~racecatalog.domain.ports.Geocoder` built on it."""

from __future__ import annotations

import asyncio
import time
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from racecatalog.adapters.http_resilience import ResilientClient
from racecatalog.domain.ports.geocoding import Coordinates

from .schema import NominatimPlace, NominatimSearch

if TYPE_CHECKING:
    from collections.abc import Callable

    from racecatalog.config.geocoding import GeocodingConfig
    from racecatalog.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

SEARCH_PATH = "search"


class NominatimAPIError(RuntimeError):
    """Raised when Nominatim returns an unexpected response."""


class NominatimClient:
    """Low-level HTTP client for the Nominatim search endpoint."""

    def __init__(
        self,
        *,
        config: GeocodingConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient

    def search(self, query: str, *, limit: int = 1) -> list[NominatimPlace]:
        return asyncio.run(self._search_async(query=query, limit=limit))

    async def _search_async(self, *, query: str, limit: int) -> list[NominatimPlace]:
        if self._resilience.base_url is None:
            raise NominatimAPIError("Missing Nominatim base_url in resilience configuration")
        params = {"q": query, "format": "json", "limit": str(limit), "addressdetails": "1"}
        async with self._client_factory(self._resilience) as client:
            response = await client.get(SEARCH_PATH, params=params)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, list):
            raise NominatimAPIError("Unexpected Nominatim response payload")
        return NominatimSearch.validate_python(payload)


class NominatimGeocoder:
    """Blocking geocoder that spaces calls by ``min_interval_seconds``.

    Lookup failures of any kind degrade to ``None``.
    """

    def __init__(
        self,
        *,
        config: GeocodingConfig,
        client: NominatimClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client or NominatimClient(config=config)
        self._min_interval = config.min_interval_seconds
        self._sleep = sleep
        self._clock = clock
        self._last_call: float | None = None

    def geocode(self, query: str) -> Coordinates | None:
        self._throttle()
        try:
            places = self._client.search(query)
        except (httpx.HTTPError, NominatimAPIError, ValidationError, ValueError) as exc:
            log.warning("Geocoding %r failed: %s", query, exc)
            return None
        if not places:
            log.info("No geocoding match for %r", query)
            return None
        return _coordinates(places[0], query)

    def _throttle(self) -> None:
        now = self._clock()
        if self._last_call is not None:
            wait = self._min_interval - (now - self._last_call)
            if wait > 0:
                log.debug("Geocoder throttled for %.2fs", wait)
                self._sleep(wait)
                now = self._clock()
        self._last_call = now


def _coordinates(place: NominatimPlace, query: str) -> Coordinates | None:
    try:
        latitude, longitude = float(place.lat), float(place.lon)
    except ValueError:
        log.warning("Invalid coordinates for %r: %s, %s", query, place.lat, place.lon)
        return None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        log.warning("Out-of-range coordinates for %r: %s, %s", query, latitude, longitude)
        return None
    log.info("Geocoded %r to %s, %s", query, latitude, longitude)
    return Coordinates(latitude=latitude, longitude=longitude)
