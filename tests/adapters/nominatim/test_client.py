from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from racecatalog.adapters.http_resilience import ResilientClient
from racecatalog.adapters.nominatim import NominatimAPIError, NominatimClient, NominatimGeocoder
from racecatalog.config.geocoding import GeocodingConfig
from racecatalog.config.http_resilience import CacheConfig, ResilienceConfig
from racecatalog.domain.ports.geocoding import Coordinates

if TYPE_CHECKING:
    from collections.abc import Callable

type Handler = Callable[[httpx.Request], httpx.Response]

ANNECY = {
    "place_id": 1234,
    "lat": "45.8992348",
    "lon": "6.1288847",
    "display_name": "Annecy, Haute-Savoie, Auvergne-Rhône-Alpes, France",
    "importance": 0.71,
    "address": {"city": "Annecy", "country_code": "fr"},
    "boundingbox": ["45.87", "45.93", "6.09", "6.16"],
}


def _config(base_url: str | None = "https://nominatim.test/") -> GeocodingConfig:
    return GeocodingConfig(
        enabled=True,
        resilience=ResilienceConfig(
            name="nominatim", base_url=base_url, cache=CacheConfig(enabled=False)
        ),
        min_interval_seconds=1.1,
    )


def _make_client_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _geocoder(handler: Handler, clock: FakeClock | None = None) -> NominatimGeocoder:
    clock = clock or FakeClock()
    config = _config()
    client = NominatimClient(config=config, client_factory=_make_client_factory(handler))
    return NominatimGeocoder(config=config, client=client, sleep=clock.sleep, clock=clock)


def test_search_sends_the_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[ANNECY])

    client = NominatimClient(config=_config(), client_factory=_make_client_factory(handler))

    (place,) = client.search("Annecy, France", limit=3)

    assert place.lat == "45.8992348"
    assert place.address is not None
    assert place.address.city == "Annecy"
    (request,) = seen
    assert request.url.path == "/search"
    assert request.url.params["q"] == "Annecy, France"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "3"


def test_search_requires_a_base_url() -> None:
    client = NominatimClient(
        config=_config(base_url=None),
        client_factory=_make_client_factory(lambda _: httpx.Response(200, json=[])),
    )

    with pytest.raises(NominatimAPIError):
        client.search("Annecy")


def test_search_rejects_non_list_payloads() -> None:
    client = NominatimClient(
        config=_config(),
        client_factory=_make_client_factory(
            lambda _: httpx.Response(200, json={"error": "bad request"})
        ),
    )

    with pytest.raises(NominatimAPIError):
        client.search("Annecy")


def test_geocode_returns_the_first_match() -> None:
    geocoder = _geocoder(lambda _: httpx.Response(200, json=[ANNECY]))

    assert geocoder.geocode("Annecy, France") == Coordinates(
        latitude=45.8992348, longitude=6.1288847
    )


@pytest.mark.parametrize(
    "make_response",
    [
        lambda: httpx.Response(200, json=[]),
        lambda: httpx.Response(503, text="overloaded"),
        lambda: httpx.Response(200, json=[{"lat": "95.0", "lon": "6.1"}]),
        lambda: httpx.Response(200, json=[{"lat": "north", "lon": "6.1"}]),
        lambda: httpx.Response(200, json=[{"display_name": "no coordinates"}]),
        lambda: httpx.Response(200, text="<html>maintenance</html>"),
    ],
    ids=["empty", "server-error", "out-of-range", "garbage", "invalid-schema", "not-json"],
)
def test_geocode_degrades_to_none(make_response: Callable[[], httpx.Response]) -> None:
    geocoder = _geocoder(lambda _: make_response())

    assert geocoder.geocode("Nowhere") is None


def test_geocode_spaces_out_calls() -> None:
    clock = FakeClock()
    geocoder = _geocoder(lambda _: httpx.Response(200, json=[ANNECY]), clock)

    geocoder.geocode("Annecy")
    clock.now += 0.5
    geocoder.geocode("Chamonix")
    clock.now += 5.0
    geocoder.geocode("Lyon")

    assert clock.sleeps == [pytest.approx(0.6)]
