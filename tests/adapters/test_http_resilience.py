from __future__ import annotations

import asyncio

import httpx
import pytest

from racecatalog.adapters.http_resilience import ResilientClient, _build_cache_storage
from racecatalog.config.http_resilience import CacheConfig, RateLimit, ResilienceConfig


def test_client_applies_base_url_and_headers() -> None:
    client = ResilientClient(
        ResilienceConfig(
            name="nominatim",
            base_url="https://nominatim.test/",
            cache=CacheConfig(enabled=False),
            default_headers={"User-Agent": "racecatalog-tests"},
        )
    )
    try:
        inner = client._client  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        assert type(inner) is httpx.AsyncClient
        assert str(inner.base_url) == "https://nominatim.test/"
        assert inner.headers["User-Agent"] == "racecatalog-tests"
    finally:
        asyncio.run(client.aclose())


def test_rate_limited_requests_go_through() -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    async def run() -> list[int]:
        client = ResilientClient(
            ResilienceConfig(
                name="test",
                ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
                cache=None,
            )
        )
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url="https://api.test", transport=httpx.MockTransport(handler)
        )
        async with client:
            responses = [await client.get(f"/item/{index}") for index in range(3)]
        return [response.status_code for response in responses]

    assert asyncio.run(run()) == [200, 200, 200]
    assert seen == ["/item/0", "/item/1", "/item/2"]


def test_disabled_cache_has_no_storage() -> None:
    assert _build_cache_storage(None) is None
    assert _build_cache_storage(CacheConfig(enabled=False)) is None


def test_unknown_cache_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="redis"):
        _build_cache_storage(CacheConfig(backend="redis"))  # type: ignore[arg-type]
