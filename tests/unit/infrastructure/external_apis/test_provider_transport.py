# tests/unit/infrastructure/external_apis/test_provider_transport.py
from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest
import respx

from marketfeed_api.domain.exceptions.market_data import (
    MarketDataRateLimited,
    MarketDataUnavailable,
    MarketDataValidationError,
    SymbolNotFound,
    UpstreamAuthError,
    UpstreamHttpError,
    UpstreamTimeout,
)
from marketfeed_api.infrastructure.external_apis.transport import (
    ProviderTransport,
    parse_json_body,
)
from marketfeed_api.infrastructure.logging.logger import set_request_context

BASE = "https://upstream.test"


@pytest.mark.parametrize(
    ("status", "exc_type"),
    [
        (401, UpstreamAuthError),
        (403, UpstreamAuthError),
        (404, SymbolNotFound),
        (400, SymbolNotFound),
        (429, MarketDataRateLimited),
        (500, UpstreamHttpError),
        (503, UpstreamHttpError),
    ],
)
@pytest.mark.asyncio
@respx.mock
async def test_status_mapping(
    make_transport: Callable[..., ProviderTransport], status: int, exc_type: type[Exception]
) -> None:
    respx.get(f"{BASE}/thing").mock(return_value=httpx.Response(status, text="nope"))
    transport = make_transport("yahoo", BASE)
    with pytest.raises(exc_type):
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)


@pytest.mark.asyncio
@respx.mock
async def test_escalations_carry_status(make_transport: Callable[..., ProviderTransport]) -> None:
    respx.get(f"{BASE}/thing").mock(return_value=httpx.Response(403))
    transport = make_transport("yahoo", BASE)
    with pytest.raises(UpstreamAuthError) as info:
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)
    assert info.value.status == 403


@pytest.mark.asyncio
@respx.mock
async def test_retries_5xx_then_succeeds(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.get(f"{BASE}/thing").mock(
        side_effect=[httpx.Response(502), httpx.Response(200, json={"ok": True})]
    )
    transport = make_transport("coingecko", BASE, max_retries=2)
    body = await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)
    assert body == {"ok": True}
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_auth_errors_are_not_retried(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    route = respx.get(f"{BASE}/thing").mock(return_value=httpx.Response(401))
    transport = make_transport("yahoo", BASE, max_retries=2)
    with pytest.raises(UpstreamAuthError):
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_timeouts_fail_fast(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.get(f"{BASE}/thing").mock(side_effect=httpx.ReadTimeout("slow"))
    transport = make_transport("yahoo", BASE, max_retries=2)
    with pytest.raises(UpstreamTimeout):
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_connect_errors_map_to_unavailable(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.get(f"{BASE}/thing").mock(side_effect=httpx.ConnectError("refused"))
    transport = make_transport("yahoo", BASE)
    with pytest.raises(MarketDataUnavailable):
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)


@pytest.mark.asyncio
@respx.mock
async def test_concurrent_identical_requests_hit_upstream_once(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    route = respx.get(f"{BASE}/simple/price").mock(
        return_value=httpx.Response(200, json={"bitcoin": {"usd": 1.0}})
    )
    transport = make_transport("coingecko", BASE)

    async def call() -> object:
        return await transport.get_json(
            endpoint="simple_price", path="/simple/price", cache_key="sp:bitcoin", ttl=60
        )

    results = await asyncio.gather(*(call() for _ in range(5)))
    assert all(r == {"bitcoin": {"usd": 1.0}} for r in results)
    assert route.call_count == 1

    await call()
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_request_id_is_forwarded(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.get(f"{BASE}/thing").mock(return_value=httpx.Response(200, json={}))
    transport = make_transport("yahoo", BASE)
    set_request_context(request_id="req-123")
    try:
        await transport.get_json(endpoint="thing", path="/thing", cache_key="thing", ttl=0)
    finally:
        set_request_context(request_id=None)
    assert route.calls.last.request.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
@respx.mock
async def test_post_form_sends_body(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.post(f"{BASE}/feed").mock(return_value=httpx.Response(200, json=[1]))
    transport = make_transport("globes", BASE)
    body = await transport.post_form_json(
        endpoint="feed", path="/feed", data={"instrumentId": "1"}, cache_key="feed:1", ttl=0
    )
    assert body == [1]
    assert route.calls.last.request.content == b"instrumentId=1"


def test_parse_json_body_rejects_html() -> None:
    with pytest.raises(MarketDataValidationError):
        parse_json_body("<!DOCTYPE html><html><body>blocked</body></html>")


def test_parse_json_body_extracts_wrapped_json() -> None:
    assert parse_json_body('/**/ callback({"a": 1});') == {"a": 1}


def test_parse_json_body_rejects_garbage() -> None:
    with pytest.raises(MarketDataValidationError):
        parse_json_body("not json at all")


def test_absolute_urls_pass_through(make_transport: Callable[..., ProviderTransport]) -> None:
    transport = make_transport("fx", BASE + "/")
    assert transport.url("/latest/USD") == f"{BASE}/latest/USD"
    assert transport.url("https://other.test/x") == "https://other.test/x"
