# tests/integration/routers/test_market_data_routers.py
from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fixtures.market_data_testkit import (
    FakeBinance,
    FakeCoinGecko,
    FakeFx,
    FakeScrape,
    FakeYahoo,
    quote,
    series,
)
from httpx import ASGITransport, AsyncClient

from marketfeed_api.application.services.fallback_orchestrator import FallbackOrchestrator
from marketfeed_api.application.use_cases.fx.get_fx_rate import GetFxRate
from marketfeed_api.application.use_cases.quotes.get_history import GetHistory
from marketfeed_api.application.use_cases.quotes.get_price_at import GetPriceAt
from marketfeed_api.application.use_cases.quotes.get_quotes import GetQuotes
from marketfeed_api.application.use_cases.search.search_instruments import SearchInstruments
from marketfeed_api.dependencies import market_data as dep
from marketfeed_api.domain.entities.fx_rate import FxRate
from marketfeed_api.domain.entities.quote import QuoteSource
from marketfeed_api.domain.exceptions.market_data import UpstreamAuthError, UpstreamTimeout
from marketfeed_api.infrastructure.reference_data.tase_instruments import TaseReferenceData
from marketfeed_api.main import create_app

REFERENCE = TaseReferenceData()


def _quotes_uc() -> GetQuotes:
    coingecko = FakeCoinGecko({"bitcoin": 64000.0})
    yahoo = FakeYahoo(
        batch={
            "AAPL": quote("yahoo:AAPL", 190.0, name="Apple Inc."),
            "^GSPC": quote("yahoo:^GSPC", 5100.5),
        }
    )
    orchestrator = FallbackOrchestrator(
        coingecko=coingecko,
        yahoo=yahoo,
        funder=FakeScrape(),
        globes=FakeScrape(),
        reference=REFERENCE,
    )
    return GetQuotes(
        orchestrator=orchestrator, coingecko=coingecko, yahoo=yahoo, reference=REFERENCE
    )


def _history_uc() -> GetHistory:
    yahoo = FakeYahoo(
        history={
            "AAPL": series("yahoo:AAPL", [189.5, 190.25]),
            "BLOCKED": UpstreamAuthError(status=403),
        }
    )
    return GetHistory(
        coingecko=FakeCoinGecko(), binance=FakeBinance(), yahoo=yahoo, reference=REFERENCE
    )


@pytest.fixture
def app() -> FastAPI:
    application = create_app()
    application.dependency_overrides[dep.get_quotes_uc] = _quotes_uc
    application.dependency_overrides[dep.get_history_uc] = _history_uc
    application.dependency_overrides[dep.get_price_at_uc] = lambda: GetPriceAt(_history_uc())
    application.dependency_overrides[dep.get_search_uc] = lambda: SearchInstruments(REFERENCE)
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


# --------------------------------------------------------------------------- #
# Quotes
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_get_quotes_returns_one_element_per_distinct_id(client: AsyncClient) -> None:
    r = await client.get(
        "/v1/quotes",
        params=[("ids", "AAPL, cg:bitcoin"), ("ids", "AAPL"), ("ids", "cg:doesnotexist")],
        headers={"X-Request-ID": "req-42"},
    )
    assert r.status_code == 200
    assert r.headers["X-Request-ID"] == "req-42"
    assert r.headers["Cache-Control"] == "public, s-maxage=60, stale-while-revalidate=30"

    body = r.json()
    assert [item["id"] for item in body] == ["AAPL", "cg:bitcoin", "cg:doesnotexist"]
    aapl = body[0]
    assert aapl["price"] == 190.0
    assert aapl["currency"] == "USD"
    assert aapl["source"] == "yahoo"
    assert aapl["name"] == "Apple Inc."
    assert {"changePct", "timestampMs"} <= aapl.keys()
    assert body[1]["source"] == "coingecko"
    assert body[2] == {
        "id": "cg:doesnotexist",
        "error": "Coin doesnotexist not found in CoinGecko response",
        "errorCode": "SYMBOL_NOT_FOUND",
    }


@pytest.mark.asyncio
async def test_get_quotes_without_ids_is_400(client: AsyncClient) -> None:
    r = await client.get("/v1/quotes", params={"ids": " , "})
    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "BAD_REQUEST"
    assert err["message"] == "At least one id is required."
    assert err["trace_id"] == r.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_post_quotes_maps_bare_symbols_to_yahoo(client: AsyncClient) -> None:
    r = await client.post("/v1/quotes", json={"ids": ["cg:bitcoin"], "symbols": ["^GSPC"]})
    assert r.status_code == 200
    body = r.json()
    assert [item["id"] for item in body] == ["cg:bitcoin", "yahoo:^GSPC"]
    assert body[1]["price"] == 5100.5


@pytest.mark.asyncio
async def test_post_quotes_rejects_unknown_fields(client: AsyncClient) -> None:
    r = await client.post("/v1/quotes", json={"tickers": ["AAPL"]})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_large_batches_are_not_capped(client: AsyncClient) -> None:
    ids = [f"SYM{i}" for i in range(201)]
    r = await client.post("/v1/quotes", json={"symbols": ids})
    assert r.status_code == 200
    assert len(r.json()) == 201


@pytest.mark.asyncio
async def test_quotes_use_case_crash_becomes_per_id_errors(app: FastAPI) -> None:
    class _Broken:
        async def execute(self, ids: list[str]) -> list[object]:
            raise UpstreamTimeout("deadline")

    app.dependency_overrides[dep.get_quotes_uc] = lambda: _Broken()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        r = await c.get("/v1/quotes", params={"ids": "AAPL,MSFT"})
    assert r.status_code == 200
    assert [item["errorCode"] for item in r.json()] == ["UPSTREAM_TIMEOUT", "UPSTREAM_TIMEOUT"]


# --------------------------------------------------------------------------- #
# History
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_history_series(client: AsyncClient) -> None:
    r = await client.get("/v1/history", params={"id": "AAPL", "range": "1mo"})
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "AAPL"
    assert body["currency"] == "USD"
    assert body["source"] == QuoteSource.YAHOO.value
    assert [p["v"] for p in body["points"]] == [189.5, 190.25]
    assert r.headers["Cache-Control"] == "public, s-maxage=3600, stale-while-revalidate=600"


@pytest.mark.asyncio
async def test_history_upstream_failure_is_200_error_object(client: AsyncClient) -> None:
    r = await client.get("/v1/history", params={"id": "BLOCKED"})
    assert r.status_code == 200
    assert r.json() == {
        "id": "BLOCKED",
        "error": "Upstream Yahoo failure: HTTP 403",
        "errorCode": "UPSTREAM_AUTH_ERROR",
    }
    assert "Cache-Control" not in r.headers


class _CrashingHistory:
    async def execute(self, *args: object, **kwargs: object) -> object:
        raise RuntimeError("bad series")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "params", "dependency"),
    [
        ("/v1/history", {"id": "AAPL"}, dep.get_history_uc),
        ("/v1/history/at", {"id": "AAPL", "date": "2024-01-02"}, dep.get_price_at_uc),
    ],
)
async def test_history_use_case_crash_is_200_error_object(
    app: FastAPI, path: str, params: dict[str, str], dependency: object
) -> None:
    app.dependency_overrides[dependency] = lambda: _CrashingHistory()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        r = await c.get(path, params=params)
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "AAPL"
    assert body["errorCode"] == "INTERNAL_ERROR"
    assert "Cache-Control" not in r.headers


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"range": "1mo"},
        {"id": "AAPL", "range": "2w"},
        {"id": "AAPL", "range": "1mo", "interval": "7m"},
    ],
)
async def test_history_bad_requests(client: AsyncClient, params: dict[str, str]) -> None:
    r = await client.get("/v1/history", params=params)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "BAD_REQUEST"


@pytest.mark.asyncio
async def test_price_at_rejects_bad_and_future_dates(client: AsyncClient) -> None:
    bad = await client.get("/v1/history/at", params={"id": "AAPL", "date": "03/01/2024"})
    assert bad.status_code == 400
    tomorrow = (datetime.now(tz=UTC) + timedelta(days=1)).date().isoformat()
    future = await client.get("/v1/history/at", params={"id": "AAPL", "date": tomorrow})
    assert future.status_code == 400


@pytest.mark.asyncio
async def test_price_at_today(client: AsyncClient) -> None:
    today = datetime.now(tz=UTC).date().isoformat()
    r = await client.get("/v1/history/at", params={"id": "AAPL", "date": today})
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "AAPL"
    assert body["v"] in (189.5, 190.25)
    assert body["currency"] == "USD"


# --------------------------------------------------------------------------- #
# FX, search, health, metrics
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_fx_rate(app: FastAPI, client: AsyncClient) -> None:
    rate = FxRate(base="USD", quote="ILS", rate=3.71, timestamp_ms=1_700_000_000_000)
    app.dependency_overrides[dep.get_fx_rate_uc] = lambda: GetFxRate(FakeFx(rate))

    r = await client.get("/v1/fx")
    assert r.status_code == 200
    assert r.json() == {
        "base": "USD",
        "quote": "ILS",
        "rate": 3.71,
        "timestampMs": 1_700_000_000_000,
        "source": "exchangerate-api",
    }

    unsupported = await client.get("/v1/fx", params={"base": "EUR"})
    assert unsupported.status_code == 400
    err = unsupported.json()["error"]
    assert err["code"] == "UNSUPPORTED_CURRENCY_PAIR"
    assert err["details"] == {"supported": "USD/ILS"}


@pytest.mark.asyncio
async def test_fx_upstream_failure_is_502(app: FastAPI, client: AsyncClient) -> None:
    app.dependency_overrides[dep.get_fx_rate_uc] = lambda: GetFxRate(
        FakeFx(UpstreamTimeout("exchangerate-api latest timed out after 8s"))
    )
    r = await client.get("/v1/fx")
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "UPSTREAM_TIMEOUT"


@pytest.mark.asyncio
async def test_search(client: AsyncClient) -> None:
    r = await client.get("/v1/search", params={"q": "662577"})
    assert r.status_code == 200
    assert r.json() == [
        {
            "id": "tase:662577",
            "symbol": "POLI.TA",
            "name": "Bank Hapoalim",
            "nameHe": "בנק הפועלים",
            "type": "equity",
        }
    ]
    missing = await client.get("/v1/search")
    assert missing.status_code == 400


@pytest.mark.asyncio
async def test_healthz_and_metrics(client: AsyncClient) -> None:
    health = await client.get("/healthz")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["inflightRequests"] == 0

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "marketfeed_fallback_stage_total" in metrics.text
    assert "marketfeed_upstream_latency_seconds" in metrics.text
