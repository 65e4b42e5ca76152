# tests/unit/adapters/gateways/test_crypto_gateways.py
from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
import respx

from marketfeed_api.adapters.gateways.binance_gateway import BinanceGateway, kline_interval
from marketfeed_api.adapters.gateways.coingecko_gateway import CoinGeckoGateway, coingecko_days
from marketfeed_api.domain.entities.history import HistoryRange
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
    UpstreamHttpError,
)
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

CG = "https://coingecko.test"
BN = "https://binance.test"


def _coingecko(
    make_transport: Callable[..., ProviderTransport], batch_size: int = 250
) -> CoinGeckoGateway:
    return CoinGeckoGateway(
        make_transport("coingecko", CG), quote_ttl_s=0, history_ttl_s=0, batch_size=batch_size
    )


@pytest.mark.asyncio
@respx.mock
async def test_batch_reports_missing_coins_per_slug(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    route = respx.get(f"{CG}/simple/price").mock(
        return_value=httpx.Response(
            200,
            json={
                "bitcoin": {
                    "usd": 64000.5,
                    "usd_24h_change": -1.2,
                    "last_updated_at": 1_700_000_000,
                }
            },
        )
    )
    out = await _coingecko(make_transport).fetch_quotes(["bitcoin", "doesnotexist", "Bitcoin"])

    assert route.call_count == 1
    assert route.calls.last.request.url.params["ids"] == "bitcoin,doesnotexist"
    btc = out["bitcoin"]
    assert isinstance(btc, QuoteRecord)
    assert (btc.price, btc.currency, btc.change_pct) == (64000.5, "USD", -1.2)
    assert btc.timestamp_ms == 1_700_000_000_000
    assert btc.source is QuoteSource.COINGECKO
    missing = out["doesnotexist"]
    assert isinstance(missing, SymbolNotFound)
    assert str(missing) == "Coin doesnotexist not found in CoinGecko response"


@pytest.mark.asyncio
@respx.mock
async def test_batch_chunks_and_isolates_failed_chunk(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        if request.url.params["ids"] == "a,b":
            return httpx.Response(200, json={"a": {"usd": 1}, "b": {"usd": 2}})
        return httpx.Response(500)

    respx.get(f"{CG}/simple/price").mock(side_effect=respond)
    out = await _coingecko(make_transport, batch_size=2).fetch_quotes(["a", "b", "c"])
    assert isinstance(out["a"], QuoteRecord)
    assert isinstance(out["b"], QuoteRecord)
    assert isinstance(out["c"], UpstreamHttpError)


@pytest.mark.asyncio
@respx.mock
async def test_single_quote_raises_for_unknown_coin(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    respx.get(f"{CG}/simple/price").mock(return_value=httpx.Response(200, json={}))
    with pytest.raises(SymbolNotFound):
        await _coingecko(make_transport).fetch_quote("doesnotexist")


@pytest.mark.asyncio
@respx.mock
async def test_history_uses_range_days(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.get(f"{CG}/coins/bitcoin/market_chart").mock(
        return_value=httpx.Response(
            200, json={"prices": [[1_700_000_000_000, 100.0], [1_700_000_060_000, 101.0]]}
        )
    )
    series = await _coingecko(make_transport).fetch_history("bitcoin", HistoryRange.D1)
    assert route.calls.last.request.url.params["days"] == "7"
    assert [p.value for p in series.points] == [100.0, 101.0]
    assert (series.id, series.currency) == ("cg:bitcoin", "USD")


@pytest.mark.asyncio
@respx.mock
async def test_history_bad_shape(make_transport: Callable[..., ProviderTransport]) -> None:
    respx.get(f"{CG}/coins/bitcoin/market_chart").mock(
        return_value=httpx.Response(200, json={"error": "x"})
    )
    with pytest.raises(MarketDataValidationError):
        await _coingecko(make_transport).fetch_history("bitcoin", HistoryRange.MO1)


def test_days_and_kline_intervals() -> None:
    assert coingecko_days(HistoryRange.D5) == 7
    assert coingecko_days(HistoryRange.Y5) == 1825
    assert kline_interval(7) == "1h"
    assert kline_interval(30) == "4h"
    assert kline_interval(365) == "1d"


@pytest.mark.asyncio
@respx.mock
async def test_binance_klines_history(make_transport: Callable[..., ProviderTransport]) -> None:
    route = respx.get(f"{BN}/klines").mock(
        return_value=httpx.Response(
            200,
            json=[
                [1_700_000_000_000, "1", "2", "0.5", "64000.10", "10"],
                [1_700_003_600_000, "1", "2", "0.5", "64100.20", "10"],
            ],
        )
    )
    gateway = BinanceGateway(make_transport("binance", BN), history_ttl_s=0)
    series = await gateway.fetch_history("bitcoin", HistoryRange.MO1)

    params = route.calls.last.request.url.params
    assert (params["symbol"], params["interval"], params["limit"]) == ("BTCUSDT", "4h", "30")
    assert [p.value for p in series.points] == [64000.10, 64100.20]
    assert series.source is QuoteSource.BINANCE


@pytest.mark.asyncio
async def test_binance_unknown_slug_is_not_found(
    make_transport: Callable[..., ProviderTransport],
) -> None:
    gateway = BinanceGateway(make_transport("binance", BN))
    with pytest.raises(SymbolNotFound):
        await gateway.fetch_history("some-new-coin", HistoryRange.MO1)
