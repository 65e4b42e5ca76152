# src/marketfeed_api/dependencies/market_data.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Dependency wiring for Market Data (transports, gateways, use cases).

Overview:
    The application lifespan builds one :class:`MarketDataContainer` per
    process and stores it on ``app.state.market_data``. FastAPI dependency
    providers below hand its use cases to routers.

Layer:
    dependencies

Design:
    * One shared ``httpx.AsyncClient`` and one :class:`RequestCoalescer` per
      process; every provider transport shares both.
    * Cache backend selected by ``CACHE_BACKEND``:
        - ``memory``: in-process TTL cache (tests, single-worker deployments).
        - ``redis``: :class:`RedisJsonCache` shared across workers.
    * Tests override the ``get_*_uc`` providers through
      ``app.dependency_overrides`` or build a container around fakes.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from marketfeed_api.adapters.gateways.binance_gateway import BinanceGateway
from marketfeed_api.adapters.gateways.coingecko_gateway import CoinGeckoGateway
from marketfeed_api.adapters.gateways.funder_gateway import FunderGateway
from marketfeed_api.adapters.gateways.fx_gateway import FxGateway
from marketfeed_api.adapters.gateways.globes_gateway import GlobesGateway
from marketfeed_api.adapters.gateways.yahoo_gateway import YahooGateway, yahoo_headers
from marketfeed_api.application.interfaces.cache_port import CachePort
from marketfeed_api.application.services.fallback_orchestrator import (
    FallbackOrchestrator,
    QuoteWaterfall,
)
from marketfeed_api.application.use_cases.fx.get_fx_rate import GetFxRate
from marketfeed_api.application.use_cases.quotes.get_history import GetHistory
from marketfeed_api.application.use_cases.quotes.get_price_at import GetPriceAt
from marketfeed_api.application.use_cases.quotes.get_quotes import GetQuotes
from marketfeed_api.application.use_cases.search.search_instruments import SearchInstruments
from marketfeed_api.config.settings import Settings
from marketfeed_api.infrastructure.caching.json_cache import RedisJsonCache
from marketfeed_api.infrastructure.caching.memory_cache import InMemoryTTLCache
from marketfeed_api.infrastructure.caching.redis_client import init_redis
from marketfeed_api.infrastructure.caching.request_coalescer import RequestCoalescer
from marketfeed_api.infrastructure.external_apis.provider_settings import (
    BinanceSettings,
    CoinGeckoSettings,
    FunderSettings,
    FxSettings,
    GlobesSettings,
    ProviderSettings,
    YahooSettings,
)
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport
from marketfeed_api.infrastructure.logging.logger import get_json_logger
from marketfeed_api.infrastructure.reference_data.tase_instruments import TaseReferenceData

logger = get_json_logger(__name__)

_HTML_ACCEPT = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"


@dataclass(slots=True)
class ProviderSettingsBundle:
    """Per-provider settings, each loaded from its own env prefix."""

    coingecko: CoinGeckoSettings
    binance: BinanceSettings
    yahoo: YahooSettings
    funder: FunderSettings
    globes: GlobesSettings
    fx: FxSettings

    @classmethod
    def from_env(cls) -> ProviderSettingsBundle:
        return cls(
            coingecko=CoinGeckoSettings(),
            binance=BinanceSettings(),
            yahoo=YahooSettings(),
            funder=FunderSettings(),
            globes=GlobesSettings(),
            fx=FxSettings(),
        )


@dataclass(slots=True)
class MarketDataContainer:
    """Process-wide object graph for market data."""

    coalescer: RequestCoalescer
    get_quotes: GetQuotes
    get_history: GetHistory
    get_price_at: GetPriceAt
    get_fx_rate: GetFxRate
    search_instruments: SearchInstruments


def build_cache(settings: Settings) -> CachePort:
    """Return the configured cache backend."""
    if settings.cache_backend == "redis":
        return RedisJsonCache(init_redis(settings), namespace=settings.cache_namespace)
    return InMemoryTTLCache()


def build_container(
    settings: Settings,
    http: httpx.AsyncClient,
    *,
    cache: CachePort | None = None,
    providers: ProviderSettingsBundle | None = None,
    reference: TaseReferenceData | None = None,
) -> MarketDataContainer:
    """Wire transports, gateways and use cases around one HTTP client.

    Args:
        settings: Application settings.
        http: Shared async HTTP client (owned by the caller).
        cache: Cache backend override; defaults to :func:`build_cache`.
        providers: Provider settings override; defaults to env-loaded ones.
        reference: TASE reference data override.

    Returns:
        MarketDataContainer: Ready-to-use use cases.
    """
    providers = providers or ProviderSettingsBundle.from_env()
    reference = reference or TaseReferenceData()
    coalescer = RequestCoalescer(
        cache or build_cache(settings), default_ttl=settings.quote_cache_ttl_s
    )

    def transport(
        name: str, cfg: ProviderSettings, headers: dict[str, str] | None = None
    ) -> ProviderTransport:
        return ProviderTransport(
            provider=name,
            settings=cfg,
            http=http,
            coalescer=coalescer,
            headers=headers,
        )

    quote_ttl = settings.quote_cache_ttl_s
    history_ttl = settings.history_cache_ttl_s

    coingecko = CoinGeckoGateway(
        transport("coingecko", providers.coingecko, {"Accept": "application/json"}),
        quote_ttl_s=quote_ttl,
        history_ttl_s=history_ttl,
        batch_size=providers.coingecko.batch_size,
    )
    binance = BinanceGateway(transport("binance", providers.binance), history_ttl_s=history_ttl)
    yahoo = YahooGateway(
        transport("yahoo", providers.yahoo, yahoo_headers(providers.yahoo.user_agent)),
        quote_ttl_s=quote_ttl,
        history_ttl_s=history_ttl,
    )
    funder = FunderGateway(
        transport(
            "funder",
            providers.funder,
            {"User-Agent": providers.funder.user_agent, "Accept": _HTML_ACCEPT},
        ),
        quote_ttl_s=quote_ttl,
    )
    globes = GlobesGateway(
        transport(
            "globes",
            providers.globes,
            {"User-Agent": providers.globes.user_agent, "Accept": "application/json"},
        ),
        quote_ttl_s=quote_ttl,
    )
    fx = FxGateway(transport("exchangerate-api", providers.fx), ttl_s=settings.fx_cache_ttl_s)

    orchestrator = FallbackOrchestrator(
        coingecko=coingecko,
        yahoo=yahoo,
        funder=funder,
        globes=globes,
        reference=reference,
        waterfall=QuoteWaterfall(stage_timeout_s=settings.quotes_stage_timeout_s),
    )
    get_history = GetHistory(coingecko=coingecko, binance=binance, yahoo=yahoo, reference=reference)
    container = MarketDataContainer(
        coalescer=coalescer,
        get_quotes=GetQuotes(
            orchestrator=orchestrator,
            coingecko=coingecko,
            yahoo=yahoo,
            reference=reference,
            max_concurrency=settings.quotes_max_concurrency,
            per_id_timeout_s=settings.quotes_per_id_timeout_s,
            yahoo_batch_size=settings.yahoo_batch_size,
        ),
        get_history=get_history,
        get_price_at=GetPriceAt(get_history),
        get_fx_rate=GetFxRate(fx),
        search_instruments=SearchInstruments(reference),
    )
    logger.info(
        "market_data.container_built",
        extra={"extra": {"cache_backend": settings.cache_backend}},
    )
    return container


# =============================================================================
# FastAPI dependency providers
# =============================================================================


def get_container(request: Request) -> MarketDataContainer:
    """Return the container built by the application lifespan.

    Raises:
        RuntimeError: If the lifespan has not run (app not started).
    """
    container = getattr(request.app.state, "market_data", None)
    if container is None:
        raise RuntimeError("Market data container not initialized (lifespan not started)")
    return container


def get_quotes_uc(request: Request) -> GetQuotes:
    return get_container(request).get_quotes


def get_history_uc(request: Request) -> GetHistory:
    return get_container(request).get_history


def get_price_at_uc(request: Request) -> GetPriceAt:
    return get_container(request).get_price_at


def get_fx_rate_uc(request: Request) -> GetFxRate:
    return get_container(request).get_fx_rate


def get_search_uc(request: Request) -> SearchInstruments:
    return get_container(request).search_instruments
