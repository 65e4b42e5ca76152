# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Binance Gateway: crypto history fallback from public USDT klines.

Used only when CoinGecko history fails. Coin slugs map to Binance base
tickers; slugs without a mapping cannot be served.
"""

from __future__ import annotations

from typing import Any, Final

from marketfeed_api.adapters.gateways.coingecko_gateway import coingecko_days
from marketfeed_api.domain.entities.history import HistoryRange, HistorySeries
from marketfeed_api.domain.entities.quote import QuoteSource
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

__all__ = ["BINANCE_TICKERS", "BinanceGateway"]

#: CoinGecko slug → Binance base ticker (quoted against USDT).
BINANCE_TICKERS: Final[dict[str, str]] = {
    "bitcoin": "BTC",
    "ethereum": "ETH",
    "solana": "SOL",
    "cardano": "ADA",
    "polkadot": "DOT",
    "chainlink": "LINK",
    "litecoin": "LTC",
    "bitcoin-cash": "BCH",
    "stellar": "XLM",
    "dogecoin": "DOGE",
    "avalanche-2": "AVAX",
    "matic-network": "MATIC",
    "polygon": "MATIC",
    "uniswap": "UNI",
    "cosmos": "ATOM",
    "algorand": "ALGO",
    "vechain": "VET",
    "filecoin": "FIL",
    "the-graph": "GRT",
    "aave": "AAVE",
    "ripple": "XRP",
    "binancecoin": "BNB",
    "tron": "TRX",
}

_MAX_LIMIT: Final[int] = 1000


def kline_interval(days: int) -> str:
    """Return the candle interval for a window of ``days``."""
    if days <= 7:
        return "1h"
    if days <= 30:
        return "4h"
    return "1d"


def _close(candle: Any) -> float | None:
    try:
        return float(candle[4])
    except (TypeError, ValueError, IndexError):
        return None


class BinanceGateway:
    """Klines-based history for major coins."""

    def __init__(self, transport: ProviderTransport, *, history_ttl_s: int = 3600) -> None:
        self._transport = transport
        self._history_ttl = history_ttl_s

    async def fetch_history(self, slug: str, rng: HistoryRange) -> HistorySeries:
        """Fetch close prices for ``slug`` over the CoinGecko-equivalent window.

        Raises:
            SymbolNotFound: If the slug has no Binance ticker or no candles.
            MarketDataValidationError: If the payload is not a list of candles.
        """
        ticker = BINANCE_TICKERS.get(slug.lower())
        if ticker is None:
            raise SymbolNotFound(f"No Binance ticker for {slug}")
        days = coingecko_days(rng)
        interval = kline_interval(days)
        limit = min(days, _MAX_LIMIT)
        pair = f"{ticker}USDT"
        payload = await self._transport.get_json(
            endpoint="klines",
            path="/klines",
            params={"symbol": pair, "interval": interval, "limit": limit},
            cache_key=make_key("klines", symbols=[pair], interval=interval, limit=limit),
            ttl=self._history_ttl,
        )
        if not isinstance(payload, list):
            raise MarketDataValidationError("bad_shape", details={"expected": "list"})
        samples = [
            (int(candle[0]), _close(candle))
            for candle in payload
            if isinstance(candle, list) and len(candle) > 4
        ]
        series = HistorySeries.build(
            f"cg:{slug}", samples, currency="USD", source=QuoteSource.BINANCE
        )
        if series.empty:
            raise SymbolNotFound(f"No Binance candles for {pair}")
        return series
