# src/marketfeed_api/adapters/gateways/coingecko_gateway.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""CoinGecko Gateway (Adapters Layer).

Synopsis:
    Crypto quotes and history from the CoinGecko public API.

Design:
    * Quotes are batch-capable: one ``/simple/price`` call covers up to
      ``batch_size`` coin ids. A coin missing from the payload becomes a
      per-coin ``SymbolNotFound``; the rest of the batch is unaffected.
      A whole-call failure is reported for every coin of the chunk.
    * History uses ``/coins/{id}/market_chart`` with a range → days window.
    * Prices are USD; no unit normalization applies.

Layer:
    adapters/gateways
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any, Final

from marketfeed_api.domain.entities.history import HistoryRange, HistorySeries
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

__all__ = ["CoinGeckoGateway", "coingecko_days"]

#: Range token → ``days`` query parameter for ``market_chart``.
_RANGE_DAYS: Final[dict[HistoryRange, int]] = {
    HistoryRange.D1: 7,
    HistoryRange.D5: 7,
    HistoryRange.MO1: 30,
    HistoryRange.MO3: 90,
    HistoryRange.MO6: 180,
    HistoryRange.Y1: 365,
    HistoryRange.Y5: 1825,
}


def coingecko_days(rng: HistoryRange) -> int:
    """Return the ``days`` window CoinGecko is queried with for ``rng``."""
    return _RANGE_DAYS.get(rng, 30)


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class CoinGeckoGateway:
    """CoinGecko adapter for quotes and history."""

    def __init__(
        self,
        transport: ProviderTransport,
        *,
        quote_ttl_s: int = 60,
        history_ttl_s: int = 3600,
        batch_size: int = 250,
    ) -> None:
        self._transport = transport
        self._quote_ttl = quote_ttl_s
        self._history_ttl = history_ttl_s
        self._batch_size = batch_size

    async def fetch_quotes(self, slugs: Sequence[str]) -> dict[str, QuoteRecord | DomainError]:
        """Fetch quotes for many coin ids; every requested slug gets an outcome.

        Args:
            slugs: CoinGecko coin ids (e.g. ``"bitcoin"``).

        Returns:
            Slug → priced record, or the failure for that slug. A whole-call
            failure is reported for every slug of the affected chunk.
        """
        unique = list(dict.fromkeys(s.strip().lower() for s in slugs if s.strip()))
        out: dict[str, QuoteRecord | DomainError] = {}
        for start in range(0, len(unique), self._batch_size):
            chunk = unique[start : start + self._batch_size]
            try:
                payload = await self._simple_price(chunk)
            except DomainError as exc:
                for slug in chunk:
                    out[slug] = exc
                continue
            for slug in chunk:
                out[slug] = self._to_result(slug, payload.get(slug))
        return out

    async def fetch_quote(self, slug: str) -> QuoteRecord:
        """Fetch one coin; raises instead of returning an error record.

        Raises:
            SymbolNotFound: If CoinGecko does not know the coin.
            DomainError: Any transport failure.
        """
        key = slug.strip().lower()
        payload = await self._simple_price([key])
        result = self._to_result(key, payload.get(key))
        if isinstance(result, DomainError):
            raise result
        return result

    async def fetch_history(self, slug: str, rng: HistoryRange) -> HistorySeries:
        """Fetch a USD price series for ``slug``.

        Raises:
            SymbolNotFound: If the payload holds no usable prices.
            MarketDataValidationError: On an unexpected payload shape.
        """
        days = coingecko_days(rng)
        payload = await self._transport.get_json(
            endpoint="market_chart",
            path=f"/coins/{slug}/market_chart",
            params={"vs_currency": "usd", "days": days},
            cache_key=make_key("market_chart", symbols=[slug], days=days),
            ttl=self._history_ttl,
        )
        prices = payload.get("prices") if isinstance(payload, Mapping) else None
        if not isinstance(prices, list):
            raise MarketDataValidationError("bad_shape", details={"field": "prices"})
        samples = [
            (int(row[0]), _as_float(row[1]))
            for row in prices
            if isinstance(row, list) and len(row) >= 2 and _as_float(row[0]) is not None
        ]
        series = HistorySeries.build(
            f"cg:{slug}", samples, currency="USD", source=QuoteSource.COINGECKO
        )
        if series.empty:
            raise SymbolNotFound(f"No CoinGecko history for {slug}")
        return series

    # ----------------------------- Internals ----------------------------- #

    async def _simple_price(self, chunk: Sequence[str]) -> Mapping[str, Any]:
        payload = await self._transport.get_json(
            endpoint="simple_price",
            path="/simple/price",
            params={
                "ids": ",".join(chunk),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_last_updated_at": "true",
            },
            cache_key=make_key("simple_price", symbols=chunk),
            ttl=self._quote_ttl,
        )
        if not isinstance(payload, Mapping):
            raise MarketDataValidationError("bad_shape", details={"expected": "object"})
        return payload

    @staticmethod
    def _to_result(slug: str, entry: Any) -> QuoteRecord | DomainError:
        price = _as_float(entry.get("usd")) if isinstance(entry, Mapping) else None
        if price is None or price <= 0:
            return SymbolNotFound(f"Coin {slug} not found in CoinGecko response")
        updated = _as_float(entry.get("last_updated_at"))
        timestamp_ms = int(updated * 1000) if updated else int(time.time() * 1000)
        return QuoteRecord(
            id=f"cg:{slug}",
            price=price,
            currency="USD",
            change_pct=_as_float(entry.get("usd_24h_change")) or 0.0,
            timestamp_ms=timestamp_ms,
            source=QuoteSource.COINGECKO,
        )
