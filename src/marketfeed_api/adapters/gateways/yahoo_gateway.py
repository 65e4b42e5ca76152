# src/marketfeed_api/adapters/gateways/yahoo_gateway.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Yahoo Finance Gateway (Adapters Layer).

Synopsis:
    Global equities, ETFs, indices and TASE listings via Yahoo Finance.

Design:
    * Batch quotes: ``/v7/finance/quote?symbols=…`` (callers chunk to ≤ 50).
      Symbols absent from the payload are simply missing from the result.
    * Chart quotes: ``/v8/finance/chart/{symbol}``, tried with
      ``1d/1m``, then ``5d/5m``, then ``5d/1d``; used when the batch endpoint
      is blocked or has no data for a symbol. Only "no data" advances to the
      next strategy; timeouts and HTTP failures end the attempt.
    * Chart price priority: ``meta.regularMarketPrice`` → latest non-null
      close → ``meta.previousClose``.
    * Every price passes through the currency normalizer (Agorot handling,
      index exception).

Layer:
    adapters/gateways
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any, Final
from urllib.parse import quote

from marketfeed_api.domain.entities.history import HistoryRange, HistorySeries
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.domain.services.currency_normalizer import (
    InstrumentType,
    change_pct,
    normalize,
    normalize_series,
)
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

__all__ = ["CHART_STRATEGIES", "YahooGateway", "yahoo_headers"]

#: (range, interval) pairs tried in order for chart-derived quotes.
CHART_STRATEGIES: Final[tuple[tuple[str, str], ...]] = (
    ("1d", "1m"),
    ("5d", "5m"),
    ("5d", "1d"),
)


def yahoo_headers(user_agent: str) -> dict[str, str]:
    """Browser-like headers Yahoo expects from unauthenticated clients."""
    return {
        "User-Agent": user_agent,
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
    }


def _num(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _last_close(result: Mapping[str, Any]) -> tuple[float, int | None] | None:
    """Return the latest non-null close and its timestamp (seconds)."""
    timestamps = result.get("timestamp") or []
    quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
    closes = quotes.get("close") or []
    for idx in range(len(closes) - 1, -1, -1):
        value = _num(closes[idx])
        if value is not None and value > 0:
            ts = timestamps[idx] if idx < len(timestamps) else None
            return value, int(ts) if isinstance(ts, (int, float)) else None
    return None


def _chart_result(payload: Any, symbol: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping) or not isinstance(payload.get("chart"), Mapping):
        raise MarketDataValidationError("bad_shape", details={"symbol": symbol})
    chart = payload["chart"]
    results = chart.get("result")
    if chart.get("error") or not isinstance(results, list) or not results:
        raise SymbolNotFound(f"Yahoo chart has no data for {symbol}")
    result = results[0]
    if not isinstance(result, Mapping):
        raise MarketDataValidationError("bad_shape", details={"symbol": symbol})
    return result


class YahooGateway:
    """Yahoo Finance adapter for batch quotes, chart quotes and history."""

    def __init__(
        self,
        transport: ProviderTransport,
        *,
        quote_ttl_s: int = 60,
        history_ttl_s: int = 3600,
    ) -> None:
        self._transport = transport
        self._quote_ttl = quote_ttl_s
        self._history_ttl = history_ttl_s

    # ------------------------------- Quotes ------------------------------ #

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, QuoteRecord]:
        """Fetch one batch of quotes from ``/v7/finance/quote``.

        Args:
            symbols: Up to 50 Yahoo symbols.

        Returns:
            dict[str, QuoteRecord]: Symbol → priced record for symbols with a
            usable price. Other symbols are absent.

        Raises:
            DomainError: When the whole call fails (auth, 5xx, timeout, shape).
        """
        unique = list(dict.fromkeys(s for s in symbols if s))
        if not unique:
            return {}
        payload = await self._transport.get_json(
            endpoint="quote",
            path="/v7/finance/quote",
            params={"symbols": ",".join(unique)},
            cache_key=make_key("quote", symbols=unique),
            ttl=self._quote_ttl,
        )
        body = payload.get("quoteResponse") if isinstance(payload, Mapping) else None
        rows = body.get("result") if isinstance(body, Mapping) else None
        if not isinstance(rows, list):
            raise MarketDataValidationError("bad_shape", details={"field": "quoteResponse"})

        wanted = set(unique)
        out: dict[str, QuoteRecord] = {}
        for row in rows:
            if not isinstance(row, Mapping) or row.get("symbol") not in wanted:
                continue
            record = self._quote_row_to_record(row)
            if record is not None:
                out[str(row["symbol"])] = record
        return out

    async def fetch_chart_quote(self, symbol: str) -> QuoteRecord:
        """Derive a quote from the chart endpoint, trying each strategy in turn.

        Only "no data" outcomes move on to the next strategy. Timeouts, rate
        limits and HTTP failures end the loop so the caller's waterfall can
        try another provider.

        Raises:
            DomainError: The first non-miss failure, or the last miss.
        """
        last: DomainError = SymbolNotFound(f"No Yahoo chart data for {symbol}")
        for rng, interval in CHART_STRATEGIES:
            try:
                result = await self._chart(symbol, rng, interval, ttl=self._quote_ttl)
                return self._chart_to_record(symbol, result)
            except (SymbolNotFound, MarketDataValidationError) as exc:
                last = exc
        raise last

    # ------------------------------ History ------------------------------ #

    async def fetch_history(
        self,
        symbol: str,
        rng: HistoryRange,
        interval: str | None = None,
    ) -> HistorySeries:
        """Fetch a normalized close-price series for ``symbol``.

        Raises:
            UpstreamAuthError: On 401/403.
            UpstreamHttpError: On 5xx.
            SymbolNotFound: On 404 or an empty series.
        """
        effective_interval = interval or rng.default_interval
        result = await self._chart(symbol, rng.value, effective_interval, ttl=self._history_ttl)
        meta = result.get("meta") or {}
        timestamps = result.get("timestamp") or []
        quotes = ((result.get("indicators") or {}).get("quote") or [{}])[0] or {}
        closes = quotes.get("close") or []
        samples = [
            (int(ts) * 1000, _num(close))
            for ts, close in zip(timestamps, closes, strict=False)
            if isinstance(ts, (int, float))
        ]
        adjusted, currency = normalize_series(
            samples,
            meta.get("currency"),
            symbol,
            InstrumentType.from_provider(meta.get("instrumentType")),
        )
        series = HistorySeries.build(
            f"yahoo:{symbol}", adjusted, currency=currency, source=QuoteSource.YAHOO
        )
        if series.empty:
            raise SymbolNotFound(f"No Yahoo history for {symbol}")
        return series

    # ----------------------------- Internals ----------------------------- #

    async def _chart(self, symbol: str, rng: str, interval: str, *, ttl: int) -> Mapping[str, Any]:
        payload = await self._transport.get_json(
            endpoint="chart",
            path=f"/v8/finance/chart/{quote(symbol, safe='')}",
            params={"range": rng, "interval": interval},
            cache_key=make_key("chart", symbols=[symbol], range=rng, interval=interval),
            ttl=ttl,
        )
        return _chart_result(payload, symbol)

    @staticmethod
    def _quote_row_to_record(row: Mapping[str, Any]) -> QuoteRecord | None:
        symbol = str(row["symbol"])
        raw_price = _num(row.get("regularMarketPrice"))
        if raw_price is None or raw_price <= 0:
            return None
        kind = InstrumentType.from_provider(row.get("quoteType"))
        norm = normalize(raw_price, row.get("currency"), symbol, kind)
        market_time = _num(row.get("regularMarketTime"))
        return QuoteRecord(
            id=f"yahoo:{symbol}",
            price=norm.price,
            currency=norm.currency,
            change_pct=change_pct(
                norm.price,
                provider_pct=_num(row.get("regularMarketChangePercent")),
                previous_close=_num(row.get("regularMarketPreviousClose")),
                divisor=norm.divisor,
            ),
            timestamp_ms=int(market_time * 1000) if market_time else int(time.time() * 1000),
            source=QuoteSource.YAHOO,
            name=row.get("shortName") or row.get("longName") or None,
        )

    @staticmethod
    def _chart_to_record(symbol: str, result: Mapping[str, Any]) -> QuoteRecord:
        meta = result.get("meta") or {}
        raw_price = _num(meta.get("regularMarketPrice"))
        ts = _num(meta.get("regularMarketTime"))
        from_previous_close = False
        if raw_price is None or raw_price <= 0:
            last = _last_close(result)
            if last is not None:
                raw_price, last_ts = last
                ts = float(last_ts) if last_ts is not None else None
            else:
                raw_price = _num(meta.get("previousClose")) or _num(meta.get("chartPreviousClose"))
                from_previous_close = True
        if raw_price is None or raw_price <= 0:
            raise SymbolNotFound(f"Yahoo chart has no price for {symbol}")

        kind = InstrumentType.from_provider(meta.get("instrumentType"))
        norm = normalize(raw_price, meta.get("currency"), symbol, kind)
        previous = (
            _num(meta.get("regularMarketPreviousClose"))
            or _num(meta.get("previousClose"))
            or _num(meta.get("chartPreviousClose"))
        )
        pct = (
            0.0
            if from_previous_close
            else change_pct(
                norm.price,
                provider_pct=_num(meta.get("regularMarketChangePercent")),
                previous_close=previous,
                divisor=norm.divisor,
            )
        )
        return QuoteRecord(
            id=f"yahoo:{symbol}",
            price=norm.price,
            currency=norm.currency,
            change_pct=pct,
            timestamp_ms=int(ts * 1000) if ts else int(time.time() * 1000),
            source=QuoteSource.YAHOO,
            name=meta.get("shortName") or meta.get("longName") or None,
        )
