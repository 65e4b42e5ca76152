# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Presenter: market data results → HTTP schemas.

Synopsis:
    Renders quote records, history results, FX rates and search hits into
    their wire schemas. Quote and history responses carry shared-cache
    headers so CDN/edge caches absorb repeated polling.

Layer:
    adapters/presenters
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from marketfeed_api.adapters.presenters.base_presenter import (
    BasePresenter,
    PresentResult,
    cache_control,
)
from marketfeed_api.adapters.schemas.http.fx import FxRateResponse
from marketfeed_api.adapters.schemas.http.history import (
    HistoryErrorResponse,
    HistoryPointHTTP,
    HistoryResponse,
    PriceAtResponse,
)
from marketfeed_api.adapters.schemas.http.quotes import QuoteErrorItem, QuoteItem, QuoteResult
from marketfeed_api.adapters.schemas.http.search import SearchHitHTTP
from marketfeed_api.application.use_cases.quotes.get_history import HistoryResult
from marketfeed_api.application.use_cases.quotes.get_price_at import PriceAtResult
from marketfeed_api.application.use_cases.search.search_instruments import SearchHit
from marketfeed_api.domain.entities.fx_rate import FxRate
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource

QUOTES_CACHE_CONTROL: Final[str] = cache_control(s_maxage=60, stale_while_revalidate=30)
HISTORY_CACHE_CONTROL: Final[str] = cache_control(s_maxage=3600, stale_while_revalidate=600)


def present_quote(record: QuoteRecord) -> QuoteResult:
    """Map one record to its priced or error wire shape."""
    if record.price is None:
        return QuoteErrorItem(
            id=record.id,
            error=record.error or "Unknown error",
            error_code=record.error_code,
        )
    return QuoteItem(
        id=record.id,
        price=record.price,
        currency=record.currency or "USD",
        change_pct=record.change_pct,
        timestamp_ms=record.timestamp_ms,
        source=record.source.value,
        name=record.name,
    )


class MarketDataPresenter(BasePresenter):
    """Presenter for quotes, history, FX and search responses."""

    def present_quotes(
        self, records: Sequence[QuoteRecord], *, trace_id: str | None = None
    ) -> PresentResult[list[QuoteResult]]:
        return PresentResult(
            body=[present_quote(r) for r in records],
            headers=self.base_headers(trace_id, cache=QUOTES_CACHE_CONTROL),
        )

    def present_history(
        self, result: HistoryResult, *, trace_id: str | None = None
    ) -> PresentResult[HistoryResponse | HistoryErrorResponse]:
        """Render a series, or the per-id error object.

        Error bodies are not shared-cached so a transient upstream failure
        is not pinned at the edge for an hour.
        """
        if result.series is None:
            return PresentResult(
                body=HistoryErrorResponse(
                    id=result.id,
                    error=result.error or "History data not found",
                    error_code=result.error_code,
                ),
                headers=self.base_headers(trace_id),
            )
        series = result.series
        return PresentResult(
            body=HistoryResponse(
                id=result.id,
                points=[HistoryPointHTTP(t=p.timestamp_ms, v=p.value) for p in series.points],
                currency=series.currency,
                source=series.source.value,
            ),
            headers=self.base_headers(trace_id, cache=HISTORY_CACHE_CONTROL),
        )

    def present_price_at(
        self, result: PriceAtResult, *, trace_id: str | None = None
    ) -> PresentResult[PriceAtResponse | HistoryErrorResponse]:
        if result.point is None:
            return PresentResult(
                body=HistoryErrorResponse(
                    id=result.id,
                    error=result.error or "History data not found",
                    error_code=result.error_code,
                ),
                headers=self.base_headers(trace_id),
            )
        return PresentResult(
            body=PriceAtResponse(
                id=result.id,
                t=result.point.timestamp_ms,
                v=result.point.value,
                currency=result.currency or "USD",
                source=(result.source or QuoteSource.NONE).value,
            ),
            headers=self.base_headers(trace_id, cache=HISTORY_CACHE_CONTROL),
        )

    def present_fx(
        self, rate: FxRate, *, trace_id: str | None = None
    ) -> PresentResult[FxRateResponse]:
        return PresentResult(
            body=FxRateResponse(
                base=rate.base,
                quote=rate.quote,
                rate=rate.rate,
                timestamp_ms=rate.timestamp_ms,
                source=QuoteSource.EXCHANGERATE_API.value,
            ),
            headers=self.base_headers(trace_id, cache=HISTORY_CACHE_CONTROL),
        )

    def present_search(
        self, hits: Sequence[SearchHit], *, trace_id: str | None = None
    ) -> PresentResult[list[SearchHitHTTP]]:
        return PresentResult(
            body=[
                SearchHitHTTP(id=h.id, symbol=h.symbol, name=h.name, name_he=h.name_he, type=h.type)
                for h in hits
            ],
            headers=self.base_headers(trace_id),
        )
