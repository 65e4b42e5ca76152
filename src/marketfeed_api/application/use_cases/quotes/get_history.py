# src/marketfeed_api/application/use_cases/quotes/get_history.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Use case: Get price history.

Synopsis:
    Fetches a close-price series for one identifier and reports failures as
    data (``HistoryResult.error``) rather than exceptions.

Provider order:
    * Crypto: CoinGecko ``market_chart``, then Binance klines.
    * Yahoo: chart endpoint with the requested (or default) interval.
    * TASE: Yahoo chart for the listed symbol (source ``tase-reference``),
      then for ``<id>.TA`` (source ``yahoo-inferred``). Agorot series are
      normalized by the gateway unless the symbol is an index.

Caching happens below this layer: each gateway call goes through the
request coalescer with the history TTL.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from marketfeed_api.application.interfaces.market_data_gateways import (
    ChartHistoryGateway,
    HistoryGateway,
    TaseSymbolLookup,
)
from marketfeed_api.application.use_cases.quotes.get_quotes import UNRESOLVED_MESSAGE
from marketfeed_api.domain.entities.history import HistoryRange, HistorySeries
from marketfeed_api.domain.entities.internal_id import InternalId, Provider
from marketfeed_api.domain.entities.quote import QuoteSource
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.domain.exceptions.market_data import (
    ResolutionFailure,
    SymbolNotFound,
    is_escalation,
)
from marketfeed_api.domain.services.identifier_resolver import resolve
from marketfeed_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

NOT_FOUND_MESSAGE = "History data not found"


@dataclass(frozen=True, slots=True)
class HistoryResult:
    """Either a series or an error for one requested id."""

    id: str
    series: HistorySeries | None = None
    error: str | None = None
    error_code: str | None = None

    @property
    def ok(self) -> bool:
        return self.series is not None


def describe_history_failure(provider_label: str, exc: DomainError) -> str:
    """Return the caller-facing message for a history failure.

    Escalations keep their status (``"Upstream Yahoo failure: HTTP 403"``);
    everything else collapses to ``"History data not found"``.
    """
    status = getattr(exc, "status", None)
    if is_escalation(exc) and status is not None:
        return f"Upstream {provider_label} failure: HTTP {status}"
    return NOT_FOUND_MESSAGE


class GetHistory:
    """History use case over CoinGecko, Binance and Yahoo gateways."""

    def __init__(
        self,
        *,
        coingecko: HistoryGateway,
        binance: HistoryGateway,
        yahoo: ChartHistoryGateway,
        reference: TaseSymbolLookup,
    ) -> None:
        self._coingecko = coingecko
        self._binance = binance
        self._yahoo = yahoo
        self._reference = reference

    async def execute(
        self,
        raw_id: str,
        rng: HistoryRange,
        interval: str | None = None,
    ) -> HistoryResult:
        """Fetch history for ``raw_id`` over ``rng``.

        Args:
            raw_id: Identifier as sent by the caller.
            rng: Range token.
            interval: Optional Yahoo interval override (ignored for crypto).

        Returns:
            HistoryResult: Series relabeled to ``raw_id``, or an error.
        """
        iid = resolve(raw_id)
        if iid is None:
            exc = ResolutionFailure(UNRESOLVED_MESSAGE)
            return HistoryResult(id=raw_id, error=exc.describe(), error_code=exc.code)
        try:
            series = await self._fetch(iid, rng, interval)
        except DomainError as exc:
            label = "CoinGecko" if iid.is_crypto else "Yahoo"
            logger.info(
                "history.unavailable",
                extra={"extra": {"id": raw_id, "range": rng.value, "code": exc.code}},
            )
            return HistoryResult(
                id=raw_id, error=describe_history_failure(label, exc), error_code=exc.code
            )
        return HistoryResult(id=raw_id, series=replace(series, id=raw_id))

    async def _fetch(
        self, iid: InternalId, rng: HistoryRange, interval: str | None
    ) -> HistorySeries:
        if iid.provider is Provider.COINGECKO:
            try:
                return await self._coingecko.fetch_history(iid.symbol, rng)
            except DomainError as primary:
                try:
                    return await self._binance.fetch_history(iid.symbol, rng)
                except DomainError:
                    raise primary from None

        if iid.provider is Provider.YAHOO:
            return await self._yahoo.fetch_history(iid.symbol, rng, interval)

        candidates: dict[str, QuoteSource] = {}
        official = self._reference.official_symbol(iid.symbol)
        if official:
            candidates[official] = QuoteSource.TASE_REFERENCE
        candidates.setdefault(f"{iid.symbol}.TA", QuoteSource.YAHOO_INFERRED)
        last: DomainError = SymbolNotFound(NOT_FOUND_MESSAGE)
        for symbol, source in candidates.items():
            try:
                series = await self._yahoo.fetch_history(symbol, rng, interval)
            except DomainError as exc:
                last = exc
                continue
            return replace(series, source=source)
        raise last

