# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Application Ports: market data gateways.

Provider-agnostic capabilities the orchestrator and use cases depend on.
Concrete adapters live under ``adapters/gateways``; tests substitute fakes
that satisfy these protocols structurally.

Design:
    * Single-symbol calls raise typed ``DomainError`` subclasses on failure.
    * Batch calls report per-symbol outcomes and only raise when the whole
      upstream call fails.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from marketfeed_api.domain.entities.fx_rate import FxRate
from marketfeed_api.domain.entities.history import HistoryRange, HistorySeries
from marketfeed_api.domain.entities.quote import QuoteRecord
from marketfeed_api.domain.exceptions.base import DomainError


class CryptoQuoteGateway(Protocol):
    """Crypto quotes keyed by CoinGecko slug."""

    async def fetch_quotes(self, slugs: Sequence[str]) -> dict[str, QuoteRecord | DomainError]:
        """Return slug → record or failure for every requested slug."""
        ...

    async def fetch_quote(self, slug: str) -> QuoteRecord:
        """Fetch one coin; raise on failure."""
        ...


class EquityQuoteGateway(Protocol):
    """Global equities, ETFs, indices and TASE listings by exchange symbol."""

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, QuoteRecord]:
        """Return symbol → priced record; symbols without data are absent."""
        ...

    async def fetch_chart_quote(self, symbol: str) -> QuoteRecord:
        """Derive a single quote from chart data; raise on failure."""
        ...


class ScrapeQuoteGateway(Protocol):
    """TASE quotes by bare security number."""

    async def fetch_quote(self, security_id: str) -> QuoteRecord:
        """Fetch one security; raise on failure."""
        ...


class HistoryGateway(Protocol):
    """Close-price series for one provider symbol."""

    async def fetch_history(self, symbol: str, rng: HistoryRange) -> HistorySeries:
        """Return a non-empty ascending series; raise on failure."""
        ...


class TaseSymbolLookup(Protocol):
    """Local reference data: TASE security number → official Yahoo symbol."""

    def official_symbol(self, security_id: str) -> str | None:
        """Return the listed symbol, or ``None`` when the security is not listed."""
        ...


class ChartHistoryGateway(Protocol):
    """History gateway that accepts an explicit bar interval."""

    async def fetch_history(
        self, symbol: str, rng: HistoryRange, interval: str | None = None
    ) -> HistorySeries:
        """Return a non-empty ascending series; raise on failure."""
        ...


class FxRateGateway(Protocol):
    """USD-based conversion rates."""

    async def fetch_rate(self, quote: str = "ILS") -> FxRate:
        """Return the USD → ``quote`` rate; raise on failure."""
        ...
