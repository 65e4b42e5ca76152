# src/marketfeed_api/application/services/fallback_orchestrator.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Fallback Orchestrator (Application Service).

Synopsis:
    Runs the per-identifier provider waterfall and turns its outcome into a
    single :class:`QuoteRecord`. The waterfall never raises: an exhausted
    waterfall yields an error record carrying the last stage's failure.

Waterfalls:
    * Crypto:  ``coingecko``
    * Yahoo:   ``yahoo`` (batch quote) → ``yahoo`` (chart)
    * TASE:    ``tase-reference`` (listed symbol via Yahoo; skipped when the
      security is not listed) → ``funder`` → ``globes`` → ``yahoo-inferred``
      (``<id>.TA`` via Yahoo)

Design:
    * A stage succeeds only with a priced record. Soft misses
      (``SymbolNotFound``, unparseable payloads, transient failures) advance
      at DEBUG. Auth rejections and 5xx advance too but are logged at WARNING
      and counted as escalations.
    * A Funder price with a missing or generic name borrows the Globes name
      for the same security; a failed name lookup keeps the price.
    * Each stage may carry its own deadline, so one slow provider cannot use up
      the per-identifier budget before the later stages run.
    * Batch prefetch results (CoinGecko grouped call, Yahoo v7 chunks) are
      passed in as mappings so the first stage reads them without another
      upstream call.

Layer:
    application/services
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, replace

from marketfeed_api.application.interfaces.market_data_gateways import (
    CryptoQuoteGateway,
    EquityQuoteGateway,
    ScrapeQuoteGateway,
    TaseSymbolLookup,
)
from marketfeed_api.domain.entities.internal_id import InternalId, Provider
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.domain.exceptions.market_data import (
    SymbolNotFound,
    UpstreamTimeout,
    is_escalation,
)
from marketfeed_api.infrastructure.logging.logger import get_json_logger
from marketfeed_api.infrastructure.observability.metrics import (
    get_fallback_escalations_total,
    get_fallback_stage_total,
)

__all__ = ["FallbackOrchestrator", "QuoteStage", "QuoteWaterfall"]

logger = get_json_logger(__name__)

CryptoPrefetch = Mapping[str, QuoteRecord | DomainError]
YahooPrefetch = Mapping[str, QuoteRecord]


@dataclass(frozen=True, slots=True)
class QuoteStage:
    """One waterfall step: a source tag and a zero-argument fetch."""

    source: QuoteSource
    fetch: Callable[[], Awaitable[QuoteRecord]]


class QuoteWaterfall:
    """Runs stages in order until one yields a price.

    Args:
        stage_timeout_s: Optional deadline per stage. A stage that overruns
            it fails with :class:`UpstreamTimeout` and the next stage runs.
    """

    def __init__(self, stage_timeout_s: float | None = None) -> None:
        self._stage_timeout_s = stage_timeout_s

    async def run(self, wire_id: str, stages: Sequence[QuoteStage]) -> QuoteRecord:
        """Return the first priced record, relabeled to ``wire_id``.

        Args:
            wire_id: Identifier the caller asked for.
            stages: Ordered stages.

        Returns:
            QuoteRecord: Priced record tagged with the winning stage's source,
            or an error record describing the last failure.
        """
        last: BaseException = SymbolNotFound(f"No provider stage for {wire_id}")
        for stage in stages:
            try:
                record = await self._fetch(stage)
            except DomainError as exc:
                self._record_failure(wire_id, stage.source, exc)
                last = exc
                continue
            except Exception as exc:
                logger.warning(
                    "fallback.stage_crashed",
                    extra={
                        "extra": {"id": wire_id, "source": stage.source.value, "error": repr(exc)}
                    },
                )
                get_fallback_stage_total().labels(stage.source.value, "crashed").inc()
                last = exc
                continue

            if not record.ok:
                miss = SymbolNotFound(record.error or f"No price from {stage.source.value}")
                self._record_failure(wire_id, stage.source, miss)
                last = miss
                continue

            get_fallback_stage_total().labels(stage.source.value, "success").inc()
            return replace(record, id=wire_id, source=stage.source)

        return QuoteRecord.from_exception(wire_id, last)

    async def _fetch(self, stage: QuoteStage) -> QuoteRecord:
        if self._stage_timeout_s is None:
            return await stage.fetch()
        try:
            return await asyncio.wait_for(stage.fetch(), timeout=self._stage_timeout_s)
        except TimeoutError as exc:
            raise UpstreamTimeout(
                f"{stage.source.value} timed out after {self._stage_timeout_s:g}s"
            ) from exc

    @staticmethod
    def _record_failure(wire_id: str, source: QuoteSource, exc: DomainError) -> None:
        if is_escalation(exc):
            get_fallback_stage_total().labels(source.value, "escalated").inc()
            get_fallback_escalations_total().labels(source.value, exc.code).inc()
            logger.warning(
                "fallback.stage_escalated",
                extra={
                    "extra": {
                        "id": wire_id,
                        "source": source.value,
                        "code": exc.code,
                        "status": getattr(exc, "status", None),
                        "error": exc.describe(),
                    }
                },
            )
            return
        get_fallback_stage_total().labels(source.value, "miss").inc()
        logger.debug(
            "fallback.stage_missed",
            extra={"extra": {"id": wire_id, "source": source.value, "code": exc.code}},
        )


class FallbackOrchestrator:
    """Builds and runs the provider waterfall for one resolved identifier."""

    def __init__(
        self,
        *,
        coingecko: CryptoQuoteGateway,
        yahoo: EquityQuoteGateway,
        funder: ScrapeQuoteGateway,
        globes: ScrapeQuoteGateway,
        reference: TaseSymbolLookup,
        waterfall: QuoteWaterfall | None = None,
    ) -> None:
        self._coingecko = coingecko
        self._yahoo = yahoo
        self._funder = funder
        self._globes = globes
        self._reference = reference
        self._waterfall = waterfall or QuoteWaterfall()

    async def quote(
        self,
        wire_id: str,
        iid: InternalId,
        *,
        crypto_prefetch: CryptoPrefetch | None = None,
        yahoo_prefetch: YahooPrefetch | None = None,
    ) -> QuoteRecord:
        """Run the waterfall for ``iid``; never raises for provider failures."""
        stages = self.stages_for(
            iid, crypto_prefetch=crypto_prefetch, yahoo_prefetch=yahoo_prefetch
        )
        return await self._waterfall.run(wire_id, stages)

    def stages_for(
        self,
        iid: InternalId,
        *,
        crypto_prefetch: CryptoPrefetch | None = None,
        yahoo_prefetch: YahooPrefetch | None = None,
    ) -> list[QuoteStage]:
        """Return the ordered stages for ``iid``."""
        if iid.provider is Provider.COINGECKO:
            return [QuoteStage(QuoteSource.COINGECKO, self._crypto(iid.symbol, crypto_prefetch))]
        if iid.provider is Provider.YAHOO:
            return [
                QuoteStage(QuoteSource.YAHOO, self._yahoo_batch(iid.symbol, yahoo_prefetch)),
                QuoteStage(QuoteSource.YAHOO, lambda: self._yahoo.fetch_chart_quote(iid.symbol)),
            ]
        return self._tase_stages(iid.symbol, yahoo_prefetch)

    # ----------------------------- Internals ----------------------------- #

    def _tase_stages(self, security_id: str, prefetch: YahooPrefetch | None) -> list[QuoteStage]:
        stages: list[QuoteStage] = []
        official = self._reference.official_symbol(security_id)
        if official:
            stages.append(
                QuoteStage(QuoteSource.TASE_REFERENCE, self._yahoo_any(official, prefetch))
            )
        stages.append(QuoteStage(QuoteSource.FUNDER, self._funder_named(security_id)))
        stages.append(QuoteStage(QuoteSource.GLOBES, lambda: self._globes.fetch_quote(security_id)))
        inferred = f"{security_id}.TA"
        if inferred != official:
            stages.append(
                QuoteStage(QuoteSource.YAHOO_INFERRED, self._yahoo_any(inferred, prefetch))
            )
        return stages

    def _funder_named(self, security_id: str) -> Callable[[], Awaitable[QuoteRecord]]:
        """Funder quote whose missing or generic name is filled in from Globes."""

        async def fetch() -> QuoteRecord:
            record = await self._funder.fetch_quote(security_id)
            if record.ok and not record.name:
                name = await self._globes_name(security_id)
                if name:
                    record = replace(record, name=name)
            return record

        return fetch

    async def _globes_name(self, security_id: str) -> str | None:
        try:
            record = await self._globes.fetch_quote(security_id)
        except DomainError as exc:
            logger.debug(
                "fallback.name_repair_failed",
                extra={"extra": {"security_id": security_id, "code": exc.code}},
            )
            return None
        return record.name

    def _crypto(
        self, slug: str, prefetch: CryptoPrefetch | None
    ) -> Callable[[], Awaitable[QuoteRecord]]:
        async def fetch() -> QuoteRecord:
            if prefetch is None:
                return await self._coingecko.fetch_quote(slug)
            outcome = prefetch.get(slug.lower())
            if outcome is None:
                raise SymbolNotFound(f"Coin {slug} not found in CoinGecko response")
            if isinstance(outcome, DomainError):
                raise outcome
            return outcome

        return fetch

    def _yahoo_batch(
        self, symbol: str, prefetch: YahooPrefetch | None
    ) -> Callable[[], Awaitable[QuoteRecord]]:
        async def fetch() -> QuoteRecord:
            found = prefetch if prefetch is not None else await self._yahoo.fetch_quotes([symbol])
            record = found.get(symbol)
            if record is None:
                raise SymbolNotFound(f"Yahoo batch quote has no data for {symbol}")
            return record

        return fetch

    def _yahoo_any(
        self, symbol: str, prefetch: YahooPrefetch | None
    ) -> Callable[[], Awaitable[QuoteRecord]]:
        """Prefetched batch quote when available, else the chart endpoint."""

        async def fetch() -> QuoteRecord:
            if prefetch is not None and symbol in prefetch:
                return prefetch[symbol]
            return await self._yahoo.fetch_chart_quote(symbol)

        return fetch
