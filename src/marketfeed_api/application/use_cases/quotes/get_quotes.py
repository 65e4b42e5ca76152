# src/marketfeed_api/application/use_cases/quotes/get_quotes.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Use Case: Get Quotes (batch merge)

Purpose:
    Resolve a batch of raw identifiers, fetch each through its provider
    waterfall and return exactly one record per input position.

Flow:
    1. Resolve every input. Unresolvable inputs get an error record.
    2. Deduplicate resolved ids.
    3. Prefetch concurrently: one grouped CoinGecko call for all crypto ids
       and Yahoo v7 batch quotes (chunks of ``yahoo_batch_size``) for Yahoo
       symbols and listed TASE symbols.
    4. Run the per-id waterfalls in parallel under a semaphore; each branch
       has its own deadline. A timed-out or crashing branch becomes an error
       record and never affects its siblings.
    5. Rebuild the output in input order with ``id`` echoing the request.

Layer: application/use_cases
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence

from marketfeed_api.application.interfaces.market_data_gateways import (
    CryptoQuoteGateway,
    EquityQuoteGateway,
    TaseSymbolLookup,
)
from marketfeed_api.application.services.fallback_orchestrator import (
    CryptoPrefetch,
    FallbackOrchestrator,
    YahooPrefetch,
)
from marketfeed_api.domain.entities.internal_id import InternalId, Provider
from marketfeed_api.domain.entities.quote import QuoteRecord
from marketfeed_api.domain.exceptions.market_data import ResolutionFailure, UpstreamTimeout
from marketfeed_api.domain.services.identifier_resolver import resolve
from marketfeed_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

UNRESOLVED_MESSAGE = "Could not resolve id"


class GetQuotes:
    """Batch quote use case.

    Args:
        orchestrator: Per-id waterfall runner.
        coingecko: Crypto gateway used for the grouped prefetch.
        yahoo: Equity gateway used for the batch prefetch.
        reference: Listed TASE symbols to include in the Yahoo prefetch.
        max_concurrency: Upper bound on concurrently running waterfalls.
        per_id_timeout_s: Deadline for one waterfall.
        yahoo_batch_size: Symbols per Yahoo v7 call.
    """

    def __init__(
        self,
        *,
        orchestrator: FallbackOrchestrator,
        coingecko: CryptoQuoteGateway,
        yahoo: EquityQuoteGateway,
        reference: TaseSymbolLookup,
        max_concurrency: int = 8,
        per_id_timeout_s: float = 15.0,
        yahoo_batch_size: int = 50,
    ) -> None:
        self._orchestrator = orchestrator
        self._coingecko = coingecko
        self._yahoo = yahoo
        self._reference = reference
        self._max_concurrency = max(1, max_concurrency)
        self._timeout = per_id_timeout_s
        self._batch_size = max(1, yahoo_batch_size)

    async def execute(self, ids: Sequence[str]) -> list[QuoteRecord]:
        """Fetch quotes for ``ids``.

        Args:
            ids: Raw identifiers as sent by the caller (duplicates allowed).

        Returns:
            list[QuoteRecord]: ``len(ids)`` records, in input order.
        """
        started = time.perf_counter()
        resolved = [resolve(raw) for raw in ids]
        unique: dict[str, InternalId] = {}
        for iid in resolved:
            if iid is not None:
                unique.setdefault(str(iid), iid)

        crypto_prefetch, yahoo_prefetch = await asyncio.gather(
            self._prefetch_crypto(unique.values()),
            self._prefetch_yahoo(unique.values()),
        )

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run_one(key: str, iid: InternalId) -> QuoteRecord:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        self._orchestrator.quote(
                            key,
                            iid,
                            crypto_prefetch=crypto_prefetch,
                            yahoo_prefetch=yahoo_prefetch,
                        ),
                        timeout=self._timeout,
                    )
                except TimeoutError:
                    return QuoteRecord.from_exception(
                        key, UpstreamTimeout(f"Timed out after {self._timeout:g}s")
                    )
                except Exception as exc:
                    logger.exception(
                        "quotes.branch_failed", extra={"extra": {"id": key, "error": repr(exc)}}
                    )
                    return QuoteRecord.from_exception(key, exc)

        outcomes = await asyncio.gather(*(run_one(k, iid) for k, iid in unique.items()))
        by_key = dict(zip(unique, outcomes, strict=True))

        results: list[QuoteRecord] = []
        for raw, iid in zip(ids, resolved, strict=True):
            if iid is None:
                failure = ResolutionFailure(UNRESOLVED_MESSAGE)
                results.append(QuoteRecord.from_exception(raw, failure))
            else:
                results.append(by_key[str(iid)].relabel(raw))

        ok = sum(1 for r in results if r.ok)
        logger.info(
            "quotes.batch.completed",
            extra={
                "extra": {
                    "requested": len(ids),
                    "unique": len(unique),
                    "ok": ok,
                    "errors": len(results) - ok,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                }
            },
        )
        return results

    # ----------------------------- Prefetch ------------------------------ #

    async def _prefetch_crypto(self, iids: Iterable[InternalId]) -> CryptoPrefetch | None:
        slugs = [i.symbol for i in iids if i.provider is Provider.COINGECKO]
        if not slugs:
            return None
        try:
            return await self._coingecko.fetch_quotes(slugs)
        except Exception as exc:
            # Stages fall back to single-coin calls.
            logger.warning(
                "quotes.prefetch_failed",
                extra={"extra": {"provider": "coingecko", "error": repr(exc)}},
            )
            return None

    async def _prefetch_yahoo(self, iids: Iterable[InternalId]) -> YahooPrefetch | None:
        symbols: list[str] = []
        for iid in iids:
            if iid.provider is Provider.YAHOO:
                symbols.append(iid.symbol)
            elif iid.provider is Provider.TASE:
                official = self._reference.official_symbol(iid.symbol)
                if official:
                    symbols.append(official)
        symbols = list(dict.fromkeys(symbols))
        if not symbols:
            return None

        size = self._batch_size
        chunks = [symbols[i : i + size] for i in range(0, len(symbols), size)]
        outcomes = await asyncio.gather(
            *(self._yahoo.fetch_quotes(chunk) for chunk in chunks), return_exceptions=True
        )
        merged: dict[str, QuoteRecord] = {}
        for chunk, outcome in zip(chunks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                # Symbols of a failed chunk go straight to the chart stage.
                logger.warning(
                    "quotes.prefetch_failed",
                    extra={
                        "extra": {
                            "provider": "yahoo",
                            "symbols": len(chunk),
                            "error": repr(outcome),
                        }
                    },
                )
                continue
            merged.update(outcome)
        return merged
