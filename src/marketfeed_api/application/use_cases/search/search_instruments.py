# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Use Case: Search Instruments

Purpose:
    Offline instrument lookup over the local TASE reference dataset and the
    crypto ticker table. No upstream calls are made.

Ordering:
    TASE matches first (numeric queries: exact security number, else prefix
    matches), then crypto tickers whose symbol or CoinGecko slug contains the
    query. At most ``limit`` hits are returned.

Layer: application/use_cases
"""

from __future__ import annotations

from dataclasses import dataclass

from marketfeed_api.domain.entities.internal_id import InternalId, Provider
from marketfeed_api.domain.services.currency_normalizer import InstrumentType
from marketfeed_api.domain.services.identifier_resolver import CRYPTO_TICKER_SLUGS
from marketfeed_api.infrastructure.reference_data.tase_instruments import (
    SEARCH_LIMIT,
    TaseReferenceData,
)


@dataclass(frozen=True, slots=True)
class SearchHit:
    """One search result addressed by its canonical id."""

    id: str
    symbol: str
    name: str
    name_he: str | None
    type: str


class SearchInstruments:
    """Instrument search use case."""

    def __init__(self, catalog: TaseReferenceData) -> None:
        self._catalog = catalog

    def execute(self, query: str, *, limit: int = SEARCH_LIMIT) -> list[SearchHit]:
        text = query.strip()
        if not text or limit <= 0:
            return []

        hits = [
            SearchHit(
                id=str(InternalId(Provider.TASE, item.security_id)),
                symbol=item.yahoo_symbol,
                name=item.name_en or item.name_he,
                name_he=item.name_he or None,
                type=item.type.value,
            )
            for item in self._catalog.search(text, limit=limit)
        ]
        if text.isdigit():
            return hits[:limit]

        needle = text.lower()
        for ticker, slug in CRYPTO_TICKER_SLUGS.items():
            if len(hits) >= limit:
                break
            if needle in ticker.lower() or needle in slug:
                hits.append(
                    SearchHit(
                        id=str(InternalId(Provider.COINGECKO, slug)),
                        symbol=ticker,
                        name=slug.replace("-", " ").title(),
                        name_he=None,
                        type=InstrumentType.CRYPTO.value,
                    )
                )
        return hits[:limit]
