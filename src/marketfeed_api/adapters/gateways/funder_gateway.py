# src/marketfeed_api/adapters/gateways/funder_gateway.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Funder Gateway: primary TASE scrape source.

Synopsis:
    Scrapes the public fund page ``/fund/{securityNumber}`` for a price and a
    display name. Prices on the page are in Agorot; the record is normalized
    with an explicit ``ILA`` currency signal.

Design:
    * Price extraction tries, in order: JSON-LD ``"price"``, an
      ``itemprop="price"`` attribute, then a Hebrew price/rate label followed
      by a number.
    * Parse problems are soft misses (``MarketDataValidationError`` or
      ``SymbolNotFound``) so the TASE waterfall can move on.

Layer:
    adapters/gateways
"""

from __future__ import annotations

import re
import time
from typing import Final

from marketfeed_api.adapters.gateways.tase_names import repair_name
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.domain.services.currency_normalizer import AGOROT, change_pct, normalize
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

__all__ = ["FunderGateway", "parse_fund_page"]

_NUMBER = r"(-?\d[\d,]*(?:\.\d+)?)"

_PRICE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r'"price"\s*:\s*"?' + _NUMBER),
    re.compile(r'itemprop=["\']price["\'][^>]*content=["\']' + _NUMBER),
    re.compile(r"(?:מחיר|שער)[^<\d]{0,40}(?:<[^>]+>\s*){0,6}" + _NUMBER),
)
_CHANGE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r'"(?:dailyChange|changePercent|priceChange)"\s*:\s*"?' + _NUMBER),
    re.compile(r"שינוי יומי[^<\d-]{0,40}(?:<[^>]+>\s*){0,6}" + _NUMBER),
)
_H1_RE: Final[re.Pattern[str]] = re.compile(r"<h1[^>]*>(.*?)</h1>", re.S | re.I)
_OG_TITLE_RE: Final[re.Pattern[str]] = re.compile(
    r'<meta[^>]+property=["\']og:title["\'][^>]+content=["\']([^"\']*)["\']', re.I
)
_TITLE_RE: Final[re.Pattern[str]] = re.compile(r"<title[^>]*>(.*?)</title>", re.S | re.I)


def _first_number(patterns: tuple[re.Pattern[str], ...], text: str) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            try:
                return float(match.group(1).replace(",", ""))
            except ValueError:
                continue
    return None


def _group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1) if match else None


def parse_fund_page(page: str) -> tuple[float | None, float | None, str | None]:
    """Extract ``(raw_price, change_pct, name)`` from a fund page.

    Missing fields come back as ``None``.
    """
    price = _first_number(_PRICE_PATTERNS, page)
    change = _first_number(_CHANGE_PATTERNS, page)
    name = repair_name(
        _group(_H1_RE, page),
        _group(_OG_TITLE_RE, page),
        _group(_TITLE_RE, page),
    )
    return price, change, name


class FunderGateway:
    """Primary TASE scrape adapter."""

    def __init__(self, transport: ProviderTransport, *, quote_ttl_s: int = 60) -> None:
        self._transport = transport
        self._quote_ttl = quote_ttl_s

    async def fetch_quote(self, security_id: str) -> QuoteRecord:
        """Scrape a quote for a TASE security number.

        Raises:
            SymbolNotFound: No price on the page (or HTTP 404).
            MarketDataValidationError: The page is not HTML we recognize.
            DomainError: Transport failures from the shared transport.
        """
        page = await self._transport.get_text(
            endpoint="fund_page",
            path=f"/fund/{security_id}",
            cache_key=make_key("fund_page", symbols=[security_id]),
            ttl=self._quote_ttl,
        )
        if "<" not in page:
            raise MarketDataValidationError("not_html", details={"security_id": security_id})
        raw_price, raw_change, name = parse_fund_page(page)
        if raw_price is None or raw_price <= 0:
            raise SymbolNotFound(f"Funder page has no price for {security_id}")

        norm = normalize(raw_price, AGOROT, f"{security_id}.TA")
        return QuoteRecord(
            id=f"tase:{security_id}",
            price=norm.price,
            currency=norm.currency,
            change_pct=change_pct(norm.price, provider_pct=raw_change),
            timestamp_ms=int(time.time() * 1000),
            source=QuoteSource.FUNDER,
            name=name,
        )
