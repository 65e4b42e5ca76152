# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""FX Gateway: the single USD → ILS rate lookup."""

from __future__ import annotations

import time
from collections.abc import Mapping

from marketfeed_api.domain.entities.fx_rate import FxRate
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport


class FxGateway:
    """exchangerate-api adapter (USD base only)."""

    def __init__(self, transport: ProviderTransport, *, ttl_s: int = 3600) -> None:
        self._transport = transport
        self._ttl = ttl_s

    async def fetch_rate(self, quote: str = "ILS") -> FxRate:
        """Return the USD → ``quote`` rate.

        Raises:
            SymbolNotFound: The payload has no rate for ``quote``.
            MarketDataValidationError: Unexpected payload shape.
        """
        payload = await self._transport.get_json(
            endpoint="latest",
            path="/latest/USD",
            cache_key=make_key("latest", symbols=["USD"]),
            ttl=self._ttl,
        )
        rates = payload.get("rates") if isinstance(payload, Mapping) else None
        if not isinstance(rates, Mapping):
            raise MarketDataValidationError("bad_shape", details={"field": "rates"})
        rate = rates.get(quote.upper())
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            raise SymbolNotFound(f"No USD/{quote.upper()} rate in upstream response")
        updated = payload.get("time_last_updated")
        ts = int(updated * 1000) if isinstance(updated, (int, float)) else int(time.time() * 1000)
        return FxRate(base="USD", quote=quote.upper(), rate=float(rate), timestamp_ms=ts)
