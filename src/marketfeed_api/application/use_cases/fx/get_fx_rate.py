# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Use Case: Get FX Rate

Purpose:
    Return the USD → ILS conversion rate. This is the only currency pair the
    service supports; asset prices are otherwise kept in their native
    currency.

Layer: application/use_cases
"""

from __future__ import annotations

from marketfeed_api.application.interfaces.market_data_gateways import FxRateGateway
from marketfeed_api.domain.entities.fx_rate import FxRate
from marketfeed_api.domain.exceptions.market_data import UnsupportedCurrencyPair

SUPPORTED_BASE = "USD"
SUPPORTED_QUOTE = "ILS"


class GetFxRate:
    """Single-pair FX lookup.

    Args:
        gateway: Rate provider (cached through the request coalescer).

    Raises:
        UnsupportedCurrencyPair: For any pair other than USD/ILS.
        DomainError: Upstream failures from the gateway.
    """

    def __init__(self, gateway: FxRateGateway) -> None:
        self._gateway = gateway

    async def execute(self, base: str = SUPPORTED_BASE, quote: str = SUPPORTED_QUOTE) -> FxRate:
        pair = (base.strip().upper(), quote.strip().upper())
        if pair != (SUPPORTED_BASE, SUPPORTED_QUOTE):
            raise UnsupportedCurrencyPair(
                f"Unsupported currency pair {pair[0]}/{pair[1]}",
                details={"supported": f"{SUPPORTED_BASE}/{SUPPORTED_QUOTE}"},
            )
        return await self._gateway.fetch_rate(SUPPORTED_QUOTE)
