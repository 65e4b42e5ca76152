# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Globes Gateway: secondary TASE scrape source.

Posts ``instrumentId={id}&type=49`` to the Globes instrument feeder and reads
``[0].Table.Security[0]``. Rates are in Agorot. Anything that does not match
that shape is a soft miss.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Final

from marketfeed_api.adapters.gateways.tase_names import repair_name
from marketfeed_api.domain.entities.quote import QuoteRecord, QuoteSource
from marketfeed_api.domain.exceptions.market_data import (
    MarketDataValidationError,
    SymbolNotFound,
)
from marketfeed_api.domain.services.currency_normalizer import AGOROT, change_pct, normalize
from marketfeed_api.infrastructure.caching.request_coalescer import make_key
from marketfeed_api.infrastructure.external_apis.transport import ProviderTransport

__all__ = ["GlobesGateway", "extract_security"]

FEEDER_PATH: Final[str] = "/Portal/Handlers/GTOFeeder.ashx"
INSTRUMENT_TYPE: Final[str] = "49"

_PRICE_FIELDS: Final[tuple[str, ...]] = ("LastRate", "LastDealRate", "BaseRate", "Rate")
_CHANGE_FIELDS: Final[tuple[str, ...]] = ("PercentageChange", "ChangePercent", "DailyChange")
_SECURITY_PATH: Final[str] = "[0].Table.Security[0]"


def _number(entry: Mapping[str, Any], fields: tuple[str, ...]) -> float | None:
    for field in fields:
        value = entry.get(field)
        if isinstance(value, bool) or value is None:
            continue
        try:
            return float(str(value).replace(",", ""))
        except ValueError:
            continue
    return None


def extract_security(payload: Any) -> Mapping[str, Any]:
    """Return ``payload[0].Table.Security[0]``.

    Raises:
        MarketDataValidationError: If any level of the path is missing.
    """
    try:
        security = payload[0]["Table"]["Security"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise MarketDataValidationError("bad_shape", details={"path": _SECURITY_PATH}) from exc
    if not isinstance(security, Mapping):
        raise MarketDataValidationError("bad_shape", details={"path": _SECURITY_PATH})
    return security


class GlobesGateway:
    """Secondary TASE scrape adapter."""

    def __init__(self, transport: ProviderTransport, *, quote_ttl_s: int = 60) -> None:
        self._transport = transport
        self._quote_ttl = quote_ttl_s

    async def fetch_quote(self, security_id: str) -> QuoteRecord:
        """Fetch a quote for a TASE security number from the Globes feeder.

        Raises:
            SymbolNotFound: The security carries no rate.
            MarketDataValidationError: Unexpected payload shape.
        """
        payload = await self._transport.post_form_json(
            endpoint="gto_feeder",
            path=FEEDER_PATH,
            data={"instrumentId": security_id, "type": INSTRUMENT_TYPE},
            cache_key=make_key("gto_feeder", symbols=[security_id], type=INSTRUMENT_TYPE),
            ttl=self._quote_ttl,
        )
        security = extract_security(payload)
        raw_price = _number(security, _PRICE_FIELDS)
        if raw_price is None or raw_price <= 0:
            raise SymbolNotFound(f"Globes has no rate for {security_id}")

        norm = normalize(raw_price, AGOROT, f"{security_id}.TA")
        return QuoteRecord(
            id=f"tase:{security_id}",
            price=norm.price,
            currency=norm.currency,
            change_pct=change_pct(norm.price, provider_pct=_number(security, _CHANGE_FIELDS)),
            timestamp_ms=int(time.time() * 1000),
            source=QuoteSource.GLOBES,
            name=repair_name(security.get("HebName"), security.get("EngName")),
        )
