# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Asset descriptor handed in by callers.

Callers (portfolio storage, import tools) describe assets with loosely typed
fields. This entity gives those fields names and types so the identifier
resolver can evaluate its rules over a fixed shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from marketfeed_api.domain.entities.base import BaseEntity


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class AssetRecord(BaseEntity):
    """Typed view over an asset descriptor; every field is optional."""

    api_id: str | None = None
    symbol: str | None = None
    type: str | None = None
    asset_type: str | None = None
    category: str | None = None
    market_data_source: str | None = None
    exchange: str | None = None
    provider: str | None = None
    currency: str | None = None
    security_id: str | None = None
    tase_security_number: str | None = None
    extra_security_number: str | None = None
    coingecko_id: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AssetRecord:
        """Build a record from a camelCase mapping (as stored by callers).

        Args:
            data: Raw descriptor, e.g. ``{"apiId": "...", "symbol": "..."}``.

        Returns:
            AssetRecord: Typed record with blank values normalized to ``None``.
        """
        extra = data.get("extra")
        extra_number = extra.get("securityNumber") if isinstance(extra, Mapping) else None
        return cls(
            api_id=_text(data.get("apiId")),
            symbol=_text(data.get("symbol")),
            type=_text(data.get("type")),
            asset_type=_text(data.get("assetType")),
            category=_text(data.get("category")),
            market_data_source=_text(data.get("marketDataSource")),
            exchange=_text(data.get("exchange")),
            provider=_text(data.get("provider")),
            currency=_text(data.get("currency")),
            security_id=_text(data.get("securityId")),
            tase_security_number=_text(data.get("taseSecurityNumber")),
            extra_security_number=_text(extra_number),
            coingecko_id=_text(data.get("coingeckoId")),
        )
