# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Identifier Resolver (Domain Service).

Synopsis:
    Maps raw id strings and loosely typed asset descriptors to a canonical
    :class:`InternalId`. Pure functions only; no I/O.

Design:
    * String inputs go through legacy migration first, then canonical
      pass-through, then the numeric → TASE / default → Yahoo split.
    * Record inputs are evaluated against :data:`RECORD_RULES`, an ordered
      tuple of (predicate, extractor) pairs. The first rule whose predicate
      holds and whose extractor yields an id wins. The order is part of the
      contract: a crypto-flagged record with an ILS currency must resolve to
      CoinGecko, not TASE.

Layer:
    domain/services
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from marketfeed_api.domain.entities.asset_record import AssetRecord
from marketfeed_api.domain.entities.internal_id import (
    CANONICAL_PREFIXES,
    InternalId,
    Provider,
    has_canonical_prefix,
    is_numeric_security_id,
)

__all__ = [
    "CRYPTO_TICKER_SLUGS",
    "RECORD_RULES",
    "ResolutionRule",
    "migrate_legacy_id",
    "resolve",
    "resolve_record",
    "resolve_string",
]

_LEGACY_TASE_RE: Final[re.Pattern[str]] = re.compile(r"^(?:yahoo:)?(\d{4,10})(?:\.TA)?$", re.I)

CRYPTO_CATEGORY_LABEL: Final[str] = "קריפטו"

#: Exchange ticker → CoinGecko slug. Unmapped tickers fall back to lowercase.
CRYPTO_TICKER_SLUGS: Final[dict[str, str]] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "ADA": "cardano",
    "DOT": "polkadot",
    "LINK": "chainlink",
    "LTC": "litecoin",
    "BCH": "bitcoin-cash",
    "XLM": "stellar",
    "DOGE": "dogecoin",
    "AVAX": "avalanche-2",
    "MATIC": "matic-network",
    "UNI": "uniswap",
    "ATOM": "cosmos",
    "ALGO": "algorand",
    "VET": "vechain",
    "FIL": "filecoin",
    "GRT": "the-graph",
    "AAVE": "aave",
    "XRP": "ripple",
    "BNB": "binancecoin",
    "TRX": "tron",
    "SHIB": "shiba-inu",
    "TON": "the-open-network",
    "USDT": "tether",
    "USDC": "usd-coin",
}


def _strip_prefix(text: str) -> str:
    for prefix in CANONICAL_PREFIXES:
        if text.startswith(prefix):
            return text[len(prefix) :]
    return text


def _safe_id(provider: Provider, symbol: str) -> InternalId | None:
    try:
        return InternalId(provider=provider, symbol=symbol)
    except ValueError:
        return None


def _parse_or_none(text: str) -> InternalId | None:
    try:
        return InternalId.parse(text)
    except ValueError:
        return None


def migrate_legacy_id(text: str) -> str:
    """Rewrite legacy TASE forms to ``tase:<digits>``; other input is returned as-is.

    ``yahoo:1183441``, ``yahoo:1183441.TA``, ``1183441`` and ``1183441.TA``
    all become ``tase:1183441``. Applying it twice is a no-op.
    """
    stripped = text.strip()
    match = _LEGACY_TASE_RE.match(stripped)
    if match:
        return f"tase:{match.group(1)}"
    return stripped


def resolve_string(text: str) -> InternalId | None:
    """Resolve a raw id string.

    Args:
        text: Raw id, e.g. ``"cg:bitcoin"``, ``"AAPL"``, ``"yahoo:1183441"``.

    Returns:
        InternalId | None: ``None`` for blank input or a malformed canonical id.
    """
    migrated = migrate_legacy_id(text)
    if not migrated:
        return None
    if has_canonical_prefix(migrated):
        return _parse_or_none(migrated)
    if is_numeric_security_id(migrated):
        return _safe_id(Provider.TASE, migrated)
    return _safe_id(Provider.YAHOO, migrated)


# --------------------------------------------------------------------------- #
# Record rules
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class ResolutionRule:
    """One step of the record resolution cascade."""

    name: str
    applies: Callable[[AssetRecord], bool]
    extract: Callable[[AssetRecord], InternalId | None]


def _has_prefixed_api_id(rec: AssetRecord) -> bool:
    return bool(rec.api_id) and has_canonical_prefix(rec.api_id or "")


def _extract_prefixed(rec: AssetRecord) -> InternalId | None:
    return _parse_or_none(migrate_legacy_id(rec.api_id or ""))


def _is_crypto(rec: AssetRecord) -> bool:
    return (
        (rec.market_data_source or "").lower() == "coingecko"
        or (rec.type or "").upper() == "CRYPTO"
        or (rec.asset_type or "").upper() == "CRYPTO"
        or rec.category == CRYPTO_CATEGORY_LABEL
    )


def _extract_crypto(rec: AssetRecord) -> InternalId | None:
    raw = rec.api_id or rec.coingecko_id or rec.symbol
    if not raw:
        return None
    ticker = _strip_prefix(raw).strip()
    slug = CRYPTO_TICKER_SLUGS.get(ticker.upper(), ticker.lower())
    return _safe_id(Provider.COINGECKO, slug)


def _is_tase(rec: AssetRecord) -> bool:
    source = (rec.market_data_source or "").lower()
    symbol = rec.symbol or ""
    if source in ("tase-local", "tase"):
        return True
    if (rec.exchange or "").upper() == "TASE" or (rec.provider or "").lower() == "tase-local":
        return True
    numeric_api = is_numeric_security_id(rec.api_id or "")
    if (rec.currency or "").upper() == "ILS" and (numeric_api or is_numeric_security_id(symbol)):
        return True
    return symbol.upper().endswith(".TA") and numeric_api


def _clean_security_number(raw: str | None) -> str | None:
    if not raw:
        return None
    text = _strip_prefix(raw.strip())
    if text.upper().endswith(".TA"):
        text = text[:-3]
    return text if is_numeric_security_id(text) else None


def _extract_tase(rec: AssetRecord) -> InternalId | None:
    candidates = (
        rec.security_id,
        rec.extra_security_number,
        rec.tase_security_number,
        rec.api_id,
        rec.symbol,
    )
    for candidate in candidates:
        number = _clean_security_number(candidate)
        if number:
            return _safe_id(Provider.TASE, number)
    return None


def _has_symbol(rec: AssetRecord) -> bool:
    return bool(rec.api_id or rec.symbol)


def _extract_default(rec: AssetRecord) -> InternalId | None:
    symbol = (rec.api_id or rec.symbol or "").strip()
    if ":" in symbol:
        return _parse_or_none(migrate_legacy_id(symbol))
    return _safe_id(Provider.YAHOO, symbol)


#: Ordered record rules. Precedence is part of the resolver contract.
RECORD_RULES: Final[tuple[ResolutionRule, ...]] = (
    ResolutionRule("explicit-prefixed-id", _has_prefixed_api_id, _extract_prefixed),
    ResolutionRule("crypto", _is_crypto, _extract_crypto),
    ResolutionRule("tase", _is_tase, _extract_tase),
    ResolutionRule("default-yahoo", _has_symbol, _extract_default),
)


def resolve_record(record: AssetRecord) -> InternalId | None:
    """Resolve a typed asset record using :data:`RECORD_RULES`.

    Returns:
        InternalId | None: ``None`` when no rule yields an identifier.
    """
    for rule in RECORD_RULES:
        if rule.applies(record):
            resolved = rule.extract(record)
            if resolved is not None:
                return resolved
    return None


def resolve(value: str | AssetRecord | Mapping[str, Any] | None) -> InternalId | None:
    """Resolve a raw string, typed record, or camelCase mapping to an InternalId.

    ``None`` means "cannot resolve, skip this asset".
    """
    if value is None:
        return None
    if isinstance(value, str):
        return resolve_string(value)
    if isinstance(value, AssetRecord):
        return resolve_record(value)
    return resolve_record(AssetRecord.from_mapping(value))
