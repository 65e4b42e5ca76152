# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Internal identifier entity.

Purpose:
    Canonical ``<prefix>:<symbol>`` identifier for one tradable instrument.
    The wire prefixes are a stable contract: ``cg:`` (CoinGecko slug),
    ``yahoo:`` (Yahoo ticker or index symbol), ``tase:`` (bare numeric TASE
    security number).

Layer:
    domain/entities
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

from marketfeed_api.domain.entities.base import BaseEntity

_TASE_SECURITY_RE: Final[re.Pattern[str]] = re.compile(r"^\d{4,10}$")


class Provider(str, Enum):
    """Upstream provider family an identifier is routed to."""

    COINGECKO = "coingecko"
    YAHOO = "yahoo"
    TASE = "tase"

    @property
    def prefix(self) -> str:
        """Return the wire prefix (without the colon)."""
        return _WIRE_PREFIX[self]


_WIRE_PREFIX: Final[dict[Provider, str]] = {
    Provider.COINGECKO: "cg",
    Provider.YAHOO: "yahoo",
    Provider.TASE: "tase",
}
_PREFIX_TO_PROVIDER: Final[dict[str, Provider]] = {v: k for k, v in _WIRE_PREFIX.items()}

#: Canonical wire prefixes including the delimiter, e.g. ``("cg:", "yahoo:", "tase:")``.
CANONICAL_PREFIXES: Final[tuple[str, ...]] = tuple(f"{p}:" for p in _PREFIX_TO_PROVIDER)


def has_canonical_prefix(text: str) -> bool:
    """Return True if ``text`` starts with one of the canonical wire prefixes."""
    return text.startswith(CANONICAL_PREFIXES)


@dataclass(frozen=True, slots=True)
class InternalId(BaseEntity):
    """Tagged identifier ``{provider, symbol}``.

    Attributes:
        provider: Provider family.
        symbol: Provider-specific symbol. TASE ids carry a bare security number.

    Raises:
        ValueError: If the symbol is empty or a TASE symbol is not numeric.
    """

    provider: Provider
    symbol: str

    def __post_init__(self) -> None:
        if not self.symbol or not self.symbol.strip():
            raise ValueError("InternalId.symbol must be non-empty")
        if self.provider is Provider.TASE and not _TASE_SECURITY_RE.match(self.symbol):
            raise ValueError(f"TASE ids carry a numeric security number, got {self.symbol!r}")

    def __str__(self) -> str:
        return f"{self.provider.prefix}:{self.symbol}"

    @classmethod
    def parse(cls, text: str) -> InternalId:
        """Parse a canonical wire id (``cg:bitcoin``, ``yahoo:AAPL``, ``tase:662577``).

        CoinGecko slugs are lowercased; other symbols keep their case.

        Args:
            text: Wire-format identifier.

        Returns:
            InternalId: Parsed identifier.

        Raises:
            ValueError: If the prefix is unknown or the symbol invalid.
        """
        prefix, sep, symbol = text.strip().partition(":")
        provider = _PREFIX_TO_PROVIDER.get(prefix)
        if not sep or provider is None:
            raise ValueError(f"Not a canonical internal id: {text!r}")
        symbol = symbol.strip()
        if provider is Provider.COINGECKO:
            symbol = symbol.lower()
        return cls(provider=provider, symbol=symbol)

    @property
    def is_crypto(self) -> bool:
        """Return True for CoinGecko ids."""
        return self.provider is Provider.COINGECKO

    @property
    def is_tase(self) -> bool:
        """Return True for TASE ids."""
        return self.provider is Provider.TASE


def is_numeric_security_id(text: str) -> bool:
    """Return True if ``text`` (optionally prefixed) is a 4–10 digit security number."""
    _, _, tail = text.strip().rpartition(":")
    return bool(_TASE_SECURITY_RE.match(tail))
