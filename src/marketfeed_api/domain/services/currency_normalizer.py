# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Currency Normalizer (Domain Service).

Synopsis:
    Turns a raw provider price and its currency/instrument metadata into a
    canonical ``(price, currency)`` pair. The main quirk handled here is the
    Israeli Agorot unit (``ILA``, 1/100 ILS) used by several providers for
    TASE securities.

Rules:
    * ``ILA`` is always relabeled ``ILS``.
    * Index instruments (type INDEX or a ``^``-prefixed symbol) are point
      values and are never divided.
    * Otherwise the price is divided by 100 when the raw currency is ``ILA``.
    * Only when no currency metadata exists at all, a ``.TA`` symbol priced
      above :data:`LEGACY_AGOROT_THRESHOLD` is treated as Agorot. This is a
      last-resort heuristic for scrape sources without metadata; it misfires
      for genuine ILS prices above the threshold.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Final

__all__ = [
    "AGOROT",
    "InstrumentType",
    "LEGACY_AGOROT_THRESHOLD",
    "NormalizedPrice",
    "agorot_divisor",
    "change_pct",
    "normalize",
    "normalize_series",
]

AGOROT: Final[str] = "ILA"
SHEKEL: Final[str] = "ILS"
TASE_SUFFIX: Final[str] = ".TA"
INDEX_MARKER: Final[str] = "^"
LEGACY_AGOROT_THRESHOLD: Final[float] = 500.0


class InstrumentType(str, Enum):
    """Coarse instrument classification used by normalization."""

    EQUITY = "equity"
    ETF = "etf"
    FUND = "fund"
    INDEX = "index"
    CRYPTO = "crypto"
    UNKNOWN = "unknown"

    @classmethod
    def from_provider(cls, raw: str | None) -> InstrumentType:
        """Map provider labels (Yahoo ``quoteType``/``instrumentType``) to a type."""
        label = (raw or "").strip().lower()
        if label in ("index",):
            return cls.INDEX
        if label in ("equity", "stock"):
            return cls.EQUITY
        if label in ("etf",):
            return cls.ETF
        if label in ("mutualfund", "fund"):
            return cls.FUND
        if label in ("cryptocurrency", "crypto"):
            return cls.CRYPTO
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class NormalizedPrice:
    """Canonical price and the divisor that produced it."""

    price: float
    currency: str
    divisor: float = 1.0


def is_index(symbol: str, instrument_type: InstrumentType = InstrumentType.UNKNOWN) -> bool:
    """Return True for index symbols (never Agorot-divided)."""
    return instrument_type is InstrumentType.INDEX or symbol.startswith(INDEX_MARKER)


def _default_currency(symbol: str) -> str:
    return SHEKEL if symbol.upper().endswith(TASE_SUFFIX) else "USD"


def agorot_divisor(
    raw_price: float,
    raw_currency: str | None,
    symbol: str,
    instrument_type: InstrumentType = InstrumentType.UNKNOWN,
) -> float:
    """Return 100.0 when the raw price is in Agorot, else 1.0."""
    if is_index(symbol, instrument_type):
        return 1.0
    currency = (raw_currency or "").strip().upper()
    if currency == AGOROT:
        return 100.0
    if currency:
        return 1.0
    if symbol.upper().endswith(TASE_SUFFIX) and raw_price > LEGACY_AGOROT_THRESHOLD:
        return 100.0
    return 1.0


def normalize(
    raw_price: float,
    raw_currency: str | None,
    symbol: str,
    instrument_type: InstrumentType = InstrumentType.UNKNOWN,
) -> NormalizedPrice:
    """Normalize a raw provider price.

    Args:
        raw_price: Price as reported by the provider.
        raw_currency: Provider currency code; ``None``/empty when unknown.
        symbol: Provider symbol (``.TA`` suffix and ``^`` prefix are significant).
        instrument_type: Provider instrument classification.

    Returns:
        NormalizedPrice: Canonical price, currency, and applied divisor.
    """
    divisor = agorot_divisor(raw_price, raw_currency, symbol, instrument_type)
    currency = (raw_currency or "").strip().upper() or _default_currency(symbol)
    if currency == AGOROT:
        currency = SHEKEL
    return NormalizedPrice(price=raw_price / divisor, currency=currency, divisor=divisor)


def change_pct(
    price: float,
    *,
    provider_pct: float | None = None,
    previous_close: float | None = None,
    divisor: float = 1.0,
) -> float:
    """Return the daily change in percent.

    The provider's percentage wins. Otherwise the change is derived from the
    previous close after applying the same ``divisor`` as the normalized price.
    """
    if provider_pct is not None:
        return float(provider_pct)
    if not previous_close:
        return 0.0
    adjusted = previous_close / divisor
    if adjusted <= 0:
        return 0.0
    return (price - adjusted) / adjusted * 100.0


def normalize_series(
    samples: Iterable[tuple[int, float | None]],
    raw_currency: str | None,
    symbol: str,
    instrument_type: InstrumentType = InstrumentType.UNKNOWN,
) -> tuple[list[tuple[int, float | None]], str]:
    """Normalize a history series with one series-wide decision.

    The magnitude heuristic is not applied to series; only the explicit
    ``ILA`` signal divides.
    """
    currency = (raw_currency or "").strip().upper()
    divisor = 100.0 if currency == AGOROT and not is_index(symbol, instrument_type) else 1.0
    out_currency = SHEKEL if currency == AGOROT else (currency or _default_currency(symbol))
    adjusted = [(ts, None if v is None else v / divisor) for ts, v in samples]
    return adjusted, out_currency
