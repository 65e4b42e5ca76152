# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Quote record entity.

Purpose:
    Provider-neutral result for one requested identifier. A record is either
    a priced quote or an error; never both and never neither.

Layer:
    domain/entities
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from marketfeed_api.domain.entities.base import BaseEntity
from marketfeed_api.domain.exceptions.base import DomainError


class QuoteSource(str, Enum):
    """Tag naming the stage that produced a record."""

    COINGECKO = "coingecko"
    YAHOO = "yahoo"
    TASE_REFERENCE = "tase-reference"
    FUNDER = "funder"
    GLOBES = "globes"
    YAHOO_INFERRED = "yahoo-inferred"
    BINANCE = "binance"
    EXCHANGERATE_API = "exchangerate-api"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class QuoteRecord(BaseEntity):
    """Immutable quote result.

    Attributes:
        id: Wire identifier as requested by the caller.
        price: Normalized price, or ``None`` on error.
        currency: ``"USD"`` or ``"ILS"`` for priced records.
        change_pct: Daily change in percent.
        timestamp_ms: Quote time in epoch milliseconds.
        source: Stage that produced the record.
        error: Failure description, or ``None`` on success.
        error_code: Taxonomy code of the failure, if any.
        name: Optional display name (TASE scrapes).
    """

    id: str
    price: float | None = None
    currency: str | None = None
    change_pct: float = 0.0
    timestamp_ms: int = 0
    source: QuoteSource = QuoteSource.NONE
    error: str | None = None
    error_code: str | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        has_price = self.price is not None
        has_error = self.error is not None
        if has_price == has_error:
            raise ValueError("QuoteRecord requires exactly one of price or error")
        if self.price is not None and (not math.isfinite(self.price) or self.price <= 0):
            raise ValueError("QuoteRecord.price must be a positive finite number")

    @property
    def ok(self) -> bool:
        """Return True for priced records."""
        return self.price is not None

    @classmethod
    def failure(
        cls,
        id: str,
        error: str,
        *,
        code: str | None = None,
        source: QuoteSource = QuoteSource.NONE,
    ) -> QuoteRecord:
        """Build an error record."""
        return cls(id=id, error=error, error_code=code, source=source)

    @classmethod
    def from_exception(cls, id: str, exc: BaseException) -> QuoteRecord:
        """Build an error record from a domain (or unexpected) exception."""
        if isinstance(exc, DomainError):
            return cls.failure(id, exc.describe(), code=exc.code)
        return cls.failure(id, str(exc) or type(exc).__name__, code="INTERNAL_ERROR")

    def relabel(self, id: str) -> QuoteRecord:
        """Return a copy addressed by ``id`` (e.g. the caller's original string)."""
        if id == self.id:
            return self
        return replace(self, id=id)
