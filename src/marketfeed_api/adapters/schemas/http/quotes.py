# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: Quotes.

Synopsis:
    Wire contracts for ``/v1/quotes``. A batch response is a bare JSON array
    with one element per requested id; each element is either a priced quote
    or a per-id error object.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from pydantic import Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema


class QuoteItem(BaseHTTPSchema):
    """A priced quote."""

    id: str = Field(description="Identifier exactly as requested", examples=["tase:1183441"])
    price: float = Field(gt=0, description="Normalized price", examples=[523.41])
    currency: str = Field(description="USD or ILS", examples=["ILS"])
    change_pct: float = Field(description="Daily change in percent", examples=[-0.42])
    timestamp_ms: int = Field(description="Quote time, epoch milliseconds")
    source: str = Field(description="Stage that produced the price", examples=["tase-reference"])
    name: str | None = Field(default=None, description="Display name when known")


class QuoteErrorItem(BaseHTTPSchema):
    """A per-id failure inside an otherwise successful batch."""

    id: str = Field(description="Identifier exactly as requested", examples=["cg:doesnotexist"])
    error: str = Field(description="Human-readable failure")
    error_code: str | None = Field(default=None, examples=["SYMBOL_NOT_FOUND"])


QuoteResult = QuoteItem | QuoteErrorItem


class QuotesRequest(BaseHTTPSchema):
    """Body of ``POST /v1/quotes``. Bare ``symbols`` are treated as Yahoo symbols."""

    ids: list[str] = Field(default_factory=list, examples=[["cg:bitcoin", "tase:662577"]])
    symbols: list[str] = Field(default_factory=list, examples=[["AAPL", "^GSPC"]])
