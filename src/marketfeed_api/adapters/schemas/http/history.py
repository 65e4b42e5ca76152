# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: History and point-in-time price."""

from __future__ import annotations

from pydantic import Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema


class HistoryPointHTTP(BaseHTTPSchema):
    """One sample: ``t`` epoch milliseconds, ``v`` value."""

    t: int
    v: float = Field(gt=0)


class HistoryResponse(BaseHTTPSchema):
    """Ascending series for one id."""

    id: str
    points: list[HistoryPointHTTP]
    currency: str = Field(examples=["ILS"])
    source: str = Field(examples=["yahoo"])


class PriceAtResponse(BaseHTTPSchema):
    """History point closest to the requested date."""

    id: str
    t: int
    v: float = Field(gt=0)
    currency: str
    source: str


class HistoryErrorResponse(BaseHTTPSchema):
    """History failure for one id (returned with HTTP 200)."""

    id: str
    error: str = Field(examples=["History data not found"])
    error_code: str | None = None
