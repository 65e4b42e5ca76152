# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: FX rate."""

from __future__ import annotations

from pydantic import Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema


class FxRateResponse(BaseHTTPSchema):
    """Units of ``quote`` per one ``base``."""

    base: str = Field(examples=["USD"])
    quote: str = Field(examples=["ILS"])
    rate: float = Field(gt=0, examples=[3.71])
    timestamp_ms: int
    source: str = Field(examples=["exchangerate-api"])
