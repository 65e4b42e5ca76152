# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: instrument search."""

from __future__ import annotations

from pydantic import Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema


class SearchHitHTTP(BaseHTTPSchema):
    """One instrument matching the query."""

    id: str = Field(examples=["tase:662577"])
    symbol: str = Field(examples=["POLI.TA"])
    name: str
    name_he: str | None = None
    type: str = Field(examples=["equity"])
