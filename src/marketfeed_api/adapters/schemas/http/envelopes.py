# src/marketfeed_api/adapters/schemas/http/envelopes.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP Envelopes (Adapters Layer).

Purpose:
    Canonical error envelope used for request-shape errors and unexpected
    failures: ``{"error": {code, http_status, message, details?, trace_id?}}``.

    Quote and history bodies are not wrapped; partial failures travel inside
    the payload as per-id error objects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema

__all__ = ["ErrorEnvelope", "ErrorObject"]


class ErrorObject(BaseModel):
    """Structured error object inside ErrorEnvelope.

    Error codes are UPPER_SNAKE_CASE, stable across releases and shared with
    the per-id ``errorCode`` values (e.g. ``SYMBOL_NOT_FOUND``,
    ``UPSTREAM_TIMEOUT``). Boundary codes: ``BAD_REQUEST``,
    ``VALIDATION_ERROR``, ``INTERNAL_ERROR``.
    """

    model_config = ConfigDict(
        title="ErrorObject",
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "code": "BAD_REQUEST",
                    "http_status": 400,
                    "message": "At least one id is required.",
                    "details": {},
                    "trace_id": "req-123",
                }
            ]
        },
    )

    code: str = Field(..., description="Stable machine-readable error code.")
    http_status: int = Field(..., description="Associated HTTP status.")
    message: str = Field(..., description="Human-readable error description.")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured details safe for clients.",
    )
    trace_id: str | None = Field(
        default=None,
        description="Request correlation identifier.",
    )


class ErrorEnvelope(BaseHTTPSchema):
    r"""Canonical error envelope: {"error": ErrorObject}."""

    model_config = ConfigDict(
        title="ErrorEnvelope",
        extra="forbid",
        alias_generator=None,
    )

    error: ErrorObject = Field(..., description="Structured error details.")
