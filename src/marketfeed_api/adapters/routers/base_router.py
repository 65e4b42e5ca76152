# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Base Router (Adapters Layer)

Purpose:
    Canonical APIRouter wrapper for Marketfeed HTTP endpoints:
      - Versioned routing with stable prefixes (e.g., "/v1/quotes").
      - Standard error response mapping using ErrorEnvelope.
      - Helper to apply presenter headers and return bodies.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, TypeVar

from fastapi import APIRouter, Response

from marketfeed_api.adapters.presenters.base_presenter import PresentResult
from marketfeed_api.adapters.schemas.http.envelopes import ErrorEnvelope
from marketfeed_api.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)

TagType = str | Enum

T = TypeVar("T")


class BaseRouter(APIRouter):
    """Canonical router wrapper.

    Args:
        version: API version segment (e.g., "v1").
        resource: Resource segment (e.g., "quotes").
        prefix: Optional explicit prefix (overrides version/resource).
        tags: Default tags applied to all routes mounted on this router.
        **kwargs: Additional APIRouter kwargs.
    """

    def __init__(
        self,
        *,
        version: str,
        resource: str,
        prefix: str | None = None,
        tags: Sequence[TagType] | None = None,
        **kwargs: Any,
    ) -> None:
        computed_prefix = prefix if prefix is not None else f"/{version}/{resource}"
        super().__init__(
            prefix=computed_prefix,
            tags=list(tags) if tags is not None else None,
            **kwargs,
        )
        _LOGGER.debug(
            "router_initialized",
            extra={"extra": {"prefix": computed_prefix, "tags": [str(t) for t in tags or []]}},
        )

    @staticmethod
    def send(response: Response, result: PresentResult[T]) -> T:
        """Apply presenter headers (and status override) and return the body."""
        response.headers.update(dict(result.headers))
        if result.status_code is not None:
            response.status_code = result.status_code
        return result.body

    @staticmethod
    def std_error_responses() -> dict[int | str, dict[str, Any]]:
        """Return the canonical error response mapping for endpoints."""
        return {
            400: {"model": ErrorEnvelope, "description": "Missing or invalid parameter."},
            422: {"model": ErrorEnvelope, "description": "Unprocessable content."},
            500: {"model": ErrorEnvelope, "description": "Internal server error."},
        }
