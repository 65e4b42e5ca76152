# src/marketfeed_api/infrastructure/http/errors.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Global exception handlers rendering the shared error envelope."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.responses import Response

from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

_HTTP_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    429: "RATE_LIMITED",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def _trace_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def error_envelope(
    *,
    code: str,
    http_status: int,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    err: dict[str, Any] = {
        "code": code,
        "http_status": http_status,
        "message": message,
    }
    if details is not None:
        err["details"] = details
    if trace_id is not None:
        err["trace_id"] = trace_id
    return {"error": err}


async def handle_validation_error(request: Request, exc: RequestValidationError) -> Response:
    payload = error_envelope(
        code="VALIDATION_ERROR",
        http_status=422,
        message="Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=422, content=payload)


async def handle_http_exception(request: Request, exc: HTTPException) -> Response:
    payload = error_envelope(
        code=_HTTP_CODES.get(exc.status_code, "HTTP_ERROR"),
        http_status=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
        details=None if isinstance(exc.detail, str) else {"detail": exc.detail},
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)


async def handle_domain_error(request: Request, exc: DomainError) -> Response:
    """Domain failures that escape a router are upstream problems (502)."""
    logger.warning(
        "http.domain_error",
        extra={"extra": {"path": request.url.path, "code": exc.code, "error": exc.describe()}},
    )
    payload = error_envelope(
        code=exc.code,
        http_status=502,
        message=exc.describe(),
        details=exc.details or None,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=502, content=payload)


async def handle_unhandled_exception(request: Request, exc: Exception) -> Response:
    logger.error(
        "http.unhandled_exception",
        exc_info=exc,
        extra={"extra": {"path": request.url.path}},
    )
    payload = error_envelope(
        code="INTERNAL_ERROR",
        http_status=500,
        message="Internal server error",
        details=None,
        trace_id=_trace_id(request),
    )
    return JSONResponse(status_code=500, content=payload)
