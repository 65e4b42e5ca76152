# src/marketfeed_api/infrastructure/middleware/request_id.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Request ID Middleware.

Contract:
    • Reads:  ``X-Request-ID`` (optional; reused when it is a safe token)
    • Writes: ``X-Request-ID`` on every response
    • Stores: ``request.state.request_id``
    • Binds the id into the logging context for the duration of the request,
      and forwards it to upstream providers through the shared transport.

A completed request is logged once as ``http.request`` with method, path,
status and duration.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Final

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from marketfeed_api.infrastructure.logging.logger import get_json_logger, set_request_context

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
_SAFE_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9\-_.:@]{1,128}$")

logger = get_json_logger(__name__)


def coerce_request_id(raw: str | None) -> str:
    """Return the caller's id when safe, else a fresh UUID4 hex string."""
    if raw and _SAFE_RE.match(raw):
        return raw
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Correlates logs, error envelopes and upstream calls per request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        req_id = coerce_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = req_id
        set_request_context(request_id=req_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers.setdefault(REQUEST_ID_HEADER, req_id)
            logger.info(
                "http.request",
                extra={
                    "extra": {
                        "method": request.method,
                        "path": request.url.path,
                        "status": response.status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    }
                },
            )
            return response
        finally:
            set_request_context(request_id=None)
