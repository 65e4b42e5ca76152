# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Health endpoints (Adapters Layer).

``GET /healthz`` is a liveness signal with no upstream I/O: market data
providers are unreliable by nature and must never make the service look
down. It reports the in-flight coalescer size for quick diagnostics.
"""

from __future__ import annotations

import typing as t

from fastapi import APIRouter, Request, status
from pydantic import Field

from marketfeed_api.adapters.schemas.http.base import BaseHTTPSchema
from marketfeed_api.config.settings import get_settings

router = APIRouter(tags=["Health"])


class LivenessResponse(BaseHTTPSchema):
    """Liveness response indicating the process is running."""

    status: t.Literal["ok"] = "ok"
    version: str | None = Field(default=None, examples=["0.1.0"])
    inflight_requests: int = Field(default=0, ge=0)


@router.get(
    "/healthz",
    summary="Liveness",
    operation_id="health_liveness",
    response_model=LivenessResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def liveness(request: Request) -> LivenessResponse:
    """Return a fast liveness signal (no external I/O)."""
    container = getattr(request.app.state, "market_data", None)
    inflight = container.coalescer.inflight_count if container is not None else 0
    return LivenessResponse(version=get_settings().service_version, inflight_requests=inflight)
