# src/marketfeed_api/adapters/routers/metrics_router.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (``/metrics``).

The market data collectors are created lazily on first use; the scrape
handler touches each getter so every metric family is present on a cold
scrape, before any upstream call has happened.
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from marketfeed_api.infrastructure.observability.metrics import (
    get_cache_requests_total,
    get_fallback_escalations_total,
    get_fallback_stage_total,
    get_upstream_errors_total,
    get_upstream_latency_seconds,
    get_upstream_retries_total,
)

router = APIRouter()

_COLLECTORS = (
    get_upstream_latency_seconds,
    get_upstream_errors_total,
    get_upstream_retries_total,
    get_cache_requests_total,
    get_fallback_stage_total,
    get_fallback_escalations_total,
)


@router.get("/metrics", include_in_schema=False)
async def metrics_probe() -> Response:
    """Expose Prometheus metrics in text format."""
    for getter in _COLLECTORS:
        getter()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
