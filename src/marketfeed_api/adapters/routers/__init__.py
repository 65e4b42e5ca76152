# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Routers Package Export (Adapters Layer).

Purpose:
    Stable exports for the versioned API aggregator, the health router and
    the Prometheus scrape router. ``main.py`` imports these names during
    startup.

Layer:
    adapters/routers
"""

from __future__ import annotations

from .api_router import router as api_router
from .health_router import router as health
from .metrics_router import router as metrics

__all__ = ["api_router", "health", "metrics"]
