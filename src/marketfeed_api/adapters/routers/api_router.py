# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Aggregates the versioned API routers under one ``APIRouter``."""

from __future__ import annotations

from fastapi import APIRouter

from marketfeed_api.adapters.routers.fx_router import router as fx_router
from marketfeed_api.adapters.routers.history_router import router as history_router
from marketfeed_api.adapters.routers.quotes_router import router as quotes_router
from marketfeed_api.adapters.routers.search_router import router as search_router

router = APIRouter()
router.include_router(quotes_router)
router.include_router(history_router)
router.include_router(fx_router)
router.include_router(search_router)
