# src/marketfeed_api/main.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires middleware, exception handlers and routers.
    Provides an application factory (``create_app``) and a module-level eager
    app (``app``) for ASGI servers and tooling.

Design:
    • Bootstrap only (no business logic): routers + middleware + handlers.
    • Lifespan owns the shared ``httpx.AsyncClient``, the cache backend and
      the market data container, and tears them down on shutdown.
    • Observability: root JSON logging configured at import time; Prometheus
      metrics exposed on ``/metrics``.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from marketfeed_api.adapters.routers import api_router, health, metrics
from marketfeed_api.config.settings import Settings, get_settings
from marketfeed_api.dependencies.market_data import build_container
from marketfeed_api.domain.exceptions.base import DomainError
from marketfeed_api.infrastructure.caching.redis_client import close_redis
from marketfeed_api.infrastructure.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
    handle_validation_error,
)
from marketfeed_api.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)
from marketfeed_api.infrastructure.middleware.request_id import RequestIdMiddleware

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
configure_root_logging()
logger = get_json_logger(__name__)

SERVICE_NAME = "marketfeed-api"

_HTTP_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)


def _stable_operation_id(route: APIRoute) -> str:
    """Deterministic operationId, e.g. ``get__v1_quotes``."""
    methods = ",".join(sorted(route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "")
    return f"{methods.lower()}_{path.lower()}"


# -----------------------------------------------------------------------------
# Lifespan
# -----------------------------------------------------------------------------
@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared infrastructure on startup and release it on shutdown.

    Exposes ``app.state.settings``, ``app.state.http_client`` and
    ``app.state.market_data`` for dependency providers.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to FastAPI to serve requests.
    """
    settings = get_settings()
    http = httpx.AsyncClient(limits=_HTTP_LIMITS, follow_redirects=True)
    app.state.settings = settings
    app.state.http_client = http
    app.state.market_data = build_container(settings, http)
    logger.info(
        "service_ready",
        extra={"extra": {"service": SERVICE_NAME, "cache_backend": settings.cache_backend}},
    )
    try:
        yield
    finally:
        await http.aclose()
        if settings.cache_backend == "redis":
            await close_redis()
        logger.info("service_shutdown", extra={"extra": {"service": SERVICE_NAME}})


# -----------------------------------------------------------------------------
# Middleware & CORS
# -----------------------------------------------------------------------------
def _attach_middlewares(app: FastAPI) -> None:
    """Attach core middleware.

    Order (outermost last): request id / access log, then response
    compression for large history payloads.
    """
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestIdMiddleware)


def _attach_cors(app: FastAPI, settings: Settings) -> None:
    """Attach CORS middleware based on settings.

    Args:
        app: FastAPI application.
        settings: Runtime settings containing CORS config.
    """
    allow_origins = settings.cors_allow_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def _patch_exception_handlers(app: FastAPI) -> None:
    """Patch default exception handlers with structured equivalents.

    Args:
        app: FastAPI application.
    """

    async def _http_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, HTTPException):
            raise exc
        return await handle_http_exception(request, exc)

    async def _validation_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, RequestValidationError):
            raise exc
        return await handle_validation_error(request, exc)

    async def _domain_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, DomainError):
            raise exc
        return await handle_domain_error(request, exc)

    async def _unhandled_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        return await handle_unhandled_exception(request, exc)

    app.add_exception_handler(HTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Fully configured application instance.
    """
    settings: Settings = get_settings()
    service_version = settings.service_version or "0.0.0"

    app = FastAPI(
        title="Marketfeed API",
        version=service_version,
        description="Multi-provider market data aggregation: quotes, history and FX.",
        lifespan=runtime_lifespan,
        generate_unique_id_function=_stable_operation_id,
    )

    _patch_exception_handlers(app)
    _attach_middlewares(app)
    _attach_cors(app, settings)

    app.include_router(api_router)
    app.include_router(health)
    app.include_router(metrics)

    logger.info(
        "service_startup",
        extra={
            "extra": {
                "service": SERVICE_NAME,
                "env": settings.environment.value,
                "version": service_version,
            }
        },
    )
    return app


# Eager app for ASGI servers and tooling.
app: FastAPI = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "marketfeed_api.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
        reload=True,
    )
