# src/marketfeed_api/infrastructure/caching/redis_client.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Async Redis client factory (used when ``CACHE_BACKEND=redis``)."""

from __future__ import annotations

from contextlib import suppress
from typing import Any, Protocol, cast, runtime_checkable

import redis.asyncio as aioredis

from marketfeed_api.config.settings import Settings

__all__ = ["RedisClient", "close_redis", "get_redis_client", "init_redis"]


@runtime_checkable
class RedisClient(Protocol):
    """Minimal async Redis protocol used by the JSON cache."""

    async def get(self, key: str) -> Any: ...
    async def set(self, key: str, value: Any, *, ex: int | None = None) -> Any: ...
    async def aclose(self) -> None: ...


_client: RedisClient | None = None


def init_redis(settings: Settings) -> RedisClient:
    """Initialize the process-wide async Redis client (idempotent)."""
    global _client
    if _client is None:
        _from_url: Any = aioredis.from_url
        _client = cast(
            RedisClient,
            _from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=settings.redis_socket_timeout_s,
                socket_connect_timeout=settings.redis_socket_timeout_s,
            ),
        )
    return _client


async def close_redis() -> None:
    """Close the process-wide Redis client at shutdown."""
    global _client
    if _client is not None:
        with suppress(RuntimeError):
            await _client.aclose()
        _client = None


def get_redis_client() -> RedisClient:
    """Return the initialized Redis client.

    Raises:
        RuntimeError: If :func:`init_redis` has not been called.
    """
    if _client is None:
        raise RuntimeError("Redis client not initialized (call init_redis first)")
    return _client
