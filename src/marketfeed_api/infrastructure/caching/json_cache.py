# src/marketfeed_api/infrastructure/caching/json_cache.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""JSON Cache (Redis-backed).

Synopsis:
    Thin adapter that implements the application CachePort Protocol on top of
    a Redis client. Lets several API replicas share upstream payloads so a
    scaled deployment still collapses identical upstream calls per TTL window.

Design:
    * Pure JSON (utf-8) serialization; no pickle.
    * Namespace prefix owns the service + vertical + version
      (``marketfeed:market_data:v1``); callers provide the resource tail,
      e.g. ``coingecko:simple_price:bitcoin,ethereum``.
    * Redis errors degrade to cache misses; the coalescer then calls upstream.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import json
from typing import Any

from marketfeed_api.application.interfaces.cache_port import CachePort
from marketfeed_api.infrastructure.caching.redis_client import RedisClient
from marketfeed_api.infrastructure.logging.logger import get_json_logger

__all__ = ["RedisJsonCache"]

logger = get_json_logger(__name__)


class RedisJsonCache(CachePort):
    """Redis-backed implementation of the CachePort Protocol."""

    def __init__(
        self, client: RedisClient, *, namespace: str = "marketfeed:market_data:v1"
    ) -> None:
        """Initialize the cache adapter.

        Args:
            client: Async Redis client.
            namespace: Prefix applied to all keys to avoid collisions.
        """
        self._redis = client
        self._ns = namespace

    def _k(self, key: str) -> str:
        return f"{self._ns}:{key.lstrip(':')}"

    async def get_json(self, key: str) -> Any | None:
        """Get a JSON value by key; Redis failures read as a miss."""
        try:
            raw = await self._redis.get(self._k(key))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "cache.redis_get_failed",
                extra={"extra": {"key": key, "error": str(exc)}},
            )
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any, *, ttl: int) -> None:
        """Set a JSON value with TTL; Redis failures are logged and ignored."""
        if ttl <= 0:
            return
        try:
            await self._redis.set(self._k(key), json.dumps(value, ensure_ascii=False), ex=ttl)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "cache.redis_set_failed",
                extra={"extra": {"key": key, "error": str(exc)}},
            )
