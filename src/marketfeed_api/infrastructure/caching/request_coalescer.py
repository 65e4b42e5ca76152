# src/marketfeed_api/infrastructure/caching/request_coalescer.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Request Coalescer (single-flight + TTL cache).

Synopsis:
    Collapses concurrent identical upstream calls into one and serves fresh
    cached results without touching the network.

Design:
    * One instance per process, built in the application lifespan and injected
      into the provider transport. Not a module-level singleton.
    * In-flight calls are tracked as ``asyncio.Future`` objects keyed by the
      request signature. Registration happens without an intervening
      ``await``, so two tasks can never both become the owner of a key.
    * The owner checks the cache after registering; on a miss it calls the
      loader, stores a non-``None`` result with the caller's TTL, and
      resolves the future. Failures are delivered to every waiter and are
      never cached.
    * The in-flight entry is removed as soon as the call settles.

Layer:
    infrastructure/caching
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from contextlib import suppress
from typing import Any

from marketfeed_api.application.interfaces.cache_port import CachePort
from marketfeed_api.domain.exceptions.market_data import UpstreamTimeout
from marketfeed_api.infrastructure.logging.logger import get_json_logger
from marketfeed_api.infrastructure.observability.metrics import get_cache_requests_total

__all__ = ["RequestCoalescer", "make_key"]

logger = get_json_logger(__name__)


def make_key(endpoint: str, *, symbols: Iterable[str] = (), **params: Any) -> str:
    """Build an order-independent cache key.

    Symbols are de-duplicated and sorted; parameters are sorted by name, so
    ``make_key("cg", symbols=["eth", "btc"])`` equals
    ``make_key("cg", symbols=["btc", "eth", "btc"])``.

    Args:
        endpoint: Provider endpoint label, e.g. ``"yahoo:chart"``.
        symbols: Symbols covered by the request.
        **params: Remaining request parameters; ``None`` values are skipped.

    Returns:
        str: Cache key.
    """
    parts = [endpoint]
    syms = sorted({s for s in symbols if s})
    if syms:
        parts.append(",".join(syms))
    for name in sorted(params):
        value = params[name]
        if value is not None:
            parts.append(f"{name}={value}")
    return ":".join(parts)


class RequestCoalescer:
    """Single-flight coalescing over a :class:`CachePort`."""

    def __init__(self, cache: CachePort, *, default_ttl: int = 60) -> None:
        """Initialize the coalescer.

        Args:
            cache: Cache backend for settled results.
            default_ttl: TTL in seconds when callers do not pass one.
        """
        self._cache = cache
        self._default_ttl = default_ttl
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._requests = get_cache_requests_total()

    @property
    def inflight_count(self) -> int:
        """Number of calls currently in flight."""
        return len(self._inflight)

    async def coalesce(
        self,
        key: str,
        fn: Callable[[], Awaitable[Any]],
        *,
        ttl: int | None = None,
    ) -> Any:
        """Return the cached or shared result for ``key``, calling ``fn`` at most once.

        Args:
            key: Request signature (see :func:`make_key`).
            fn: Zero-arg async loader performing the upstream call.
            ttl: Cache TTL in seconds for a successful result.

        Returns:
            The loader's (or cached) JSON-compatible value.

        Raises:
            Exception: Whatever the loader raised; shared with all waiters.
        """
        pending = self._inflight.get(key)
        if pending is not None:
            self._count("shared")
            logger.debug("coalescer.shared_inflight", extra={"extra": {"key": key}})
            return await asyncio.shield(pending)

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            cached = await self._cache.get_json(key)
            if cached is not None:
                self._count("hit")
                future.set_result(cached)
                return cached

            self._count("miss")
            value = await fn()
            if value is not None:
                ttl_s = self._default_ttl if ttl is None else ttl
                await self._cache.set_json(key, value, ttl=ttl_s)
            future.set_result(value)
            return value
        except asyncio.CancelledError:
            if not future.done():
                future.set_exception(UpstreamTimeout("Coalesced upstream call was cancelled"))
                _mark_retrieved(future)
            raise
        except Exception as exc:
            if not future.done():
                future.set_exception(exc)
                _mark_retrieved(future)
            raise
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def _count(self, result: str) -> None:
        with suppress(Exception):
            self._requests.labels(result=result).inc()


def _mark_retrieved(future: asyncio.Future[Any]) -> None:
    # Waiters may not exist; retrieving silences "exception was never retrieved".
    with suppress(BaseException):
        future.exception()
