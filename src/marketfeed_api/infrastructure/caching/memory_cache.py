# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""In-process TTL cache implementing :class:`CachePort`.

Entries are purged lazily on access; there is no background sweeper. The
working set is bounded by the number of distinct recently requested
symbols, so lazy eviction keeps memory in check.
"""

from __future__ import annotations

import asyncio
import copy
import time
from collections.abc import Callable
from typing import Any

from marketfeed_api.application.interfaces.cache_port import CachePort


class InMemoryTTLCache(CachePort):
    """A small, concurrency-safe in-memory cache."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get_json(self, key: str) -> Any | None:
        """Return a value by key if present and not expired."""
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                self._store.pop(key, None)
                return None
            return copy.deepcopy(value)

    async def set_json(self, key: str, value: Any, *, ttl: int) -> None:
        """Store a JSON-serializable value under ``key`` for ``ttl`` seconds."""
        if ttl <= 0:
            return
        expires_at = self._clock() + float(ttl)
        async with self._lock:
            self._store[key] = (expires_at, copy.deepcopy(value))

    def __len__(self) -> int:
        return len(self._store)
