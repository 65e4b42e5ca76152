# src/marketfeed_api/application/interfaces/cache_port.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Application Interface: Cache Port.

Synopsis:
    Minimal JSON cache behavior used by the request coalescer. Enables
    swapping the in-process cache for Redis in scaled deployments.

Layer:
    application/interfaces
"""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """JSON cache with TTL semantics.

    Values are JSON-serializable (mappings, lists, strings, numbers).
    Implementations treat TTLs <= 0 as "do not cache".
    """

    async def get_json(self, key: str) -> Any | None:
        """Get a JSON-serializable value by key.

        Args:
            key: Cache key (namespaced by the implementation if applicable).

        Returns:
            Deserialized JSON value if present and unexpired, else ``None``.
        """

    async def set_json(self, key: str, value: Any, *, ttl: int) -> None:
        """Set a JSON-serializable value with TTL.

        Args:
            key: Cache key.
            value: JSON-serializable value.
            ttl: Time-to-live in seconds.
        """
