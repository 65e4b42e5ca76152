# tests/unit/infrastructure/caching/test_redis_json_cache.py
from __future__ import annotations

import fakeredis.aioredis
import pytest

from marketfeed_api.infrastructure.caching.json_cache import RedisJsonCache


@pytest.mark.asyncio
async def test_round_trip_uses_namespace_and_ttl() -> None:
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    cache = RedisJsonCache(fake, namespace="marketfeed:test")

    await cache.set_json("yahoo:quote:AAPL", {"price": 190.5, "name": "אפל"}, ttl=30)

    assert await cache.get_json("yahoo:quote:AAPL") == {"price": 190.5, "name": "אפל"}
    assert await fake.exists("marketfeed:test:yahoo:quote:AAPL") == 1
    ttl = await fake.ttl("marketfeed:test:yahoo:quote:AAPL")
    assert 0 < ttl <= 30


@pytest.mark.asyncio
async def test_zero_ttl_is_not_stored() -> None:
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    cache = RedisJsonCache(fake, namespace="ns")
    await cache.set_json("k", [1, 2], ttl=0)
    assert await cache.get_json("k") is None


class _BrokenRedis:
    async def get(self, key: str) -> str:
        raise ConnectionError("redis down")

    async def set(self, key: str, value: str, *, ex: int | None = None) -> None:
        raise ConnectionError("redis down")

    async def aclose(self) -> None:
        return None


@pytest.mark.asyncio
async def test_redis_failures_read_as_miss() -> None:
    cache = RedisJsonCache(_BrokenRedis(), namespace="ns")
    await cache.set_json("k", {"a": 1}, ttl=10)
    assert await cache.get_json("k") is None
