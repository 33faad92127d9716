"""Cache backend and token cache tests."""

from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from remarked_booking.cache import (
    MemoryCacheBackend,
    RedisCacheBackend,
    RestaurantCache,
    TokenCache,
    build_cache_backend,
)
from remarked_booking.config import Settings

pytestmark = pytest.mark.anyio


class UnreachableRedis:
    """Redis client whose every command fails as if the server were down."""

    async def get(self, key):
        raise RedisConnectionError("Connection refused")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("Connection refused")

    async def delete(self, key):
        raise RedisConnectionError("Connection refused")


class RecordingRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self.store.pop(key, None)


async def test_token_cache_round_trip(token_cache):
    assert await token_cache.get(203003) is None

    await token_cache.set(203003, "tok-1")
    assert await token_cache.get(203003) == "tok-1"

    await token_cache.invalidate(203003)
    assert await token_cache.get(203003) is None


async def test_token_expires_after_ttl(cache_backend, clock):
    cache = TokenCache(cache_backend, ttl_seconds=60)
    await cache.set(1, "tok")

    clock.advance(59)
    assert await cache.get(1) == "tok"

    clock.advance(1)
    assert await cache.get(1) is None


async def test_token_cache_is_keyed_per_point(token_cache):
    await token_cache.set(1, "first")
    await token_cache.set(2, "second")

    assert await token_cache.get(1) == "first"
    assert await token_cache.get(2) == "second"
    assert TokenCache.key(1) == "remarked:token:1"


async def test_unreachable_redis_behaves_as_miss():
    cache = TokenCache(RedisCacheBackend(UnreachableRedis()), ttl_seconds=60)

    await cache.set(1, "tok")
    assert await cache.get(1) is None
    await cache.invalidate(1)


async def test_redis_backend_passes_ttl():
    redis = RecordingRedis()
    cache = TokenCache(RedisCacheBackend(redis), ttl_seconds=3300)

    await cache.set(7, "tok")

    assert redis.store == {"remarked:token:7": "tok"}
    assert redis.expiry == {"remarked:token:7": 3300}
    assert await cache.get(7) == "tok"


async def test_restaurant_cache_ignores_corrupt_entries(cache_backend):
    cache = RestaurantCache(cache_backend, ttl_seconds=3600)
    await cache_backend.set(RestaurantCache.key("V1"), "{not json", 3600)

    assert await cache.get("V1") is None

    await cache.set("V1", {"id": "V1", "is_active": True})
    assert await cache.get("V1") == {"id": "V1", "is_active": True}


def test_build_cache_backend_defaults_to_memory():
    backend = build_cache_backend(Settings(redis_url=None))

    assert isinstance(backend, MemoryCacheBackend)
    assert backend.name == "memory"


def test_build_cache_backend_uses_redis_when_configured():
    backend = build_cache_backend(Settings(redis_url="redis://localhost:6379/0"))

    assert isinstance(backend, RedisCacheBackend)
    assert backend.name == "redis"
