"""Best-effort cache backends and the ReMarked token cache.

The cache only saves round-trips. Every backend failure is logged and
reported to the caller as a miss, never raised.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import Settings

logger = logging.getLogger("remarked_booking")

TOKEN_KEY_PREFIX = "remarked:token"
RESTAURANT_KEY_PREFIX = "restaurant"


class CacheBackend(Protocol):
    name: str

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCacheBackend:
    """Process-local cache used when Redis is not configured."""

    name = "memory"

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._items: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            self._items.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._items[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)


class RedisCacheBackend:
    """Redis-backed cache that degrades to misses when Redis is unreachable."""

    name = "redis"

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        return cls(Redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.set(key, value, ex=ttl)
        except (RedisError, OSError) as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)

    async def close(self) -> None:
        await self._redis.aclose()


def build_cache_backend(settings: Settings) -> CacheBackend:
    """Use Redis when a URL is configured, otherwise an in-process cache."""
    if settings.redis_url:
        return RedisCacheBackend.from_url(settings.redis_url)
    logger.info("REDIS_URL not set; using in-memory cache")
    return MemoryCacheBackend()


class TokenCache:
    """Maps a ReMarked point id to its last issued bearer token."""

    def __init__(self, backend: CacheBackend, ttl_seconds: int) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(point_id: int) -> str:
        return f"{TOKEN_KEY_PREFIX}:{point_id}"

    async def get(self, point_id: int) -> str | None:
        return await self.backend.get(self.key(point_id)) or None

    async def set(self, point_id: int, token: str) -> None:
        await self.backend.set(self.key(point_id), token, self.ttl_seconds)

    async def invalidate(self, point_id: int) -> None:
        await self.backend.delete(self.key(point_id))


class RestaurantCache:
    """JSON snapshots of restaurant rows keyed by restaurant id."""

    def __init__(self, backend: CacheBackend, ttl_seconds: int) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(restaurant_id: str) -> str:
        return f"{RESTAURANT_KEY_PREFIX}:{restaurant_id}"

    async def get(self, restaurant_id: str) -> dict[str, Any] | None:
        raw = await self.backend.get(self.key(restaurant_id))
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable cache entry for restaurant %s", restaurant_id)
            return None
        return data if isinstance(data, dict) else None

    async def set(self, restaurant_id: str, data: dict[str, Any]) -> None:
        await self.backend.set(self.key(restaurant_id), json.dumps(data), self.ttl_seconds)

    async def invalidate(self, restaurant_id: str) -> None:
        await self.backend.delete(self.key(restaurant_id))
