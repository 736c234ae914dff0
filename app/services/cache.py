"""Cache service with Redis backend and in-memory fallback.

Keys:
  - entities: "{entity_type}:{id}"   (e.g. "user:5")
  - API keys: "api_key:{raw key}"

Graceful degradation: the cache is an optimization, never a dependency.
Every Redis error is logged at DEBUG and treated as a miss / no-op. While
Redis is disabled or unreachable, a cachetools.TLRUCache stands in and
expires each entry after the TTL it was written with.
"""

import json
import logging
import time
from typing import Any

from cachetools import TLRUCache

from app.config import settings

logger = logging.getLogger(__name__)


DEFAULT_TTL = 3600


def _entry_expiry(key, entry, now):
    """Fallback entries are (data, ttl) pairs."""
    return now + entry[1]


class CacheService:
    """Async cache with Redis primary and in-memory fallback."""

    def __init__(self, client=None, fallback_size: int = 1024, timer=time.monotonic):
        self._redis = client
        self._fallback = TLRUCache(maxsize=fallback_size, ttu=_entry_expiry, timer=timer)
        self._available = client is not None

    @property
    def available(self) -> bool:
        return self._available and self._redis is not None

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        if not settings.cache_enabled:
            logger.info("Redis is disabled, using in-memory cache")
            return False

        try:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
            )
            await self._redis.ping()
            self._available = True
            return True
        except Exception as e:
            logger.warning("Redis connection failed, using in-memory fallback: %s", str(e)[:100])
            self._redis = None
            self._available = False
            return False

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self._available = False
            logger.info("Redis client closed")

    @staticmethod
    def make_key(entity_type: str, id: Any) -> str:
        return f"{entity_type}:{id}"

    async def get(self, key: str) -> Any | None:
        """Read from cache. Returns None on miss or error."""
        if self.available:
            try:
                data = await self._redis.get(key)
                if data is None:
                    logger.debug("Cache MISS | key=%s", key)
                    return None
                logger.debug("Cache HIT (Redis) | key=%s", key)
                return json.loads(data)
            except Exception as e:
                logger.debug("Redis GET error, falling back: %s", str(e)[:100])

        entry = self._fallback.get(key)
        if entry is None:
            return None
        logger.debug("Cache HIT (memory) | key=%s", key)
        return entry[0]

    async def set(self, key: str, data: Any, ttl: int | None = None):
        """Write to cache with TTL. A non-positive TTL stores nothing."""
        if ttl is None:
            ttl = DEFAULT_TTL
        if ttl <= 0:
            return

        if self.available:
            try:
                await self._redis.setex(key, ttl, json.dumps(data, ensure_ascii=False, default=str))
                logger.debug("Cache SET (Redis) | key=%s | ttl=%ds", key, ttl)
                return
            except Exception as e:
                logger.debug("Redis SET error, falling back: %s", str(e)[:100])

        self._fallback[key] = (data, ttl)

    async def delete(self, key: str):
        """Invalidate a key in both layers."""
        self._fallback.pop(key, None)

        if self.available:
            try:
                await self._redis.delete(key)
                logger.debug("Cache DELETE | key=%s", key)
            except Exception as e:
                logger.debug("Redis DELETE error: %s", str(e)[:100])

    async def exists(self, key: str) -> bool:
        if self.available:
            try:
                return bool(await self._redis.exists(key))
            except Exception as e:
                logger.debug("Redis EXISTS error, falling back: %s", str(e)[:100])
        return key in self._fallback

    async def check_health(self) -> dict:
        """Ping Redis. Returns {connected, message}."""
        if not settings.cache_enabled:
            return {"connected": False, "message": "Redis is disabled (local dev mode)"}
        if not self.available:
            return {"connected": False, "message": "Redis unavailable"}
        try:
            await self._redis.ping()
            return {"connected": True, "message": "Redis connection is healthy"}
        except Exception as e:
            logger.debug("Redis health check failed: %s", str(e)[:100])
            return {"connected": False, "message": f"Redis connection failed: {str(e)[:100]}"}


# Singleton instance
cache_service = CacheService()
