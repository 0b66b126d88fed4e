"""
Cache Service for platform-wide settlement defaults.

Supports:
1. Redis (preferred for multi-instance deployments)
2. In-memory fallback (single instance, development, tests)

Entries are TTL-bounded and invalidated explicitly when the underlying
data changes. The in-memory backend takes an injectable clock so tests
can expire entries without sleeping.

Usage:
    cache = get_cache()

    defaults = await cache.get_platform_defaults()
    await cache.set_platform_defaults(data)

    # After an update
    await cache.invalidate_platform_defaults()
"""
import json
from typing import Any, Callable, Dict, Optional
from datetime import datetime, timedelta, timezone
from abc import ABC, abstractmethod
import asyncio
import logging

from app.config import settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheBackend(ABC):
    """Abstract cache backend interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (seconds)."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass


class InMemoryCache(CacheBackend):
    """
    In-memory cache.

    Not shared across processes; with several instances each one may serve
    a stale value for at most one TTL after an update elsewhere.
    """

    def __init__(self, clock: Clock = utc_now):
        self._cache: Dict[str, tuple[Any, datetime]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            if key in self._cache:
                value, expires_at = self._cache[key]
                if expires_at > self._clock():
                    return value
                else:
                    del self._cache[key]
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        async with self._lock:
            expires_at = self._clock() + timedelta(seconds=ttl)
            self._cache[key] = (value, expires_at)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False


class RedisCache(CacheBackend):
    """
    Redis cache backend.

    Redis errors degrade to cache misses; the caller then reads the database.
    """

    def __init__(self, redis_url: str):
        self._redis_url = redis_url
        self._client = None

    async def _get_client(self):
        if self._client is None:
            import redis.asyncio as redis
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        try:
            client = await self._get_client()
            value = await client.get(key)
            if value:
                return json.loads(value)
            return None
        except Exception as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        try:
            client = await self._get_client()
            await client.set(key, json.dumps(value), ex=ttl)
            return True
        except Exception as e:
            logger.warning(f"Redis set failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_client()
            await client.delete(key)
            return True
        except Exception as e:
            logger.warning(f"Redis delete failed for {key}: {e}")
            return False


class CacheService:
    """
    Namespaced cache facade.

    Keys follow the format {namespace}:{resource}:{identifier}, e.g.
        settlement:platform:defaults
    Values must be JSON-serializable (Redis stores JSON).
    """

    PLATFORM_DEFAULTS_KEY = "platform:defaults"

    def __init__(self, backend: CacheBackend, namespace: str = "settlement"):
        self._backend = backend
        self._namespace = namespace

    def _make_key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        return await self._backend.get(self._make_key(key))

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        return await self._backend.set(self._make_key(key), value, ttl)

    async def delete(self, key: str) -> bool:
        return await self._backend.delete(self._make_key(key))

    # ==================== Platform Defaults ====================

    async def get_platform_defaults(self) -> Optional[dict]:
        return await self.get(self.PLATFORM_DEFAULTS_KEY)

    async def set_platform_defaults(self, data: dict, ttl: Optional[int] = None) -> bool:
        ttl = ttl or settings.PLATFORM_SETTINGS_CACHE_TTL
        return await self.set(self.PLATFORM_DEFAULTS_KEY, data, ttl)

    async def invalidate_platform_defaults(self) -> bool:
        return await self.delete(self.PLATFORM_DEFAULTS_KEY)


# Process-wide cache; replaced through set_cache() in tests
_cache_instance: Optional[CacheService] = None


def get_cache() -> CacheService:
    """Get the process-wide cache service (FastAPI dependency)."""
    global _cache_instance

    if _cache_instance is None:
        if settings.REDIS_URL and settings.CACHE_ENABLED:
            backend = RedisCache(settings.REDIS_URL)
            logger.info("Cache initialized with Redis backend")
        else:
            backend = InMemoryCache()
            logger.info("Cache initialized with in-memory backend")

        _cache_instance = CacheService(backend)

    return _cache_instance


def set_cache(cache: Optional[CacheService]) -> None:
    """Install a specific cache service, or None to rebuild from settings on next use."""
    global _cache_instance
    _cache_instance = cache
