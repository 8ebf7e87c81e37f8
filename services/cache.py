"""
Resolution cache for geocoding results.

Stores parsed addresses and resolved centroids keyed by normalised query,
plus short-lived NotFoundResult markers for queries the provider had no
answer for.
Three interchangeable backends: in-process LRU/TTL (cachetools), Redis, and a
no-op cache for when caching is disabled.
"""

import json
import logging
import threading
import time
from typing import Callable, Optional, Protocol, Union

from cachetools import TTLCache

from services.geocoding.models import Coordinates, NotFoundResult, ParsedAddress

logger = logging.getLogger(__name__)

CacheValue = Union[ParsedAddress, Coordinates, NotFoundResult]

# 24 hours in seconds
DEFAULT_TTL = 86400
# 1 hour in seconds
DEFAULT_NEGATIVE_TTL = 3600
DEFAULT_MAX_ENTRIES = 10000


class ResolutionCache(Protocol):
    async def get(self, key: str) -> Optional[CacheValue]: ...

    async def set(self, key: str, value: CacheValue) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


class InMemoryResolutionCache:
    """
    Bounded in-process cache.

    Entries expire ``ttl`` seconds after being written (checked on read) and
    the least recently used entry is evicted once ``max_entries`` is reached.
    NotFoundResult markers live in a second TTLCache with ``negative_ttl``.
    A lock guards both, as TTLCache is not thread-safe itself.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl: float = DEFAULT_TTL,
        negative_ttl: float = DEFAULT_NEGATIVE_TTL,
        timer: Callable[[], float] = time.monotonic,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._cache: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl, timer=timer)
        self._misses: TTLCache = TTLCache(maxsize=max_entries, ttl=negative_ttl, timer=timer)
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[CacheValue]:
        with self._lock:
            value = self._cache.get(key)
            if value is None:
                value = self._misses.get(key)
        if value is None:
            logger.debug(f"Cache miss: {key}")
        return value

    async def set(self, key: str, value: CacheValue) -> None:
        with self._lock:
            if isinstance(value, NotFoundResult):
                self._cache.pop(key, None)
                self._misses[key] = value
            else:
                self._misses.pop(key, None)
                self._cache[key] = value

    async def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)
            self._misses.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._misses.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            self._misses.expire()
            return len(self._cache) + len(self._misses)


class RedisResolutionCache:
    """Shared cache backed by Redis (SETEX expiry, JSON values)"""

    def __init__(
        self,
        redis,
        ttl: int = DEFAULT_TTL,
        negative_ttl: int = DEFAULT_NEGATIVE_TTL,
        prefix: str = "georesolve:",
    ):
        self._redis = redis
        self._ttl = int(ttl)
        self._negative_ttl = int(negative_ttl)
        self._prefix = prefix

    async def get(self, key: str) -> Optional[CacheValue]:
        """Get value from cache, returns None if not found or Redis unavailable."""
        try:
            payload = await self._redis.get(f"{self._prefix}{key}")
        except Exception as e:
            logger.warning(f"Redis cache read failed for {key}: {e}")
            return None
        if not payload:
            return None
        return _decode(payload)

    async def set(self, key: str, value: CacheValue) -> None:
        """Set value in cache with TTL in seconds"""
        try:
            ttl = self._negative_ttl if isinstance(value, NotFoundResult) else self._ttl
            await self._redis.setex(f"{self._prefix}{key}", ttl, _encode(value))
        except Exception as e:
            logger.warning(f"Redis cache write failed for {key}: {e}")  # caching is optional

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(f"{self._prefix}{key}")
        except Exception as e:
            logger.warning(f"Redis cache delete failed for {key}: {e}")

    async def clear(self) -> None:
        """Delete every key under this cache's prefix"""
        try:
            cursor = 0
            while True:
                cursor, keys = await self._redis.scan(cursor, match=f"{self._prefix}*", count=100)
                if keys:
                    await self._redis.delete(*keys)
                if cursor == 0:
                    break
        except Exception as e:
            logger.warning(f"Redis cache clear failed: {e}")


class NullResolutionCache:
    """Cache that stores nothing"""

    async def get(self, key: str) -> Optional[CacheValue]:
        return None

    async def set(self, key: str, value: CacheValue) -> None:
        pass

    async def delete(self, key: str) -> None:
        pass

    async def clear(self) -> None:
        pass


def _encode(value: CacheValue) -> str:
    if isinstance(value, ParsedAddress):
        kind = "address"
    elif isinstance(value, Coordinates):
        kind = "coordinates"
    elif isinstance(value, NotFoundResult):
        kind = "not_found"
    else:
        raise TypeError(f"Cannot cache value of type {type(value).__name__}")
    return json.dumps({"kind": kind, "value": value.model_dump()})


def _decode(payload) -> Optional[CacheValue]:
    try:
        data = json.loads(payload)
        if data["kind"] == "address":
            return ParsedAddress(**data["value"])
        if data["kind"] == "coordinates":
            return Coordinates(**data["value"])
        if data["kind"] == "not_found":
            return NotFoundResult(**data["value"])
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Discarding unreadable cache entry: {e}")
        return None
    return None


def build_resolution_cache(settings, redis=None) -> ResolutionCache:
    """Construct the configured cache backend (CACHE_BACKEND)"""
    backend = settings.CACHE_BACKEND
    if backend == "memory":
        return InMemoryResolutionCache(
            max_entries=settings.CACHE_MAX_ENTRIES,
            ttl=settings.CACHE_TTL_SECONDS,
            negative_ttl=settings.CACHE_NEGATIVE_TTL_SECONDS,
        )
    if backend == "redis":
        if redis is None:
            raise ValueError("CACHE_BACKEND=redis requires a Redis client")
        return RedisResolutionCache(
            redis,
            ttl=settings.CACHE_TTL_SECONDS,
            negative_ttl=settings.CACHE_NEGATIVE_TTL_SECONDS,
        )
    if backend == "none":
        return NullResolutionCache()
    raise ValueError(f"Unknown CACHE_BACKEND: {backend}")
