"""
In-Memory Cache
TTL + LRU cache for dashboard statistics and hot lookups

Built on cachetools.TLRUCache so each entry can carry its own TTL. When the
cache is full, expired entries go first, then the least recently used.
"""
import asyncio
import functools
import logging
import threading
import time
from typing import Any, Callable, Optional

from cachetools import TLRUCache

from investor_crm.core.config import settings

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheKeys:
    """Key builders shared by services that read and invalidate the cache."""

    @staticmethod
    def investor_stats() -> str:
        return "stats:investors"

    @staticmethod
    def task_stats() -> str:
        return "stats:tasks"

    @staticmethod
    def meeting_stats() -> str:
        return "stats:meetings"

    @staticmethod
    def investor(investor_id: str) -> str:
        return f"investor:{investor_id}"

    @staticmethod
    def activities(investor_id: str) -> str:
        return f"activities:{investor_id}"

    @staticmethod
    def user_role(user_id: str) -> str:
        return f"role:{user_id}"


class MemoryCache:
    """Thread-safe TTL cache with LRU eviction."""

    def __init__(self, max_size: int = 1000, default_ttl: float = 300, timer: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.default_ttl = default_ttl
        # Values are stored as (value, ttl) so the time-to-use function can read the TTL
        self._cache = TLRUCache(maxsize=max_size, ttu=lambda _key, item, now: now + item[1], timer=timer)
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            item = self._cache.get(key, _MISSING)
        if item is _MISSING:
            return default
        return item[0]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            self._cache[key] = (value, self.default_ttl if ttl is None else ttl)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, _MISSING) is not _MISSING

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in list(self._cache.keys()) if key.startswith(prefix)]
            for key in keys:
                self._cache.pop(key, None)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def stats(self) -> dict:
        return {"size": self.size(), "max_size": self.max_size}


cache = MemoryCache(max_size=settings.cache_max_size, default_ttl=settings.cache_ttl_seconds)


def cached(key: Callable[..., str], ttl: Optional[float] = None, store: Optional[MemoryCache] = None):
    """
    Cache a function's return value under key(*args, **kwargs).

    Works for both sync and async functions. None results are not cached.
    """
    def decorator(func):
        def _store() -> MemoryCache:
            return store or cache

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                cache_key = key(*args, **kwargs)
                hit = _store().get(cache_key, _MISSING)
                if hit is not _MISSING:
                    return hit
                result = await func(*args, **kwargs)
                if result is not None:
                    _store().set(cache_key, result, ttl)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = key(*args, **kwargs)
            hit = _store().get(cache_key, _MISSING)
            if hit is not _MISSING:
                return hit
            result = func(*args, **kwargs)
            if result is not None:
                _store().set(cache_key, result, ttl)
            return result
        return wrapper

    return decorator
