"""
Caching Utilities
=================
In-memory TTL cache used in front of the TMDB client.

Features:
- TTL (Time To Live) per decorated function
- LRU (Least Recently Used) eviction
- Simple decorator pattern

Usage:
    from moviemonday.utils.cache import cache, clear_all_cache

    @cache(ttl=600)
    def get_movie_details(movie_id):
        ...

    clear_all_cache()
"""
from functools import wraps
from typing import Any, Callable, Optional
from collections import OrderedDict
from datetime import datetime, timedelta
import hashlib
import json
import logging
import threading

logger = logging.getLogger(__name__)


class CacheStore:
    """
    Simple in-memory cache with TTL and LRU eviction.
    Per process; every worker keeps its own copy.
    """

    def __init__(self, max_size: int = 1000):
        self._cache: OrderedDict = OrderedDict()
        self._max_size = max_size
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def make_key(self, func_name: str, args: tuple, kwargs: dict) -> str:
        """
        Create a cache key from the function name and its arguments.
        Objects without a JSON form (e.g. a bound client) fall back to str().
        """
        key_data = {
            'func': func_name,
            'args': args,
            'kwargs': sorted(kwargs.items())
        }
        key_str = json.dumps(key_data, sort_keys=True, default=str)
        return hashlib.md5(key_str.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            if key not in self._cache:
                self._misses += 1
                return None

            value, expiry = self._cache[key]

            if expiry and datetime.now() > expiry:
                del self._cache[key]
                self._misses += 1
                return None

            # Move to end (LRU)
            self._cache.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expiry = datetime.now() + timedelta(seconds=ttl) if ttl else None

        with self._lock:
            self._cache[key] = (value, expiry)
            self._cache.move_to_end(key)

            # Evict oldest if over max_size (LRU)
            if len(self._cache) > self._max_size:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                logger.debug(f"Evicted cache key: {oldest_key}")

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Cache cleared")

    def get_stats(self) -> dict:
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'size': len(self._cache),
            'max_size': self._max_size,
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': f"{hit_rate:.2f}%"
        }


# Global cache instance
_cache_store = CacheStore(max_size=1000)


def cache(ttl: int = 300):
    """
    Decorator to cache function results.

    Args:
        ttl: Time to live in seconds (default: 300 = 5 minutes)

    Note:
        - None results are never cached
        - Cache is per-process (not shared across workers)
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = _cache_store.make_key(func.__qualname__, args, kwargs)

            cached_value = _cache_store.get(cache_key)
            if cached_value is not None:
                logger.debug(f"Cache hit for {func.__qualname__}")
                return cached_value

            logger.debug(f"Cache miss for {func.__qualname__}")
            result = func(*args, **kwargs)
            if result is not None:
                _cache_store.set(cache_key, result, ttl)

            return result

        return wrapper

    return decorator


def clear_all_cache() -> None:
    """Clear all cache entries."""
    _cache_store.clear()


def get_cache_stats() -> dict:
    """Cache performance metrics for the health endpoint."""
    return _cache_store.get_stats()
