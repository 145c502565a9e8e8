"""
Bounded, thread-safe caches for slow external lookups.

Only payloads from the SQL assistant (its schema description) are cached.
Scorecards are computed fresh on every request and never go through here.
"""
import threading
from typing import Any, Callable, Hashable

from cachetools import TTLCache


class ExternalCache:
    """Named TTLCaches behind one lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._caches: dict[str, TTLCache] = {}

    def _cache(self, name: str, maxsize: int, ttl: int) -> TTLCache:
        if name not in self._caches:
            self._caches[name] = TTLCache(maxsize=maxsize, ttl=ttl)
        return self._caches[name]

    def get_or_load(
        self,
        name: str,
        key: Hashable,
        loader: Callable[[], Any],
        *,
        maxsize: int = 16,
        ttl: int = 300,
    ) -> Any:
        """Return the cached value or call ``loader`` and cache its result.

        Exceptions from ``loader`` propagate and nothing is cached.
        """
        with self._lock:
            cache = self._cache(name, maxsize, ttl)
            if key in cache:
                return cache[key]
        value = loader()
        with self._lock:
            cache[key] = value
        return value

    def invalidate(self, name: str) -> None:
        with self._lock:
            cache = self._caches.get(name)
            if cache is not None:
                cache.clear()

    def stats(self) -> dict:
        """Sizes and bounds per cache, for /metrics."""
        with self._lock:
            return {
                name: {"size": len(cache), "maxsize": cache.maxsize, "ttl": cache.ttl}
                for name, cache in self._caches.items()
            }


external_cache = ExternalCache()
