"""
Result Cache for zone lookups, rate lists, quotes and shipments

Purpose:
- Avoid repeated store round-trips for configuration that rarely changes
- Key: "<prefix>" or "<prefix>:<md5 of the sorted-JSON parameters>"
- TTL per entry (callers pass the tuning value for each kind of result)
- Explicit invalidation by key prefix after writes

Values must be JSON-compatible (dicts/lists/scalars) so the in-process and
Redis backends behave identically and cached entries can never be mutated
through a caller's reference.

Usage:
    cache = build_result_cache()

    key = ResultCache.make_key("shipping_quotes", {"address": ..., "package": ...})
    cached = await cache.get(key)
    if cached is None:
        quotes = ...
        await cache.set(key, quotes, ttl_seconds=120)

    await cache.invalidate(["shipping_quotes", "shipment"])
"""
import copy
import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from shipping_engine.core.config import settings
from shipping_engine.core.redis_client import get_redis

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"


class ResultCache:
    """
    In-process LRU cache with per-entry TTL.

    Safe for single-threaded async usage (standard in asyncio).

    Attributes:
        default_ttl_seconds: TTL used when set() is called without one
        max_size: Maximum cache entries before LRU eviction
    """

    def __init__(
        self,
        default_ttl_seconds: int = 300,
        max_size: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._cache: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(prefix: str, params: Optional[Any] = None) -> str:
        """
        Build a deterministic cache key.

        Args:
            prefix: Result family, also the unit of invalidation
            params: JSON-compatible inputs identifying the result

        Returns:
            "prefix" alone, or "prefix:<md5 of sorted JSON params>"
        """
        if params is None:
            return prefix
        key_string = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
        return f"{prefix}{KEY_SEPARATOR}{hashlib.md5(key_string.encode()).hexdigest()}"

    @staticmethod
    def key_matches(key: str, prefix: str) -> bool:
        """True if key belongs to the prefix family."""
        return key == prefix or key.startswith(prefix + KEY_SEPARATOR)

    async def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if present and not expired.

        Returns:
            Cached value or None on miss
        """
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            self._misses += 1
            logger.debug(f"[RESULT_CACHE] Expired: {key}")
            return None

        # Move to end (most recently used)
        self._cache.move_to_end(key)
        self._hits += 1
        logger.debug(f"[RESULT_CACHE] Hit: {key}")
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """
        Cache a value.

        Args:
            key: Cache key (see make_key)
            value: JSON-compatible value
            ttl_seconds: Time-to-live, defaults to default_ttl_seconds
        """
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return

        if key in self._cache:
            del self._cache[key]

        # Evict oldest entries if at capacity
        while len(self._cache) >= self.max_size:
            self._cache.popitem(last=False)
            self._evictions += 1
            logger.debug("[RESULT_CACHE] Evicted oldest entry (capacity)")

        self._cache[key] = (self._clock() + ttl, copy.deepcopy(value))
        logger.debug(f"[RESULT_CACHE] Stored: {key} (ttl={ttl}s)")

    async def invalidate(self, prefixes: Iterable[str]) -> int:
        """
        Remove every entry whose key belongs to one of the prefixes.

        Returns:
            Number of entries removed
        """
        prefixes = list(prefixes)
        doomed = [
            key for key in self._cache
            if any(self.key_matches(key, prefix) for prefix in prefixes)
        ]
        for key in doomed:
            del self._cache[key]

        if doomed:
            logger.info(f"[RESULT_CACHE] Invalidated {len(doomed)} entries for {prefixes}")
        return len(doomed)

    async def clear(self) -> None:
        """Clear all cached entries."""
        count = len(self._cache)
        self._cache.clear()
        logger.info(f"[RESULT_CACHE] Cleared {count} entries")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, hit_rate, size, etc.
        """
        total = self._hits + self._misses
        return {
            "backend": "memory",
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 4) if total > 0 else 0.0,
            "size": len(self._cache),
            "max_size": self.max_size,
            "default_ttl_seconds": self.default_ttl_seconds,
            "evictions": self._evictions,
        }


class RedisResultCache(ResultCache):
    """
    Redis-backed result cache shared across instances.

    Redis failures are logged and treated as misses / no-ops; the engine
    then falls through to the record store.
    """

    NAMESPACE = "shipping_engine:"

    def __init__(
        self,
        default_ttl_seconds: int = 300,
        redis_getter: Callable = get_redis,
    ):
        super().__init__(default_ttl_seconds=default_ttl_seconds, max_size=0)
        self._get_redis = redis_getter

    async def get(self, key: str) -> Optional[Any]:
        client = await self._get_redis()
        if not client:
            self._misses += 1
            return None

        try:
            data = await client.get(f"{self.NAMESPACE}{key}")
        except Exception as e:
            logger.warning(f"[RESULT_CACHE] Redis get failed for {key}: {e}")
            self._misses += 1
            return None

        if data is None:
            self._misses += 1
            return None

        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return

        client = await self._get_redis()
        if not client:
            return

        try:
            await client.setex(f"{self.NAMESPACE}{key}", ttl, json.dumps(value))
        except Exception as e:
            logger.warning(f"[RESULT_CACHE] Redis set failed for {key}: {e}")

    async def invalidate(self, prefixes: Iterable[str]) -> int:
        client = await self._get_redis()
        if not client:
            return 0

        removed = 0
        try:
            for prefix in prefixes:
                removed += await client.delete(f"{self.NAMESPACE}{prefix}")
                pattern = f"{self.NAMESPACE}{prefix}{KEY_SEPARATOR}*"
                async for key in client.scan_iter(match=pattern):
                    removed += await client.delete(key)
        except Exception as e:
            logger.warning(f"[RESULT_CACHE] Redis invalidation failed for {list(prefixes)}: {e}")

        if removed:
            logger.info(f"[RESULT_CACHE] Invalidated {removed} Redis entries")
        return removed

    async def clear(self) -> None:
        client = await self._get_redis()
        if not client:
            return

        try:
            async for key in client.scan_iter(match=f"{self.NAMESPACE}*"):
                await client.delete(key)
        except Exception as e:
            logger.warning(f"[RESULT_CACHE] Redis clear failed: {e}")

    def get_stats(self) -> Dict[str, Any]:
        stats = super().get_stats()
        stats["backend"] = "redis"
        stats.pop("size")
        stats.pop("max_size")
        stats.pop("evictions")
        return stats


def build_result_cache() -> ResultCache:
    """Create the result cache configured by settings."""
    if settings.REDIS_URL:
        return RedisResultCache(default_ttl_seconds=settings.SHIPPING_ZONES_CACHE_TTL_SECONDS)
    return ResultCache(
        default_ttl_seconds=settings.SHIPPING_ZONES_CACHE_TTL_SECONDS,
        max_size=settings.SHIPPING_CACHE_MAX_SIZE,
    )
