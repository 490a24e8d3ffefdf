"""
Caching Utilities
=================
In-memory TTL cache used in front of MongoDB reads.

Features:
- Fixed capacity with oldest-first eviction (insertion order)
- TTL (Time To Live) expiry checked on read
- Coalescing of concurrent fetches for the same cold key
- Statistics for the admin/ISR monitor

Usage:
    from moviehub.utils.cache import TTLCache

    movie_cache = TTLCache(max_size=100, ttl_seconds=86400, name="movie_detail")

    movie = await movie_cache.get_or_fetch(movie_id, lambda: load_movie(db, movie_id))

    movie_cache.delete(movie_id)   # Invalidate one entry
    movie_cache.clear()            # Invalidate everything

Each cache is an explicit object: build it once per process (see AppCaches)
and pass it to the services that need it.
"""
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional
import asyncio
import os
import time
import logging

logger = logging.getLogger(__name__)


class TTLCache:
    """
    Bounded in-memory cache with TTL expiry and single-flight fetches.
    For production with multiple workers, each worker holds its own copy.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 86400,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache store.

        Args:
            max_size: Maximum number of entries kept (oldest evicted first)
            ttl_seconds: Maximum age of an entry before it is refetched
            name: Label used in logs and statistics
            clock: Monotonic time source (injectable for tests)
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.name = name
        self._cache: "OrderedDict[Hashable, tuple[Any, float]]" = OrderedDict()
        self._pending: Dict[Hashable, asyncio.Task] = {}
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._evictions = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        return self._peek(key) is not None

    def _is_fresh(self, stored_at: float) -> bool:
        return (self._clock() - stored_at) < self._ttl

    def _peek(self, key: Hashable) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        return value if self._is_fresh(stored_at) else None

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Get value from cache if present and younger than the TTL.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        value, stored_at = entry

        # Check if expired
        if not self._is_fresh(stored_at):
            del self._cache[key]
            self._misses += 1
            logger.debug(f"[{self.name}] Expired key: {key}")
            return None

        self._hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        """
        Store a value stamped with the current time.

        Re-setting a key moves it to the newest position. When the cache is
        full the oldest inserted entry is evicted.
        """
        if key in self._cache:
            del self._cache[key]

        self._cache[key] = (value, self._clock())

        while len(self._cache) > self._max_size:
            oldest_key, _ = self._cache.popitem(last=False)
            self._evictions += 1
            logger.debug(f"[{self.name}] Evicted cache key: {oldest_key}")

    def delete(self, key: Hashable) -> None:
        """Delete a specific cache key."""
        self._cache.pop(key, None)

    def clear(self) -> int:
        """Clear all entries. Returns the number of entries removed."""
        size = len(self._cache)
        self._cache.clear()
        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._evictions = 0
        logger.info(f"[{self.name}] Cleared {size} entries")
        return size

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        expired = [
            key for key, (_, stored_at) in self._cache.items()
            if not self._is_fresh(stored_at)
        ]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.debug(f"[{self.name}] Purged {len(expired)} expired entries")
        return len(expired)

    def keys(self) -> List[Hashable]:
        """Keys currently stored, oldest first."""
        return list(self._cache.keys())

    async def get_or_fetch(
        self,
        key: Hashable,
        fetcher: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value for key, or run fetcher and cache its result.

        Concurrent callers asking for the same cold key share one in-flight
        fetch instead of each hitting the database. A fetcher returning None
        is not cached. Exceptions from the fetcher propagate to every waiter.

        Args:
            key: Cache key
            fetcher: Zero-argument coroutine function producing the value

        Returns:
            Cached or freshly fetched value
        """
        cached_value = self.get(key)
        if cached_value is not None:
            logger.debug(f"[{self.name}] Cache hit for {key}")
            return cached_value

        pending = self._pending.get(key)
        if pending is not None:
            self._coalesced += 1
            logger.debug(f"[{self.name}] Joining in-flight fetch for {key}")
            return await asyncio.shield(pending)

        logger.debug(f"[{self.name}] Cache miss for {key}")
        task = asyncio.ensure_future(fetcher())
        self._pending[key] = task
        task.add_done_callback(lambda done: self._complete_fetch(key, done))
        return await asyncio.shield(task)

    def _complete_fetch(self, key: Hashable, task: asyncio.Task) -> None:
        # Runs before any awaiting caller resumes, so the value is visible to them.
        if self._pending.get(key) is task:
            del self._pending[key]
        if task.cancelled() or task.exception() is not None:
            return
        value = task.result()
        if value is not None:
            self.set(key, value)

    def in_flight(self) -> int:
        """Number of fetches currently running."""
        return len(self._pending)

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'name': self.name,
            'size': len(self._cache),
            'max_size': self._max_size,
            'ttl_seconds': self._ttl,
            'hits': self._hits,
            'misses': self._misses,
            'coalesced': self._coalesced,
            'evictions': self._evictions,
            'in_flight': len(self._pending),
            'hit_rate': f"{hit_rate:.2f}%",
            'keys': [str(key) for key in self._cache.keys()],
        }


@dataclass
class AppCaches:
    """Every cache the application owns, built once per process."""
    movie_detail: TTLCache
    genres: TTLCache
    counts: TTLCache
    monthly: TTLCache

    @classmethod
    def from_env(cls, clock: Callable[[], float] = time.monotonic) -> "AppCaches":
        return cls(
            movie_detail=TTLCache(
                max_size=int(os.getenv("MOVIE_CACHE_MAX_SIZE", "100")),
                ttl_seconds=float(os.getenv("MOVIE_CACHE_TTL_SECONDS", "86400")),
                name="movie_detail",
                clock=clock,
            ),
            genres=TTLCache(
                max_size=1,
                ttl_seconds=float(os.getenv("GENRE_CACHE_TTL_SECONDS", "600")),
                name="genres",
                clock=clock,
            ),
            counts=TTLCache(
                max_size=8,
                ttl_seconds=float(os.getenv("COUNT_CACHE_TTL_SECONDS", "300")),
                name="counts",
                clock=clock,
            ),
            monthly=TTLCache(
                max_size=8,
                ttl_seconds=float(os.getenv("MONTHLY_CACHE_TTL_SECONDS", "1800")),
                name="monthly",
                clock=clock,
            ),
        )

    def all(self) -> List[TTLCache]:
        return [self.movie_detail, self.genres, self.counts, self.monthly]

    def get_stats(self) -> Dict[str, dict]:
        return {cache.name: cache.get_stats() for cache in self.all()}

    def clear_all(self) -> int:
        return sum(cache.clear() for cache in self.all())

    def purge_expired(self) -> int:
        return sum(cache.purge_expired() for cache in self.all())
