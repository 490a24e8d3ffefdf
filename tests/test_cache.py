import asyncio

import pytest

from moviehub.utils.cache import AppCaches, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestBoundedCache:

    def test_capacity_plus_one_evicts_oldest_insert(self, clock):
        cache = TTLCache(max_size=3, ttl_seconds=60, clock=clock)
        for key in ["a", "b", "c", "d"]:
            cache.set(key, key.upper())

        assert len(cache) == 3
        assert cache.keys() == ["b", "c", "d"]
        assert cache.get("a") is None
        assert cache.get_stats()["evictions"] == 1

    def test_reading_does_not_refresh_eviction_order(self, clock):
        cache = TTLCache(max_size=2, ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.keys() == ["b", "c"]

    def test_resetting_a_key_makes_it_newest(self, clock):
        cache = TTLCache(max_size=2, ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)

        assert cache.keys() == ["a", "c"]
        assert cache.get("a") == 10

    def test_entries_expire_after_ttl(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=10, clock=clock)
        cache.set("a", 1)

        clock.now = 9.9
        assert cache.get("a") == 1

        clock.now = 10
        assert cache.get("a") is None
        assert "a" not in cache.keys()

    def test_purge_expired(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=10, clock=clock)
        cache.set("old", 1)
        clock.now = 5
        cache.set("new", 2)
        clock.now = 12

        assert cache.purge_expired() == 1
        assert cache.keys() == ["new"]

    def test_clear_and_stats(self, clock):
        cache = TTLCache(max_size=5, ttl_seconds=30, name="detail", clock=clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["name"] == "detail"
        assert stats["size"] == 1
        assert stats["max_size"] == 5
        assert stats["ttl_seconds"] == 30
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["keys"] == ["a"]

        assert cache.clear() == 1
        assert len(cache) == 0
        assert cache.get_stats()["hits"] == 0

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            TTLCache(max_size=0)
        with pytest.raises(ValueError):
            TTLCache(ttl_seconds=0)


class TestGetOrFetch:

    async def test_concurrent_cold_reads_share_one_fetch(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
        calls = []

        async def fetcher():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "value"

        results = await asyncio.gather(*[cache.get_or_fetch("k", fetcher) for _ in range(5)])

        assert results == ["value"] * 5
        assert len(calls) == 1
        assert cache.get_stats()["coalesced"] == 4
        assert cache.in_flight() == 0

        assert await cache.get_or_fetch("k", fetcher) == "value"
        assert len(calls) == 1

    async def test_none_is_not_cached(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
        calls = []

        async def fetcher():
            calls.append(1)
            return None

        assert await cache.get_or_fetch("missing", fetcher) is None
        assert await cache.get_or_fetch("missing", fetcher) is None
        assert len(calls) == 2
        assert len(cache) == 0

    async def test_fetch_errors_reach_every_waiter_and_are_not_cached(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)

        async def failing():
            await asyncio.sleep(0.01)
            raise RuntimeError("storage down")

        results = await asyncio.gather(
            cache.get_or_fetch("k", failing),
            cache.get_or_fetch("k", failing),
            return_exceptions=True,
        )

        assert all(isinstance(result, RuntimeError) for result in results)
        assert len(cache) == 0
        assert cache.in_flight() == 0

        async def working():
            return "ok"

        assert await cache.get_or_fetch("k", working) == "ok"

    async def test_expired_entry_is_refetched(self, clock):
        cache = TTLCache(max_size=10, ttl_seconds=10, clock=clock)
        values = iter(["first", "second"])

        async def fetcher():
            return next(values)

        assert await cache.get_or_fetch("k", fetcher) == "first"
        clock.now = 11
        assert await cache.get_or_fetch("k", fetcher) == "second"


def test_app_caches_from_env(monkeypatch):
    monkeypatch.setenv("MOVIE_CACHE_MAX_SIZE", "5")
    monkeypatch.setenv("MOVIE_CACHE_TTL_SECONDS", "60")

    caches = AppCaches.from_env()

    assert caches.movie_detail.max_size == 5
    assert caches.movie_detail.ttl_seconds == 60
    assert set(caches.get_stats()) == {"movie_detail", "genres", "counts", "monthly"}


def test_app_caches_are_independent():
    first = AppCaches.from_env()
    second = AppCaches.from_env()
    first.movie_detail.set("a", 1)

    assert second.movie_detail.get("a") is None
    assert first.clear_all() == 1
