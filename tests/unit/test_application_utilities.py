"""Tests for the analytics cache and per-user locks."""

import asyncio

from soundstats.application.utilities import AnalyticsCache, UserLockRegistry


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestAnalyticsCache:
    """Test expiry, eviction and compute-on-miss."""

    def test_entries_expire(self):
        clock = FakeClock()
        cache = AnalyticsCache(ttl_seconds=10, max_entries=4, clock=clock)
        cache.set("key", [1, 2])

        clock.now = 9.9
        assert cache.get("key") == [1, 2]
        clock.now = 10.0
        assert cache.get("key") is None
        assert len(cache) == 0

    def test_oldest_entry_is_evicted(self):
        cache = AnalyticsCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    async def test_get_or_compute_computes_once(self):
        cache = AnalyticsCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
        calls = []

        async def compute():
            calls.append(1)
            return "value"

        assert await cache.get_or_compute(("streaks", "u1"), compute) == "value"
        assert await cache.get_or_compute(("streaks", "u1"), compute) == "value"
        assert len(calls) == 1

    def test_clear(self):
        cache = AnalyticsCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestUserLockRegistry:
    """Test per-user lock allocation."""

    def test_one_lock_per_user(self):
        registry = UserLockRegistry()

        assert registry.lock_for("alice") is registry.lock_for("alice")
        assert registry.lock_for("alice") is not registry.lock_for("bob")
        assert len(registry) == 2

    async def test_lock_serializes_same_user(self):
        registry = UserLockRegistry()
        order = []

        async def hold(tag):
            async with registry.lock_for("alice"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0)
                order.append(f"{tag}-end")

        await asyncio.gather(hold("a"), hold("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]
