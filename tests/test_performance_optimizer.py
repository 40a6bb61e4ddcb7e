"""Tests for execution planning and caching"""

import pytest

from context_deploy.core.performance_optimizer import (
    DispatchMode,
    IOMode,
    PerformanceOptimizer,
    TTLCache,
    Workload,
)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestTTLCache:
    def test_entries_expire(self, clock):
        cache = TTLCache(ttl=10, clock=clock)
        cache.set("a", 1)

        clock.now += 9.9
        assert cache.get("a") == 1

        clock.now += 0.1
        assert cache.get("a") is None
        assert "a" not in cache
        assert len(cache) == 0

    def test_least_recently_used_is_evicted(self, clock):
        cache = TTLCache(ttl=60, max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_get_or_compute_runs_once(self, clock):
        cache = TTLCache(ttl=60, clock=clock)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_cached_none_is_a_hit(self, clock):
        cache = TTLCache(ttl=60, clock=clock)
        calls = []

        cache.get_or_compute("k", lambda: calls.append(1))
        cache.get_or_compute("k", lambda: calls.append(1))

        assert len(calls) == 1

    def test_evict_expired(self, clock):
        cache = TTLCache(ttl=5, clock=clock)
        cache.set("old", 1)
        clock.now += 3
        cache.set("new", 2)
        clock.now += 3

        assert cache.evict_expired() == 1
        assert len(cache) == 1

    def test_stats(self, clock):
        cache = TTLCache(ttl=60, clock=clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")

        assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1, "hit_rate": 0.5}


class TestSelectStrategy:
    @pytest.fixture
    def optimizer(self):
        return PerformanceOptimizer(streaming_threshold=1000, parallel_threshold=2, max_concurrency=3)

    def test_small_workload_is_sequential_in_memory(self, optimizer):
        plan = optimizer.select_strategy(Workload(file_count=1, total_bytes=10, component_count=1))

        assert plan.dispatch == DispatchMode.SEQUENTIAL
        assert plan.io == IOMode.IN_MEMORY
        assert plan.concurrency == 1

    def test_large_content_streams(self, optimizer):
        plan = optimizer.select_strategy(Workload(file_count=1, total_bytes=1001))

        assert plan.streaming

    def test_many_components_run_in_parallel(self, optimizer):
        plan = optimizer.select_strategy(Workload(file_count=10, total_bytes=10, component_count=5))

        assert plan.dispatch == DispatchMode.PARALLEL
        assert plan.concurrency == 3

    def test_parallel_can_be_disallowed(self, optimizer):
        plan = optimizer.select_strategy(Workload(file_count=10, total_bytes=10, component_count=5),
                                         allow_parallel=False)

        assert plan.dispatch == DispatchMode.SEQUENTIAL

    def test_report(self, optimizer):
        optimizer.select_strategy(Workload(file_count=1, total_bytes=10))
        optimizer.start_timer("total")
        elapsed = optimizer.stop_timer("total")

        report = optimizer.report()
        assert elapsed >= 0
        assert report["plan"]["dispatch"] == "sequential"
        assert "total" in report["timings_ms"]
        assert set(report["cache"]) == {"entries", "hits", "misses", "hit_rate"}
        assert optimizer.stop_timer("never-started") == 0.0
