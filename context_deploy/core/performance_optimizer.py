# context_deploy/core/performance_optimizer.py
"""Execution strategy selection, result caching and timing"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from ..constants import (
    DEFAULT_STREAMING_THRESHOLD,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PARALLEL_THRESHOLD,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_CACHE_TTL,
    DEFAULT_CACHE_MAX_ENTRIES,
)

logger = logging.getLogger(__name__)


class DispatchMode(Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class IOMode(Enum):
    IN_MEMORY = "in-memory"
    STREAMING = "streaming"


@dataclass
class Workload:
    file_count: int
    total_bytes: int
    component_count: int = 1


@dataclass
class ExecutionPlan:
    dispatch: DispatchMode
    io: IOMode
    concurrency: int = 1
    chunk_size: int = DEFAULT_CHUNK_SIZE

    @property
    def streaming(self) -> bool:
        return self.io == IOMode.STREAMING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispatch": self.dispatch.value,
            "io": self.io.value,
            "concurrency": self.concurrency,
            "chunk_size": self.chunk_size
        }


class TTLCache:
    """Bounded cache whose entries expire after a fixed time-to-live

    When full, the least recently used entry is evicted. The clock is
    injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl: float = DEFAULT_CACHE_TTL,
                 max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return default
        expires_at, value = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return default
        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self.clock() + self.ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = compute()
            self.set(key, value)
        return value

    def evict_expired(self) -> int:
        """Drop expired entries and return how many were removed"""
        now = self.clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self.clock() < entry[0]

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0
        }


class PerformanceOptimizer:
    """Chooses how a deployment executes and records how long it took"""

    def __init__(self,
                 streaming_threshold: int = DEFAULT_STREAMING_THRESHOLD,
                 parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD,
                 max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
                 chunk_size: int = DEFAULT_CHUNK_SIZE,
                 cache: Optional[TTLCache] = None):
        self.streaming_threshold = streaming_threshold
        self.parallel_threshold = parallel_threshold
        self.max_concurrency = max_concurrency
        self.chunk_size = chunk_size
        self.cache = cache if cache is not None else TTLCache()
        self._started: Dict[str, float] = {}
        self.timings: Dict[str, float] = {}
        self.last_plan: Optional[ExecutionPlan] = None

    def select_strategy(self, workload: Workload, allow_parallel: bool = True) -> ExecutionPlan:
        """
        Pick dispatch and I/O modes for a workload

        Args:
            workload: Size of the deployment
            allow_parallel: False forces sequential dispatch (e.g. interactive prompting)

        Returns:
            ExecutionPlan
        """
        io = IOMode.STREAMING if workload.total_bytes > self.streaming_threshold else IOMode.IN_MEMORY

        if allow_parallel and workload.component_count > self.parallel_threshold:
            plan = ExecutionPlan(
                DispatchMode.PARALLEL, io,
                concurrency=min(self.max_concurrency, workload.component_count),
                chunk_size=self.chunk_size
            )
        else:
            plan = ExecutionPlan(DispatchMode.SEQUENTIAL, io, concurrency=1, chunk_size=self.chunk_size)

        logger.debug(
            f"Execution plan for {workload.component_count} component(s), "
            f"{workload.file_count} file(s), {workload.total_bytes} bytes: "
            f"{plan.dispatch.value}/{plan.io.value} x{plan.concurrency}"
        )
        self.last_plan = plan
        return plan

    def start_timer(self, name: str) -> None:
        self._started[name] = time.perf_counter()

    def stop_timer(self, name: str) -> float:
        """Stop a timer and return the elapsed milliseconds"""
        started = self._started.pop(name, None)
        if started is None:
            return 0.0
        elapsed = (time.perf_counter() - started) * 1000
        self.timings[name] = elapsed
        return elapsed

    def report(self) -> Dict[str, Any]:
        """Performance report for the most recent run"""
        return {
            "plan": self.last_plan.to_dict() if self.last_plan else None,
            "timings_ms": {k: round(v, 3) for k, v in self.timings.items()},
            "cache": self.cache.stats()
        }

    def reset(self) -> None:
        self._started.clear()
        self.timings.clear()
        self.last_plan = None
