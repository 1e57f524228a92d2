from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class Counter:
    name: str
    help: str
    values: Dict[Tuple, float] = field(default_factory=dict)

    def inc(self, value: float = 1.0, **labels: Any) -> None:
        key = tuple(sorted(labels.items()))
        self.values[key] = self.values.get(key, 0.0) + value

    def get(self, **labels: Any) -> float:
        return self.values.get(tuple(sorted(labels.items())), 0.0)

    def total(self) -> float:
        return sum(self.values.values())

    def reset(self) -> None:
        self.values.clear()


@dataclass
class Histogram:
    name: str
    help: str
    buckets: List[float]
    counts: Dict[Tuple, List[int]] = field(default_factory=dict)

    def observe(self, val: float, **labels: Any) -> None:
        key = tuple(sorted(labels.items()))
        if key not in self.counts:
            # last slot counts observations above the largest bucket
            self.counts[key] = [0 for _ in range(len(self.buckets) + 1)]
        for i, b in enumerate(self.buckets):
            if val <= b:
                self.counts[key][i] += 1
                break
        else:
            self.counts[key][-1] += 1

    def reset(self) -> None:
        self.counts.clear()


# Predefined metrics
cache_requests_total = Counter("cache_requests_total", "Cache lookups by backend and result (hit/miss)")
cache_fallback_total = Counter("cache_fallback_total", "Remote cache failures that fell back to memory")
cache_evictions_total = Counter("cache_evictions_total", "LRU evictions from the in-process cache")
cache_remote_latency_seconds = Histogram(
    "cache_remote_latency_seconds",
    "Remote cache operation latency",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

ALL_METRICS: List[Any] = [
    cache_requests_total,
    cache_fallback_total,
    cache_evictions_total,
    cache_remote_latency_seconds,
]


def reset_all() -> None:
    for metric in ALL_METRICS:
        metric.reset()
