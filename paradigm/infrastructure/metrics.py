"""Metrics Registry — Prometheus counters and histograms for recompute phases.

Invariants:
    - counter(name) / histogram(name) return the same instrument for the same name
    - Dotted engine names map to Prometheus names ("paradigm.persist" → paradigm_persist)
    - snapshot() is a plain dict keyed by the dotted names, safe to log or serialize

Design Decisions:
    - One CollectorRegistry per MetricsRegistry: coordinators and tests never
      collide on the process-global default registry
    - Phase histograms are in milliseconds; buckets span sub-ms pure steps
      up to minute-long COPY loads
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

PHASE_BUCKETS_MS = (
    1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000, 60000,
)


def prometheus_name(name: str) -> str:
    return name.replace(".", "_").replace("-", "_")


class MetricsRegistry:
    """Named counters and histograms over a private CollectorRegistry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}

    def counter(self, name: str) -> Counter:
        if name not in self._counters:
            self._counters[name] = Counter(
                prometheus_name(name), f"Paradigm engine counter {name}",
                registry=self.registry,
            )
        return self._counters[name]

    def histogram(self, name: str) -> Histogram:
        if name not in self._histograms:
            self._histograms[name] = Histogram(
                prometheus_name(name), f"Paradigm engine phase {name} (ms)",
                buckets=PHASE_BUCKETS_MS, registry=self.registry,
            )
        return self._histograms[name]

    def _sample(self, name: str) -> float:
        return self.registry.get_sample_value(name) or 0.0

    def snapshot(self) -> dict:
        return {
            "counters": {
                name: self._sample(f"{prometheus_name(name)}_total")
                for name in self._counters
            },
            "histograms": {
                name: {
                    "count": self._sample(f"{prometheus_name(name)}_count"),
                    "total_ms": self._sample(f"{prometheus_name(name)}_sum"),
                }
                for name in self._histograms
            },
        }

    def exposition(self) -> bytes:
        """Prometheus text format, for a host process that scrapes or pushes."""
        return generate_latest(self.registry)


@dataclass
class PhaseTimer:
    elapsed_ms: float = 0.0


@contextmanager
def time_phase(metrics, name: str) -> Iterator[PhaseTimer]:
    """Observe the block's wall time (ms) on histogram `name`, even on failure."""
    timer = PhaseTimer()
    start = time.perf_counter()
    try:
        yield timer
    finally:
        timer.elapsed_ms = (time.perf_counter() - start) * 1000
        metrics.histogram(name).observe(timer.elapsed_ms)
