"""
Operation metrics for the extraction engine.

The recorder is mutated once per completed operation and read through an
immutable MetricsSnapshot, so readers never observe a half-applied update.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class SelectorStats:
    """Per-selector attempt counters"""

    attempts: int = 0
    successes: int = 0

    @property
    def success_rate(self) -> float:
        return self.successes / self.attempts if self.attempts else 0.0


@dataclass
class ExtractionMetrics:
    """Container for mutable engine counters"""

    # Operation counters
    total_ops: int = 0
    success_ops: int = 0
    fail_ops: int = 0
    fallback_ops: int = 0

    # Timing metrics (seconds)
    total_elapsed_time: float = 0.0
    average_elapsed_time: float = 0.0

    # Cache metrics
    cache_hits: int = 0
    cache_misses: int = 0

    # Breakdown
    per_operation_count: defaultdict[str, int] = field(
        default_factory=lambda: defaultdict(int)
    )
    per_selector: defaultdict[str, SelectorStats] = field(
        default_factory=lambda: defaultdict(SelectorStats)
    )


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time, read-only copy of the engine metrics."""

    total_ops: int
    success_ops: int
    fail_ops: int
    average_elapsed_time: float
    per_selector_success_rate: MappingProxyType
    per_selector_attempts: MappingProxyType
    per_operation_count: MappingProxyType
    cache_hits: int
    cache_misses: int
    cache_hit_ratio: float
    fallback_usage_rate: float

    @property
    def success_rate(self) -> float:
        return self.success_ops / self.total_ops if self.total_ops else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_ops": self.total_ops,
            "success_ops": self.success_ops,
            "fail_ops": self.fail_ops,
            "success_rate": self.success_rate,
            "average_elapsed_time": self.average_elapsed_time,
            "per_selector_success_rate": dict(self.per_selector_success_rate),
            "per_selector_attempts": dict(self.per_selector_attempts),
            "per_operation_count": dict(self.per_operation_count),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_ratio": self.cache_hit_ratio,
            "fallback_usage_rate": self.fallback_usage_rate,
        }


class MetricsRecorder:
    """Thread-safe recorder of operation, selector and cache statistics."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._metrics = ExtractionMetrics()
        self._lock = threading.RLock()

    def record_operation(
        self,
        operation: str,
        success: bool,
        elapsed_time: float,
        used_fallback: bool = False,
    ) -> None:
        """
        Record one completed operation.

        Args:
            operation: Operation bucket name
            success: Whether the operation produced a value
            elapsed_time: Wall time spent, in seconds
            used_fallback: Whether a document-wide fallback produced the value
        """
        if not self.enabled:
            return

        with self._lock:
            metrics = self._metrics
            metrics.total_ops += 1
            if success:
                metrics.success_ops += 1
            else:
                metrics.fail_ops += 1
            if used_fallback:
                metrics.fallback_ops += 1

            metrics.per_operation_count[operation] += 1
            metrics.total_elapsed_time += elapsed_time
            # Running average
            metrics.average_elapsed_time = (
                metrics.average_elapsed_time * (metrics.total_ops - 1) + elapsed_time
            ) / metrics.total_ops

    def record_selector(self, selector: str, success: bool) -> None:
        if not self.enabled:
            return

        with self._lock:
            stats = self._metrics.per_selector[selector]
            stats.attempts += 1
            if success:
                stats.successes += 1

    def record_cache_hit(self) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._metrics.cache_hits += 1

    def record_cache_miss(self) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._metrics.cache_misses += 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            metrics = self._metrics
            cache_lookups = metrics.cache_hits + metrics.cache_misses
            return MetricsSnapshot(
                total_ops=metrics.total_ops,
                success_ops=metrics.success_ops,
                fail_ops=metrics.fail_ops,
                average_elapsed_time=metrics.average_elapsed_time,
                per_selector_success_rate=MappingProxyType(
                    {
                        selector: stats.success_rate
                        for selector, stats in metrics.per_selector.items()
                    }
                ),
                per_selector_attempts=MappingProxyType(
                    {
                        selector: stats.attempts
                        for selector, stats in metrics.per_selector.items()
                    }
                ),
                per_operation_count=MappingProxyType(
                    dict(metrics.per_operation_count)
                ),
                cache_hits=metrics.cache_hits,
                cache_misses=metrics.cache_misses,
                cache_hit_ratio=(
                    metrics.cache_hits / cache_lookups if cache_lookups else 0.0
                ),
                fallback_usage_rate=(
                    metrics.fallback_ops / metrics.total_ops
                    if metrics.total_ops
                    else 0.0
                ),
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics = ExtractionMetrics()
        logger.info("Extraction metrics reset")
