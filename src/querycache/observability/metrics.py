"""Prometheus metrics for the query cache.

Provides cache metrics collection and exposure:
- Hits, misses and bypasses per table
- Invalidations per table and scope kind (table or group)
- Store and serialization failures

Usage:
    from querycache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.hits_total.labels(table="users").inc()
"""

from __future__ import annotations

import logging
from typing import Any

from prometheus_client import CollectorRegistry, Counter, generate_latest

from querycache.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass


class CacheMetrics:
    """Counters describing cache effectiveness and health.

    Each instance owns its CollectorRegistry, so several instances (one per
    test, for example) never collide on metric names.
    """

    def __init__(self, enabled: bool = True, registry: CollectorRegistry | None = None) -> None:
        self.enabled = enabled
        self.registry: CollectorRegistry | None = None

        if not enabled:
            noop = NoOpMetric()
            self.hits_total: Any = noop
            self.misses_total: Any = noop
            self.bypass_total: Any = noop
            self.invalidations_total: Any = noop
            self.backend_errors_total: Any = noop
            self.serialization_errors_total: Any = noop
            logger.info("Metrics are disabled")
            return

        self.registry = registry or CollectorRegistry()

        self.hits_total = Counter(
            "querycache_hits_total",
            "Reads served from the cache",
            ["table"],
            registry=self.registry,
        )
        self.misses_total = Counter(
            "querycache_misses_total",
            "Reads that missed the cache and populated it",
            ["table"],
            registry=self.registry,
        )
        self.bypass_total = Counter(
            "querycache_bypass_total",
            "Reads executed without consulting the cache",
            ["table", "reason"],
            registry=self.registry,
        )
        self.invalidations_total = Counter(
            "querycache_invalidations_total",
            "Scopes invalidated by writes or explicit flushes",
            ["table", "scope"],
            registry=self.registry,
        )
        self.backend_errors_total = Counter(
            "querycache_backend_errors_total",
            "Failed cache store operations",
            ["operation"],
            registry=self.registry,
        )
        self.serialization_errors_total = Counter(
            "querycache_serialization_errors_total",
            "Result sets that could not be encoded or decoded",
            ["table"],
            registry=self.registry,
        )

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self.registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self.registry)


# Global metrics registry
_metrics: CacheMetrics | None = None


def get_metrics() -> CacheMetrics:
    """Get the process-wide cache metrics.

    Created on first access according to settings.enable_metrics.
    """
    global _metrics
    if _metrics is None:
        _metrics = CacheMetrics(enabled=settings.enable_metrics)
    return _metrics
