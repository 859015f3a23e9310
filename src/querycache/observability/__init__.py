"""Observability for the query cache.

Provides metrics and structured logging:
- Prometheus counters for hits, misses, bypasses and invalidations
- JSON or console log formats carrying table, scope and key fields
"""

from querycache.observability.logging import ConsoleFormatter, JsonFormatter, configure_logging
from querycache.observability.metrics import CacheMetrics, NoOpMetric, get_metrics

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    "ConsoleFormatter",
    # Metrics
    "CacheMetrics",
    "NoOpMetric",
    "get_metrics",
]
