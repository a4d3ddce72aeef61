"""Metrics module - Cache metrics from events."""

from roadstash_core.metrics.collector import (
    MetricsCollector,
    CacheMetrics,
    Operation,
)

__all__ = [
    "MetricsCollector",
    "CacheMetrics",
    "Operation",
]
