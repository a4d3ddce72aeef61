"""RoadStash Metrics Collector - Cache Metrics from Events.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from roadstash_core.events import (
    CacheHit,
    CacheMissed,
    EventDispatcher,
    KeyForgotten,
    KeyWritten,
)

logger = logging.getLogger(__name__)


@dataclass
class CacheMetrics:
    """Cache metrics container.

    Attributes:
        hits: Cache hits
        misses: Cache misses
        writes: Records written
        deletes: Keys deleted
        bytes_written: Encoded bytes written
    """

    hits: int = 0
    misses: int = 0
    writes: int = 0
    deletes: int = 0
    bytes_written: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def total_ops(self) -> int:
        """Get total operations."""
        return self.hits + self.misses + self.writes + self.deletes

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Metrics dictionary
        """
        return {
            "hits": self.hits,
            "misses": self.misses,
            "writes": self.writes,
            "deletes": self.deletes,
            "bytes_written": self.bytes_written,
            "hit_rate": self.hit_rate,
            "total_ops": self.total_ops,
        }


@dataclass
class Operation:
    """One observed cache operation.

    Attributes:
        kind: hit, miss, write or delete
        key: Cache key
        ttl: Seconds until expiry (writes only)
        size: Encoded size in bytes (writes only)
        timestamp: When observed
    """

    kind: str
    key: str
    ttl: Optional[float] = None
    size: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


class MetricsCollector:
    """Collects cache metrics by listening to cache events.

    Keeps running counters and a bounded log of the most recent operations.

    Example:
        dispatcher = EventDispatcher()
        collector = MetricsCollector(dispatcher)
        cache = Cache.from_config(config, dispatcher=dispatcher)

        cache.get("user.1")
        print(f"Hit rate: {collector.get_metrics().hit_rate:.2%}")
    """

    def __init__(
        self,
        dispatcher: Optional[EventDispatcher] = None,
        max_operations: int = 100,
    ):
        """Initialize collector.

        Args:
            dispatcher: Dispatcher to attach to
            max_operations: Operations kept in the log
        """
        self._metrics = CacheMetrics()
        self._operations: Deque[Operation] = deque(maxlen=max_operations)
        self._lock = threading.RLock()

        if dispatcher is not None:
            self.attach(dispatcher)

    def attach(self, dispatcher: EventDispatcher) -> None:
        """Register listeners on a dispatcher."""
        dispatcher.listen(CacheHit, self.on_hit)
        dispatcher.listen(CacheMissed, self.on_miss)
        dispatcher.listen(KeyWritten, self.on_write)
        dispatcher.listen(KeyForgotten, self.on_delete)

    def on_hit(self, event: CacheHit) -> None:
        with self._lock:
            self._metrics.hits += 1
            self._operations.append(Operation("hit", event.key))

    def on_miss(self, event: CacheMissed) -> None:
        with self._lock:
            self._metrics.misses += 1
            self._operations.append(Operation("miss", event.key))

    def on_write(self, event: KeyWritten) -> None:
        with self._lock:
            self._metrics.writes += 1
            self._metrics.bytes_written += event.size
            self._operations.append(
                Operation("write", event.key, ttl=event.ttl, size=event.size)
            )

    def on_delete(self, event: KeyForgotten) -> None:
        with self._lock:
            self._metrics.deletes += 1
            self._operations.append(Operation("delete", event.key))

    def get_metrics(self) -> CacheMetrics:
        """Get a snapshot of current metrics.

        Returns:
            CacheMetrics instance
        """
        with self._lock:
            return CacheMetrics(**vars(self._metrics))

    def operations(self) -> List[Operation]:
        """Most recent operations, oldest first."""
        with self._lock:
            return list(self._operations)

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._metrics = CacheMetrics()
            self._operations.clear()

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus format.

        Returns:
            Prometheus-formatted metrics
        """
        metrics = self.get_metrics()
        lines = [
            "# HELP cache_hits_total Total cache hits",
            "# TYPE cache_hits_total counter",
            f"cache_hits_total {metrics.hits}",
            "",
            "# HELP cache_misses_total Total cache misses",
            "# TYPE cache_misses_total counter",
            f"cache_misses_total {metrics.misses}",
            "",
            "# HELP cache_writes_total Total records written",
            "# TYPE cache_writes_total counter",
            f"cache_writes_total {metrics.writes}",
            "",
            "# HELP cache_deletes_total Total keys deleted",
            "# TYPE cache_deletes_total counter",
            f"cache_deletes_total {metrics.deletes}",
            "",
            "# HELP cache_written_bytes_total Total encoded bytes written",
            "# TYPE cache_written_bytes_total counter",
            f"cache_written_bytes_total {metrics.bytes_written}",
            "",
            "# HELP cache_hit_rate Cache hit rate",
            "# TYPE cache_hit_rate gauge",
            f"cache_hit_rate {metrics.hit_rate:.4f}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        metrics = self.get_metrics()
        return f"MetricsCollector(hits={metrics.hits}, hit_rate={metrics.hit_rate:.2%})"


__all__ = ["MetricsCollector", "CacheMetrics", "Operation"]
