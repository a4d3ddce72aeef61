"""RoadStash Warmup - Cache Warming.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from roadstash_core.exceptions import CacheError

if TYPE_CHECKING:
    from roadstash_core.cache.cache import Cache, Expiry

logger = logging.getLogger(__name__)


@dataclass
class WarmupConfig:
    """Configuration for cache warmup.

    Attributes:
        batch_size: Descriptors warmed per batch
        delay_between_batches: Seconds slept between batches
    """

    batch_size: int = 10
    delay_between_batches: float = 0.0001


@dataclass
class WarmupStats:
    """Warmup run statistics.

    Attributes:
        total: Registered descriptors considered
        warmed: Successfully warmed
        skipped: Skipped because the key was already cached
        failed: Producer raised or the write failed
        batches: Batches processed (batched runs only)
        duration_seconds: Wall time of the run
    """

    total: int = 0
    warmed: int = 0
    skipped: int = 0
    failed: int = 0
    batches: int = 0
    duration_seconds: float = 0.0

    @property
    def success_rate(self) -> float:
        """Get success rate."""
        attempted = self.warmed + self.failed
        return self.warmed / attempted if attempted > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WarmupTask:
    """A registered warming descriptor."""

    key: str
    producer: Callable[[], Any]
    ttl: Any = None
    tags: List[str] = field(default_factory=list)


class CacheWarmer:
    """Pre-populates a cache from registered producers.

    Registration has no side effects; nothing is produced until one of the
    ``warm*`` methods runs. A failing producer is logged and counted, never
    raised.

    Example:
        warmer = cache.warmer()
        warmer.register("settings", load_settings, ttl=3600)
        warmer.register("1", lambda: load_user(1), tags=["users"])

        stats = warmer.warm_in_batches(batch_size=50)
        print(stats.to_dict())
    """

    def __init__(
        self,
        cache: "Cache",
        config: Optional[WarmupConfig] = None,
    ):
        """Initialize warmer.

        Args:
            cache: Cache to warm
            config: Warmup configuration
        """
        self.cache = cache
        self.config = config or WarmupConfig()
        self._tasks: List[WarmupTask] = []
        self._lock = threading.Lock()

    def register(
        self,
        key: str,
        producer: Callable[[], Any],
        ttl: "Expiry" = None,
        tags: Optional[List[str]] = None,
    ) -> "CacheWarmer":
        """Register a key to warm.

        Args:
            key: Cache key
            producer: Called without arguments to compute the value
            ttl: TTL for the warmed value
            tags: Tags to store the value under

        Returns:
            Self for chaining
        """
        with self._lock:
            self._tasks.append(WarmupTask(key, producer, ttl, list(tags or [])))
        return self

    def warm(
        self,
        key: str,
        producer: Callable[[], Any],
        ttl: "Expiry" = None,
        tags: Optional[List[str]] = None,
    ) -> bool:
        """Produce and store one value.

        Returns:
            True if the value was produced and written
        """
        try:
            value = producer()
            target = self.cache.tags(tags) if tags else self.cache
            if target.put(key, value, ttl):
                return True
            logger.error(f"Failed to store warmed value for {key}")
            return False
        except Exception as e:
            logger.error(f"Failed to warm {key}: {e}")
            return False

    def warm_all(self, force: bool = False) -> WarmupStats:
        """Warm every registered key.

        Args:
            force: Re-warm keys that are already cached

        Returns:
            Warmup statistics
        """
        tasks = self._snapshot()
        stats = WarmupStats(total=len(tasks))
        started = time.perf_counter()

        logger.info(f"Starting warmup of {len(tasks)} keys")
        for task in tasks:
            self._run(task, force, stats)

        stats.duration_seconds = time.perf_counter() - started
        self._log_completed(stats)
        return stats

    def warm_in_batches(
        self,
        batch_size: Optional[int] = None,
        force: bool = False,
    ) -> WarmupStats:
        """Warm every registered key in batches, pausing between batches.

        Args:
            batch_size: Descriptors per batch, defaults to the configured size
            force: Re-warm keys that are already cached

        Returns:
            Warmup statistics including the batch count
        """
        batch_size = batch_size or self.config.batch_size
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        tasks = self._snapshot()
        stats = WarmupStats(total=len(tasks))
        started = time.perf_counter()

        batches = [
            tasks[i:i + batch_size]
            for i in range(0, len(tasks), batch_size)
        ]
        logger.info(f"Starting warmup of {len(tasks)} keys in {len(batches)} batches")

        for index, batch in enumerate(batches):
            for task in batch:
                self._run(task, force, stats)
            stats.batches += 1

            if index < len(batches) - 1 and self.config.delay_between_batches > 0:
                time.sleep(self.config.delay_between_batches)

        stats.duration_seconds = time.perf_counter() - started
        self._log_completed(stats)
        return stats

    def clear(self) -> None:
        """Drop every registered descriptor."""
        with self._lock:
            self._tasks.clear()

    def count(self) -> int:
        """Number of registered descriptors."""
        return len(self._tasks)

    def _snapshot(self) -> List[WarmupTask]:
        with self._lock:
            return list(self._tasks)

    def _run(self, task: WarmupTask, force: bool, stats: WarmupStats) -> None:
        try:
            cached = not force and self._is_cached(task)
        except CacheError as e:
            logger.error(f"Failed to warm {task.key}: {e}")
            stats.failed += 1
            return

        if cached:
            stats.skipped += 1
            return

        if self.warm(task.key, task.producer, task.ttl, task.tags):
            stats.warmed += 1
        else:
            stats.failed += 1

    def _is_cached(self, task: WarmupTask) -> bool:
        if task.tags:
            return self.cache.tags(task.tags).has(task.key)
        return self.cache.has(task.key)

    def _log_completed(self, stats: WarmupStats) -> None:
        logger.info(
            f"Warmup completed: {stats.warmed} warmed, "
            f"{stats.failed} failed, {stats.skipped} skipped"
        )

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"CacheWarmer(tasks={len(self._tasks)})"


__all__ = ["CacheWarmer", "WarmupConfig", "WarmupStats", "WarmupTask"]
