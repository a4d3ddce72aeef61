"""RoadStash Clock - Time Sources for Expiry Decisions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


class Clock(ABC):
    """Source of "now" for expiry calculations.

    All instants are timezone-aware UTC datetimes.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get current instant.

        Returns:
            Aware UTC datetime
        """
        pass

    def timestamp(self) -> float:
        """Get current unix timestamp in seconds."""
        return self.now().timestamp()


class SystemClock(Clock):
    """Wall clock backed by the operating system."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return "SystemClock()"


class FrozenClock(Clock):
    """Clock pinned to a fixed instant, moved only explicitly.

    Example:
        clock = FrozenClock()
        cache = Cache(CacheItemPool(MemoryStore(clock=clock)))
        cache.put("key", "value", ttl=60)
        clock.travel(61)
        cache.get("key")  # None
    """

    def __init__(self, frozen_at: Optional[Union[datetime, float]] = None):
        """Initialize frozen clock.

        Args:
            frozen_at: Instant or unix timestamp, defaults to current time
        """
        self._lock = threading.Lock()
        self._now = self._coerce(frozen_at) if frozen_at is not None else datetime.now(timezone.utc)

    @staticmethod
    def _coerce(value: Union[datetime, float]) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        return datetime.fromtimestamp(value, tz=timezone.utc)

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: Union[datetime, float]) -> None:
        """Pin the clock to a new instant."""
        with self._lock:
            self._now = self._coerce(value)

    def travel(self, seconds: float) -> None:
        """Move the clock forward (or backward for negative seconds)."""
        with self._lock:
            self._now = self._now + timedelta(seconds=seconds)

    def __repr__(self) -> str:
        return f"FrozenClock(now={self._now.isoformat()})"


__all__ = ["Clock", "SystemClock", "FrozenClock"]
