"""RoadStash Item - Cache Item Value Object.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from roadstash_core.clock import Clock, SystemClock

TTL = Union[int, float, timedelta, None]


class CacheItem:
    """One cache entry as seen by callers.

    Items come from ``CacheItemPool.get_item``. ``is_hit`` is set by the pool
    only when the backend returned a live record. The builder methods
    mutate the item in place and return it, for use before ``save``.

    Attributes:
        key: Cache key
        is_hit: Whether the item was loaded from a live record
        expiry: Absolute expiry instant (aware UTC) or None

    Example:
        item = pool.get_item("user.1")
        if not item.is_hit:
            pool.save(item.set(load_user(1)).expires_after(300))
    """

    __slots__ = ("_key", "_value", "_is_hit", "_expiry", "_clock")

    def __init__(
        self,
        key: str,
        clock: Optional[Clock] = None,
        value: Any = None,
        is_hit: bool = False,
        expiry: Optional[datetime] = None,
    ):
        self._key = key
        self._clock = clock or SystemClock()
        self._value = value
        self._is_hit = is_hit
        self._expiry = _as_utc(expiry) if expiry is not None else None

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_hit(self) -> bool:
        return self._is_hit

    @property
    def expiry(self) -> Optional[datetime]:
        return self._expiry

    @property
    def expiry_timestamp(self) -> Optional[float]:
        """Expiry as unix seconds, None for no expiry."""
        return self._expiry.timestamp() if self._expiry is not None else None

    def get(self) -> Any:
        """Get the item value (None on a miss)."""
        return self._value

    def set(self, value: Any) -> "CacheItem":
        """Set the value to store."""
        self._value = value
        return self

    def expires_at(self, when: Optional[datetime]) -> "CacheItem":
        """Set an absolute expiry; naive datetimes are taken as UTC."""
        self._expiry = _as_utc(when) if when is not None else None
        return self

    def expires_after(self, ttl: TTL) -> "CacheItem":
        """Set expiry relative to now.

        Args:
            ttl: Seconds or timedelta, None for no expiry
        """
        if ttl is None:
            self._expiry = None
        elif isinstance(ttl, timedelta):
            self._expiry = self._clock.now() + ttl
        else:
            self._expiry = self._clock.now() + timedelta(seconds=ttl)
        return self

    def with_is_hit(self, hit: bool) -> "CacheItem":
        """Mark the item as hit or miss."""
        self._is_hit = hit
        return self

    def is_expired(self) -> bool:
        return self._expiry is not None and self._expiry <= self._clock.now()

    def __repr__(self) -> str:
        expiry = self._expiry.isoformat() if self._expiry else None
        return f"CacheItem(key={self._key!r}, hit={self._is_hit}, expiry={expiry})"


def _as_utc(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


__all__ = ["CacheItem", "TTL"]
