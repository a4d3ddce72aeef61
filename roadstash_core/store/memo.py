"""RoadStash Memo - Bounded In-Process Payload Memo.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Optional

MISSING: Any = object()


class BoundedMemo:
    """Fixed-capacity map of encoded payloads shielding a backend from reads.

    Eviction is FIFO: the structurally oldest key goes first and lookups do
    not reorder entries, so a hot key inserted early can be evicted before
    colder keys inserted later. A stored ``None`` records a known-absent key.

    Example:
        memo = BoundedMemo(capacity=2)
        memo.put("a", None)
        memo.put("b", payload)
        memo.put("c", payload)   # evicts "a"
        memo.lookup("a") is MISSING
    """

    DEFAULT_CAPACITY = 1000

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """Initialize memo.

        Args:
            capacity: Maximum number of keys held
        """
        if capacity < 1:
            raise ValueError("Memo capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, Optional[bytes]] = OrderedDict()
        self._lock = threading.RLock()
        self.evictions = 0

    def lookup(self, key: str) -> Any:
        """Get memoized payload.

        Returns:
            Payload, None for known-absent keys, or MISSING
        """
        with self._lock:
            return self._entries.get(key, MISSING)

    def put(self, key: str, payload: Optional[bytes]) -> None:
        """Memoize an encoded payload (or known absence) for key."""
        with self._lock:
            if key in self._entries:
                self._entries[key] = payload
                return

            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
                self.evictions += 1

            self._entries[key] = payload

    def discard(self, key: str) -> None:
        """Forget key if memoized."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def oldest(self) -> Optional[str]:
        """Peek at the next key to be evicted."""
        with self._lock:
            if not self._entries:
                return None
            return next(iter(self._entries))

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"BoundedMemo(size={len(self._entries)}, capacity={self.capacity})"


__all__ = ["BoundedMemo", "MISSING"]
