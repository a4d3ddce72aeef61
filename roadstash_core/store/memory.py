"""RoadStash Memory Store - In-Memory Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from typing import Dict, List, Optional

from roadstash_core.clock import Clock
from roadstash_core.store.backend import StorageBackend, StorageConfig
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)


class MemoryStore(StorageBackend):
    """In-memory storage backend.

    Keeps encoded payloads in a process-local dict, going through the same
    serialize/compress path as the durable stores. Useful for tests and
    single-process deployments. Counters use the facade's read-then-write
    fallback.

    Example:
        store = MemoryStore()
        store.set("key", Record(value="data"))
        record = store.get("key")
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize memory store.

        Args:
            config: Storage configuration
            clock: Time source
        """
        super().__init__(config, clock)
        self._data: Dict[str, bytes] = {}
        self._lock = threading.RLock()

    def _read(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def _write(self, key: str, payload: bytes, record: Record) -> bool:
        with self._lock:
            self._data[key] = payload
            return True

    def _remove(self, key: str) -> bool:
        with self._lock:
            self._data.pop(key, None)
            return True

    def _flush(self) -> bool:
        with self._lock:
            self._data.clear()
            return True

    def raw(self, key: str) -> Optional[bytes]:
        """Get the stored payload for key, bypassing the memo."""
        with self._lock:
            return self._data.get(key)

    def keys(self, pattern: Optional[str] = None) -> List[str]:
        """Get stored keys.

        Args:
            pattern: Optional glob pattern

        Returns:
            List of keys
        """
        with self._lock:
            if pattern is None:
                return list(self._data.keys())
            return [k for k in self._data.keys() if fnmatch.fnmatch(k, pattern)]

    def size(self) -> int:
        """Get entry count."""
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryStore(entries={len(self._data)})"


__all__ = ["MemoryStore"]
