"""RoadStash File Store - File-Based Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from roadstash_core.clock import Clock
from roadstash_core.store.backend import StorageBackend, StorageConfig
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)


@dataclass
class FileConfig(StorageConfig):
    """File store configuration.

    Attributes:
        max_items: Maximum number of entries before LRU eviction
    """

    max_items: int = 1000


class FileStore(StorageBackend):
    """File-based storage backend.

    One file per key at ``{path}/{md5(key)}.cache``. A shared access log,
    ``{path}/meta.json``, maps each key to its last access time and is
    rewritten on every physical get, set and delete. When a new key would
    push the store past ``max_items``, the key with the oldest access time
    is evicted first.

    The access log is guarded by an in-process lock only. Several processes
    sharing one directory can lose each other's access-log updates.

    Example:
        store = FileStore("/var/cache/myapp", FileConfig(max_items=500))
        store.set("key", Record(value="data"))
        record = store.get("key")
    """

    EXTENSION = ".cache"
    META_FILE = "meta.json"

    def __init__(
        self,
        base_path: str,
        config: Optional[FileConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize file store.

        Args:
            base_path: Directory for cache files
            config: File store configuration
            clock: Time source for access times and TTLs
        """
        super().__init__(config or FileConfig(), clock)
        self.config: FileConfig
        self.base_path = Path(base_path)
        self.max_items = self.config.max_items
        self._lock = threading.RLock()
        self._access_log: Dict[str, float] = {}

        self.base_path.mkdir(parents=True, exist_ok=True)
        self._load_meta()

    @property
    def meta_path(self) -> Path:
        return self.base_path / self.META_FILE

    def path_for(self, key: str) -> Path:
        """Get file path for key.

        Args:
            key: Cache key

        Returns:
            File path
        """
        filename = hashlib.md5(key.encode("utf-8")).hexdigest()
        return self.base_path / f"{filename}{self.EXTENSION}"

    def max_capacity(self, size: int) -> None:
        """Set maximum item count, evicting until within it.

        Args:
            size: Maximum number of entries
        """
        if size < 1:
            raise ValueError("max_items must be at least 1")
        with self._lock:
            self.max_items = size
            while len(self._access_log) > size:
                if not self._evict_lru():
                    break

    def access_log(self) -> Dict[str, float]:
        """Snapshot of key -> last access timestamp."""
        with self._lock:
            return dict(self._access_log)

    def item_count(self) -> int:
        """Number of keys tracked by the access log."""
        return len(self._access_log)

    def _read(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)

        with self._lock:
            if not path.exists():
                return None

            self._access_log[key] = self.clock.timestamp()
            self._save_meta()

            return path.read_bytes()

    def _write(self, key: str, payload: bytes, record: Record) -> bool:
        path = self.path_for(key)
        temp_path = path.with_suffix(".tmp")

        with self._lock:
            if key not in self._access_log and len(self._access_log) >= self.max_items:
                self._evict_lru()

            self._access_log[key] = self.clock.timestamp()
            self._save_meta()

            try:
                temp_path.write_bytes(payload)
                os.replace(temp_path, path)
            except OSError:
                if temp_path.exists():
                    temp_path.unlink()
                raise

            return True

    def _remove(self, key: str) -> bool:
        path = self.path_for(key)

        with self._lock:
            if self._access_log.pop(key, None) is not None:
                self._save_meta()

            if path.exists():
                path.unlink()
            return True

    def _flush(self) -> bool:
        with self._lock:
            for file_path in self.base_path.glob(f"*{self.EXTENSION}"):
                file_path.unlink()

            self._access_log = {}
            self._save_meta()
            return True

    def _evict_lru(self) -> bool:
        """Evict the least recently touched key.

        Returns:
            True if a key was evicted
        """
        self._load_meta()
        if not self._access_log:
            return False

        victim = min(self._access_log, key=self._access_log.__getitem__)
        logger.debug(f"Evicting least recently used key {victim} from {self!r}")
        return self.delete(victim)

    def _load_meta(self) -> None:
        """Load access log from disk, keeping the current log if unreadable."""
        if not self.meta_path.exists():
            return

        try:
            decoded = json.loads(self.meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable access log {self.meta_path}: {e}")
            return

        if isinstance(decoded, dict):
            self._access_log = {str(k): float(v) for k, v in decoded.items()}

    def _save_meta(self) -> None:
        """Atomically rewrite the access log."""
        temp_path = self.meta_path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(self._access_log), encoding="utf-8")
        os.replace(temp_path, self.meta_path)

    def disk_usage(self) -> int:
        """Get total size of entry files in bytes."""
        return sum(
            p.stat().st_size for p in self.base_path.glob(f"*{self.EXTENSION}")
        )

    def __repr__(self) -> str:
        return f"FileStore(path={self.base_path})"


__all__ = ["FileStore", "FileConfig"]
