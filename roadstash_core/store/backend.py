"""RoadStash Storage Backend - Abstract Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from roadstash_core.clock import Clock, SystemClock
from roadstash_core.protocol.codec import CompressionCodec, DEFAULT_THRESHOLD
from roadstash_core.protocol.serializer import Serializer, get_serializer
from roadstash_core.store.memo import BoundedMemo, MISSING
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Storage backend configuration.

    Attributes:
        name: Backend name
        memo_size: Capacity of the in-process memo
        serializer: Serializer format name
        compression_enabled: Compress large payloads
        compression_threshold: Bytes threshold for compression
        strict_decompression: Raise on corrupt compressed payloads
    """

    name: str = "storage"
    memo_size: int = BoundedMemo.DEFAULT_CAPACITY
    serializer: str = "pickle"
    compression_enabled: bool = True
    compression_threshold: int = DEFAULT_THRESHOLD
    strict_decompression: bool = False


@dataclass
class StorageStats:
    """Storage backend statistics.

    Attributes:
        reads: Number of physical read operations
        writes: Number of successful write operations
        deletes: Number of delete operations
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class AtomicCounter(ABC):
    """Capability of backends whose store increments counters natively."""

    @abstractmethod
    def increment(self, key: str, delta: int = 1) -> Optional[int]:
        """Atomically add delta to the counter at key.

        Returns:
            New value, or None if the store rejected the operation
        """
        pass

    @abstractmethod
    def decrement(self, key: str, delta: int = 1) -> Optional[int]:
        """Atomically subtract delta from the counter at key.

        Returns:
            New value, or None if the store rejected the operation
        """
        pass


class StorageBackend(ABC):
    """Uniform get/set/delete/clear contract over one physical store.

    Every backend fronts its store with a BoundedMemo: lookups (including
    known-absent keys) are answered from the memo until the key is written,
    deleted or evicted. The memo holds encoded payloads and decodes them on
    every lookup, so callers never share value objects with it. Records are
    serialized, then compressed above the configured threshold, before
    reaching the store.

    None of the four operations raise for a missing key. Physical read
    errors become misses; physical write, delete and clear errors become
    ``False``. Concrete stores implement ``_read``, ``_write``, ``_remove``
    and ``_flush`` and may raise freely from them.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize backend.

        Args:
            config: Storage configuration
            clock: Time source for TTL calculations
        """
        self.config = config or StorageConfig()
        self.clock = clock or SystemClock()
        self._stats = StorageStats()
        self._memo = BoundedMemo(self.config.memo_size)
        self._codec = CompressionCodec(
            enabled=self.config.compression_enabled,
            threshold=self.config.compression_threshold,
            strict=self.config.strict_decompression,
        )
        self._serializer: Serializer = get_serializer(self.config.serializer)

    def get(self, key: str) -> Optional[Record]:
        """Get record by key.

        Args:
            key: Cache key

        Returns:
            Record or None

        Raises:
            CompressionError: Corrupt payload with strict decompression
        """
        memoized = self._memo.lookup(key)
        if memoized is not MISSING:
            return self._decode(key, memoized) if memoized is not None else None

        try:
            self._stats.reads += 1
            payload = self._read(key)
        except Exception as e:
            logger.error(f"Error reading {key} from {self!r}: {e}")
            self._stats.record_error(str(e))
            return None

        record = self._decode(key, payload) if payload is not None else None
        self._memo.put(key, payload if record is not None else None)
        return record

    def set(self, key: str, record: Record) -> bool:
        """Store record.

        A record whose expiry has already passed is removed instead of
        written.

        Args:
            key: Cache key
            record: Record to persist

        Returns:
            True if the physical write (or removal) succeeded
        """
        if self._is_elapsed(record):
            logger.debug(f"Removing {key} from {self!r}: expiry already passed")
            return self.delete(key)

        try:
            payload = self._encode(record)
            written = self._write(key, payload, record)
        except Exception as e:
            logger.error(f"Error writing {key} to {self!r}: {e}")
            self._stats.record_error(str(e))
            written = False

        if written:
            self._stats.writes += 1
            self._memo.put(key, payload)
        else:
            self._memo.discard(key)

        return written

    def delete(self, key: str) -> bool:
        """Delete record.

        Args:
            key: Cache key

        Returns:
            True unless the physical delete failed
        """
        self._memo.discard(key)

        try:
            removed = self._remove(key)
        except Exception as e:
            logger.error(f"Error deleting {key} from {self!r}: {e}")
            self._stats.record_error(str(e))
            return False

        if removed:
            self._stats.deletes += 1
        return removed

    def clear(self) -> bool:
        """Clear all records owned by this backend.

        Returns:
            True if successful
        """
        self._memo.clear()

        try:
            return self._flush()
        except Exception as e:
            logger.error(f"Error clearing {self!r}: {e}")
            self._stats.record_error(str(e))
            return False

    def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[Record]]:
        """Get multiple records.

        Args:
            keys: Cache keys

        Returns:
            Dict of key -> record (None for misses)
        """
        return {key: self.get(key) for key in keys}

    def set_many(self, records: Mapping[str, Record]) -> bool:
        """Store multiple records, attempting every one.

        Args:
            records: Dict of key -> record

        Returns:
            True if all writes succeeded
        """
        results = [self.set(key, record) for key, record in records.items()]
        return all(results)

    def delete_many(self, keys: Iterable[str]) -> bool:
        """Delete multiple records, attempting every one.

        Args:
            keys: Keys to delete

        Returns:
            True if all deletes succeeded
        """
        results = [self.delete(key) for key in keys]
        return all(results)

    def with_compression(self, enabled: bool) -> "StorageBackend":
        """Enable or disable compression.

        Returns:
            Self for chaining
        """
        self._codec.enabled = enabled
        return self

    def with_compression_threshold(self, threshold: int) -> "StorageBackend":
        """Set compression threshold in bytes.

        Returns:
            Self for chaining
        """
        if threshold < 0:
            raise ValueError("Compression threshold must be non-negative")
        self._codec.threshold = threshold
        return self

    def encoded_size(self, record: Record) -> int:
        """Size in bytes of a record as this backend would store it."""
        return len(self._encode(record))

    @property
    def codec(self) -> CompressionCodec:
        return self._codec

    @property
    def memo(self) -> BoundedMemo:
        return self._memo

    def get_stats(self) -> StorageStats:
        """Get storage statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()

    def health_check(self) -> bool:
        """Check storage health with a write/read/delete round trip.

        Returns:
            True if healthy
        """
        check_key = "__health_check__"
        if not self.set(check_key, Record(value="ok")):
            return False
        self._memo.discard(check_key)
        result = self.get(check_key)
        self.delete(check_key)
        return result is not None and result.value == "ok"

    def _encode(self, record: Record) -> bytes:
        """Serialize and compress a record."""
        return self._codec.compress(self._serializer.serialize(record.to_dict()))

    def _decode(self, key: str, payload: bytes) -> Optional[Record]:
        """Decompress and deserialize a payload.

        Undecodable payloads read as absent.
        """
        data = self._codec.decompress(payload)
        try:
            return Record.from_dict(self._serializer.deserialize(data))
        except Exception as e:
            logger.warning(f"Undecodable record for {key} in {self!r}: {e}")
            self._stats.record_error(str(e))
            return None

    def _ttl_seconds(self, record: Record) -> Optional[float]:
        """Remaining lifetime of a record, None when it never expires."""
        return record.remaining_ttl(self.clock.timestamp())

    def _is_elapsed(self, record: Record) -> bool:
        ttl = self._ttl_seconds(record)
        return ttl is not None and ttl <= 0

    @abstractmethod
    def _read(self, key: str) -> Optional[bytes]:
        """Read raw payload from the physical store, None when absent."""
        pass

    @abstractmethod
    def _write(self, key: str, payload: bytes, record: Record) -> bool:
        """Write raw payload to the physical store."""
        pass

    @abstractmethod
    def _remove(self, key: str) -> bool:
        """Remove key from the physical store; absent keys count as removed."""
        pass

    @abstractmethod
    def _flush(self) -> bool:
        """Remove every key this backend owns from the physical store."""
        pass


__all__ = ["StorageBackend", "StorageConfig", "StorageStats", "AtomicCounter"]
