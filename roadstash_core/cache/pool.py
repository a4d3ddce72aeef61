"""RoadStash Pool - Cache Item Pool with Deferred Commits.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from roadstash_core.cache.item import CacheItem
from roadstash_core.clock import Clock
from roadstash_core.events import (
    CacheHit,
    CacheMissed,
    EventDispatcher,
    KeyForgotten,
    KeyWritten,
)
from roadstash_core.exceptions import InvalidKeyError
from roadstash_core.store.backend import StorageBackend
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)

RESERVED_CHARACTERS = "{}()/\\@:"
MAX_KEY_LENGTH = 64


def validate_key(key: str) -> None:
    """Validate a cache key.

    Keys are 1-64 bytes of UTF-8 and never contain any of ``{}()/\\@:``.

    Raises:
        InvalidKeyError: If the key is not acceptable
    """
    if not isinstance(key, str):
        raise InvalidKeyError(repr(key), "key must be a string")
    if key == "":
        raise InvalidKeyError(key, "key cannot be empty")
    if len(key.encode("utf-8")) > MAX_KEY_LENGTH:
        raise InvalidKeyError(key, f"key is longer than {MAX_KEY_LENGTH} bytes")

    reserved = sorted(set(key) & set(RESERVED_CHARACTERS))
    if reserved:
        raise InvalidKeyError(
            key,
            f"contains reserved characters {''.join(reserved)!r} "
            f"(reserved: {RESERVED_CHARACTERS})",
        )


class CacheItemPool:
    """Key validation, expiry enforcement and deferred commits over a backend.

    The pool is the only layer that interprets expiry: a record whose expiry
    has passed is deleted from the backend on read and reported as a miss.

    Deferred saves are held in memory until ``commit``. Commit is best
    effort, not a transaction: every pending item is attempted, the result
    is True only if all succeeded, and the pending list is emptied either
    way. Saving or deleting a key immediately drops its pending save.

    Example:
        pool = CacheItemPool(FileStore("/tmp/cache"))
        item = pool.get_item("report")
        pool.save_deferred(item.set(data).expires_after(60))
        pool.commit()
    """

    def __init__(
        self,
        storage: StorageBackend,
        clock: Optional[Clock] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        """Initialize pool.

        Args:
            storage: Storage backend
            clock: Time source, defaults to the backend's
            dispatcher: Optional event dispatcher
        """
        self.storage = storage
        self.clock = clock or storage.clock
        self.dispatcher = dispatcher
        self._deferred: Dict[str, CacheItem] = {}
        self._lock = threading.RLock()

    def get_item(self, key: str) -> CacheItem:
        """Get the item for key.

        Args:
            key: Cache key

        Returns:
            Hit item with value and expiry, or an empty miss item

        Raises:
            InvalidKeyError: If the key is invalid
        """
        validate_key(key)

        pending = self._live_deferred(key)
        if pending is not None:
            return pending

        return self._item_from_record(key, self.storage.get(key))

    def get_items(self, keys: Iterable[str]) -> Dict[str, CacheItem]:
        """Get items for several keys.

        All keys are validated before the backend is touched.

        Args:
            keys: Cache keys

        Returns:
            Dict of key -> item, in request order
        """
        keys = list(keys)
        for key in keys:
            validate_key(key)

        pending = {key: self._live_deferred(key) for key in keys}
        to_load = [key for key, item in pending.items() if item is None]
        records = self.storage.get_many(to_load) if to_load else {}

        items = {}
        for key in keys:
            items[key] = pending[key] or self._item_from_record(key, records.get(key))
        return items

    def has_item(self, key: str) -> bool:
        """Check whether key holds a live record."""
        return self.get_item(key).is_hit

    def save(self, item: CacheItem) -> bool:
        """Persist an item immediately.

        Supersedes any pending deferred save of the same key.

        Args:
            item: Item to save

        Returns:
            The backend's success flag
        """
        validate_key(item.key)
        with self._lock:
            self._deferred.pop(item.key, None)
        record = Record(value=item.get(), expiry=item.expiry_timestamp)

        saved = self.storage.set(item.key, record)
        if saved:
            self._written(item.key, record)
        return saved

    def save_many(self, items: Iterable[CacheItem]) -> bool:
        """Persist several items through the backend's batch write.

        Returns:
            True if all writes succeeded
        """
        items = list(items)
        for item in items:
            validate_key(item.key)

        with self._lock:
            for item in items:
                self._deferred.pop(item.key, None)

        records = {
            item.key: Record(value=item.get(), expiry=item.expiry_timestamp)
            for item in items
        }
        saved = self.storage.set_many(records)
        if saved:
            for key, record in records.items():
                self._written(key, record)
        return saved

    def save_deferred(self, item: CacheItem) -> bool:
        """Queue an item for the next commit.

        A later deferred save of the same key replaces the earlier one.

        Returns:
            Always True (accepted, not persisted)
        """
        validate_key(item.key)
        with self._lock:
            self._deferred[item.key] = item
        return True

    def commit(self) -> bool:
        """Save every deferred item.

        Returns:
            True if all saves succeeded
        """
        with self._lock:
            items = list(self._deferred.values())
            self._deferred.clear()

        results = [self.save(item) for item in items]
        failed = results.count(False)
        if failed:
            logger.error(f"Deferred commit: {failed} of {len(items)} saves failed")
        return failed == 0

    def deferred_keys(self) -> List[str]:
        """Keys with a pending deferred save."""
        with self._lock:
            return list(self._deferred)

    def delete_item(self, key: str) -> bool:
        """Delete key and drop its pending save.

        Returns:
            The backend's success flag
        """
        validate_key(key)
        with self._lock:
            self._deferred.pop(key, None)

        deleted = self.storage.delete(key)
        if deleted:
            self._dispatch(KeyForgotten(key=key))
        return deleted

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Delete several keys, attempting every one.

        All keys are validated before anything is deleted.

        Returns:
            True if all deletes succeeded
        """
        keys = list(keys)
        for key in keys:
            validate_key(key)

        with self._lock:
            for key in keys:
                self._deferred.pop(key, None)

        deleted = self.storage.delete_many(keys)
        if deleted:
            for key in keys:
                self._dispatch(KeyForgotten(key=key))
        return deleted

    def clear(self) -> bool:
        """Drop all pending saves and clear the backend."""
        with self._lock:
            self._deferred.clear()
        return self.storage.clear()

    def _live_deferred(self, key: str) -> Optional[CacheItem]:
        with self._lock:
            pending = self._deferred.get(key)
        if pending is None or pending.is_expired():
            return None
        return CacheItem(
            key,
            self.clock,
            value=pending.get(),
            is_hit=True,
            expiry=pending.expiry,
        )

    def _item_from_record(self, key: str, record: Optional[Record]) -> CacheItem:
        item = CacheItem(key, self.clock)

        if record is None:
            self._dispatch(CacheMissed(key=key))
            return item

        if record.is_expired(self.clock.timestamp()):
            logger.debug(f"Lazily deleting expired key {key}")
            self.storage.delete(key)
            self._dispatch(CacheMissed(key=key))
            return item

        expiry = (
            datetime.fromtimestamp(record.expiry, tz=timezone.utc)
            if record.expiry is not None
            else None
        )
        item.set(record.value).with_is_hit(True).expires_at(expiry)
        self._dispatch(CacheHit(key=key, value=record.value, expiry=expiry))
        return item

    def _written(self, key: str, record: Record) -> None:
        if self.dispatcher is None:
            return
        self._dispatch(KeyWritten(
            key=key,
            value=record.value,
            ttl=record.remaining_ttl(self.clock.timestamp()),
            size=self.storage.encoded_size(record),
        ))

    def _dispatch(self, event) -> None:
        if self.dispatcher is not None:
            self.dispatcher.dispatch(event)

    def __repr__(self) -> str:
        return f"CacheItemPool(storage={self.storage!r}, deferred={len(self._deferred)})"


__all__ = ["CacheItemPool", "validate_key", "RESERVED_CHARACTERS", "MAX_KEY_LENGTH"]
