"""RoadStash Tagged Cache - Tag-Scoped Invalidation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Optional, TYPE_CHECKING

from roadstash_core.cache.pool import validate_key

if TYPE_CHECKING:
    from roadstash_core.cache.cache import Cache, Expiry

logger = logging.getLogger(__name__)


class TagIndex(ABC):
    """Tag -> tagged-key reference lists."""

    @abstractmethod
    def keys(self, tag: str) -> List[str]:
        """Keys referenced by tag, in insertion order."""
        pass

    @abstractmethod
    def add(self, tag: str, key: str) -> bool:
        """Reference key from tag; adding a present key is a no-op."""
        pass

    @abstractmethod
    def forget(self, tag: str) -> bool:
        """Drop the reference list for tag."""
        pass

    def validate(self, tag: str) -> None:
        """Reject tag names this index cannot store.

        Raises:
            InvalidKeyError: If the tag is not acceptable
        """


class CacheTagIndex(TagIndex):
    """TagIndex stored in the cache itself.

    Each tag's list lives under ``tag.{tag}.keys`` with no expiry. Updates
    are read-then-write, so concurrent writers on one tag can lose
    references.
    """

    def __init__(self, cache: "Cache"):
        self.cache = cache

    @staticmethod
    def reference_key(tag: str) -> str:
        return f"tag.{tag}.keys"

    def keys(self, tag: str) -> List[str]:
        return list(self.cache.get(self.reference_key(tag), []) or [])

    def add(self, tag: str, key: str) -> bool:
        keys = self.keys(tag)
        if key in keys:
            return True
        keys.append(key)
        return self.cache.forever(self.reference_key(tag), keys)

    def forget(self, tag: str) -> bool:
        return self.cache.delete(self.reference_key(tag))

    def validate(self, tag: str) -> None:
        validate_key(self.reference_key(tag))

    def __repr__(self) -> str:
        return f"CacheTagIndex(cache={self.cache!r})"


class TaggedCache:
    """View of a Cache scoped to a set of tags.

    Values are stored under ``tagged.{hash}.{key}`` where the hash covers the
    whole de-duplicated, sorted tag set. Reading a value back requires the
    same tag set it was written with.

    The tag hash is truncated to 16 hex characters, so user keys may be up
    to 40 bytes.

    Example:
        users = cache.tags(["users", "admins"])
        users.put("1", alice, ttl=600)
        users.get("1")
        cache.tags("users").flush()
    """

    PREFIX = "tagged"
    HASH_LENGTH = 16

    def __init__(self, cache: "Cache", tags: Iterable[str], index: Optional[TagIndex] = None):
        """Initialize tagged view.

        Args:
            cache: Underlying cache
            tags: Tag names
            index: Reference list store, defaults to one kept in the cache

        Raises:
            ValueError: If no tags are given
            InvalidKeyError: If a tag cannot be stored by the index
        """
        self.cache = cache
        self._tags = sorted(set(tags))
        if not self._tags:
            raise ValueError("TaggedCache requires at least one tag")
        self.index = index or CacheTagIndex(cache)
        for tag in self._tags:
            self.index.validate(tag)
        self._namespace = hashlib.md5(
            "|".join(self._tags).encode("utf-8")
        ).hexdigest()[: self.HASH_LENGTH]

    @property
    def tags(self) -> List[str]:
        return list(self._tags)

    def tagged_key(self, key: str) -> str:
        """Physical key for a logical key under this tag set."""
        return f"{self.PREFIX}.{self._namespace}.{key}"

    def get(self, key: str, default: Any = None) -> Any:
        return self.cache.get(self.tagged_key(key), default)

    def put(self, key: str, value: Any, ttl: "Expiry" = None) -> bool:
        """Store a value and reference it from every tag.

        References are written before the value so a concurrent flush never
        misses a stored key.

        Returns:
            True if the value write succeeded

        Raises:
            InvalidKeyError: If the tagged key is invalid, before any write
        """
        tagged_key = self.tagged_key(key)
        validate_key(tagged_key)
        for tag in self._tags:
            if not self.index.add(tag, tagged_key):
                logger.warning(f"Failed to reference {tagged_key} from tag {tag}")
        return self.cache.put(tagged_key, value, ttl)

    def forever(self, key: str, value: Any) -> bool:
        return self.put(key, value)

    def has(self, key: str) -> bool:
        return self.cache.has(self.tagged_key(key))

    def delete(self, key: str) -> bool:
        return self.cache.delete(self.tagged_key(key))

    forget = delete

    def remember(self, key: str, ttl: "Expiry", producer: Callable[[], Any]) -> Any:
        """Get a tagged value, computing and storing it on a miss."""
        item = self.cache.pool.get_item(self.tagged_key(key))
        if item.is_hit:
            return item.get()

        value = producer()
        self.put(key, value, ttl)
        return value

    def flush(self) -> bool:
        """Delete every key referenced by any of this view's tags.

        Every deletion is attempted; the reference lists are dropped
        afterwards.

        Returns:
            False if any deletion failed
        """
        success = True
        for tag in self._tags:
            for tagged_key in self.index.keys(tag):
                if not self.cache.delete(tagged_key):
                    logger.warning(f"Failed to flush {tagged_key} for tag {tag}")
                    success = False
            if not self.index.forget(tag):
                success = False

        logger.debug(f"Flushed tags {self._tags}")
        return success

    def get_tag_keys(self, tag: str) -> List[str]:
        """Raw reference list for a tag."""
        return self.index.keys(tag)

    def __repr__(self) -> str:
        return f"TaggedCache(tags={self._tags})"


__all__ = ["TaggedCache", "TagIndex", "CacheTagIndex"]
