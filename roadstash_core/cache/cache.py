"""RoadStash Cache - Cache Facade.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import functools
import hashlib
import logging
from datetime import datetime
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Union,
    TYPE_CHECKING,
)

from roadstash_core.cache.item import CacheItem, TTL
from roadstash_core.cache.pool import CacheItemPool, MAX_KEY_LENGTH, validate_key
from roadstash_core.clock import Clock
from roadstash_core.exceptions import AtomicCounterRequiredError
from roadstash_core.store.backend import AtomicCounter, StorageBackend

if TYPE_CHECKING:
    from roadstash_core.cache.tagged import TaggedCache
    from roadstash_core.cache.warmup import CacheWarmer
    from roadstash_core.config import CacheConfig
    from roadstash_core.events import EventDispatcher
    from roadstash_core.factory import StoreFactory

logger = logging.getLogger(__name__)

Expiry = Union[TTL, datetime]


class Cache:
    """Convenience API over a CacheItemPool.

    TTLs are seconds, a ``timedelta``, or an absolute ``datetime``; None
    means the entry never expires.

    Counters use the backend's native atomics when it implements
    ``AtomicCounter``. Otherwise they fall back to read-then-write, which is
    not atomic across processes sharing a backend; set
    ``require_atomic_counters`` to refuse that fallback.

    ``remember`` does not coordinate concurrent producers: callers missing
    the same key at the same time each run the producer, last write wins.

    Example:
        cache = Cache.from_config(CacheConfig.from_dict(settings))

        cache.put("user.1", {"name": "Alice"}, ttl=3600)
        user = cache.get("user.1")

        report = cache.remember("report", 300, build_report)

        cache.tags(["users"]).put("1", user)
        cache.tags(["users"]).flush()
    """

    def __init__(
        self,
        pool: CacheItemPool,
        factory: Optional["StoreFactory"] = None,
        require_atomic_counters: bool = False,
    ):
        """Initialize cache.

        Args:
            pool: Item pool to operate on
            factory: Store factory used by ``store()``
            require_atomic_counters: Refuse non-atomic counter fallback
        """
        self.pool = pool
        self._factory = factory
        self.require_atomic_counters = require_atomic_counters

    @classmethod
    def from_config(
        cls,
        config: "CacheConfig",
        clients: Optional[Dict[str, Any]] = None,
        store: Optional[str] = None,
        clock: Optional[Clock] = None,
        dispatcher: Optional["EventDispatcher"] = None,
    ) -> "Cache":
        """Build a cache for a configured store.

        Args:
            config: Cache configuration
            clients: Pre-built network clients keyed by store name
            store: Store name, defaults to the configured default
            clock: Time source
            dispatcher: Event dispatcher for cache events

        Returns:
            Cache instance
        """
        from roadstash_core.factory import StoreFactory

        factory = StoreFactory(config, clients=clients, clock=clock, dispatcher=dispatcher)
        return cls(
            factory.create_pool(store),
            factory=factory,
            require_atomic_counters=config.require_atomic_counters,
        )

    @property
    def storage(self) -> StorageBackend:
        return self.pool.storage

    @property
    def clock(self) -> Clock:
        return self.pool.clock

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from cache.

        Args:
            key: Cache key
            default: Returned on a miss

        Returns:
            Cached value or default
        """
        item = self.pool.get_item(key)
        return item.get() if item.is_hit else default

    def put(self, key: str, value: Any, ttl: Expiry = None) -> bool:
        """Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Seconds, timedelta, absolute datetime, or None for no expiry

        Returns:
            True if the backend write succeeded
        """
        return self.pool.save(self._make_item(key, value, ttl))

    def forever(self, key: str, value: Any) -> bool:
        """Store a value with no expiry."""
        return self.put(key, value)

    def has(self, key: str) -> bool:
        """Check whether key holds a live value."""
        return self.pool.has_item(key)

    def delete(self, key: str) -> bool:
        """Delete key.

        Returns:
            True unless the backend delete failed
        """
        return self.pool.delete_item(key)

    forget = delete

    def remember(self, key: str, ttl: Expiry, producer: Callable[[], Any]) -> Any:
        """Get a cached value, computing and storing it on a miss.

        Args:
            key: Cache key
            ttl: TTL for a newly computed value
            producer: Called without arguments on a miss

        Returns:
            Cached or freshly produced value
        """
        item = self.pool.get_item(key)
        if item.is_hit:
            return item.get()

        value = producer()
        self.put(key, value, ttl)
        return value

    def get_many(self, keys: Iterable[str], default: Any = None) -> Dict[str, Any]:
        """Get several values.

        Args:
            keys: Cache keys
            default: Value reported for misses

        Returns:
            Dict of key -> value (default for misses)
        """
        items = self.pool.get_items(keys)
        return {key: item.get() if item.is_hit else default for key, item in items.items()}

    def put_many(self, values: Mapping[str, Any], ttl: Expiry = None) -> bool:
        """Store several values with one TTL.

        Args:
            values: Dict of key -> value
            ttl: TTL applied to every value

        Returns:
            True if every write succeeded
        """
        return self.pool.save_many(
            self._make_item(key, value, ttl) for key, value in values.items()
        )

    def delete_many(self, keys: Iterable[str]) -> bool:
        """Delete several keys.

        Returns:
            True if every delete succeeded
        """
        return self.pool.delete_items(keys)

    forget_many = delete_many

    def clear(self) -> bool:
        """Clear the whole store."""
        return self.pool.clear()

    def increment(self, key: str, delta: int = 1) -> Optional[int]:
        """Increment a counter, starting from 0 when absent.

        Args:
            key: Cache key
            delta: Amount to add

        Returns:
            New value, or None if the write failed

        Raises:
            ValueError: The current value is not numeric (fallback path)
            AtomicCounterRequiredError: Fallback refused by configuration
        """
        validate_key(key)
        storage = self.pool.storage
        if isinstance(storage, AtomicCounter):
            return storage.increment(key, delta)
        return self._apply_delta(key, delta)

    def decrement(self, key: str, delta: int = 1) -> Optional[int]:
        """Decrement a counter, starting from 0 when absent.

        Args:
            key: Cache key
            delta: Amount to subtract

        Returns:
            New value, or None if the write failed
        """
        validate_key(key)
        storage = self.pool.storage
        if isinstance(storage, AtomicCounter):
            return storage.decrement(key, delta)
        return self._apply_delta(key, -delta)

    def tags(self, tags: Union[str, Iterable[str]]) -> "TaggedCache":
        """Get a view of this cache scoped to a tag set.

        Args:
            tags: Tag name or tag names

        Returns:
            TaggedCache bound to this cache
        """
        from roadstash_core.cache.tagged import TaggedCache

        if isinstance(tags, str):
            tags = [tags]
        return TaggedCache(self, tags)

    def store(self, name: str) -> "Cache":
        """Get a cache for another configured store.

        Args:
            name: Store name

        Returns:
            New Cache bound to a fresh backend for that store

        Raises:
            RuntimeError: If this cache was not built from configuration
        """
        if self._factory is None:
            raise RuntimeError("Cache.store() requires a cache built with Cache.from_config()")

        return Cache(
            self._factory.create_pool(name),
            factory=self._factory,
            require_atomic_counters=self.require_atomic_counters,
        )

    def warmer(self) -> "CacheWarmer":
        """Get a cache warmer bound to this cache."""
        from roadstash_core.cache.warmup import CacheWarmer

        return CacheWarmer(self)

    def cached(
        self,
        ttl: Expiry = None,
        key_builder: Optional[Callable[..., str]] = None,
        prefix: Optional[str] = None,
    ) -> Callable:
        """Decorator to cache function results through ``remember``.

        Args:
            ttl: Cache TTL
            key_builder: Function building the cache key from the call arguments
            prefix: Key prefix, defaults to the function's qualified name

        Returns:
            Decorator function
        """
        def decorator(func: Callable) -> Callable:
            name = prefix or func.__qualname__.replace("<", "").replace(">", "")

            def make_key(args: tuple, kwargs: dict) -> str:
                if key_builder:
                    return key_builder(*args, **kwargs)
                digest = hashlib.md5(
                    repr((args, sorted(kwargs.items()))).encode("utf-8")
                ).hexdigest()[:16]
                key = f"{name}.{digest}"
                if len(key) > MAX_KEY_LENGTH:
                    key = hashlib.md5(key.encode("utf-8")).hexdigest()
                return key

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                key = make_key(args, kwargs)
                return self.remember(key, ttl, lambda: func(*args, **kwargs))

            def cache_forget(*args, **kwargs) -> bool:
                """Drop the cached result for these arguments."""
                return self.delete(make_key(args, kwargs))

            wrapper.cache_forget = cache_forget
            wrapper.cache = self
            return wrapper

        return decorator

    def _make_item(self, key: str, value: Any, ttl: Expiry) -> CacheItem:
        item = CacheItem(key, self.clock).set(value)
        if isinstance(ttl, datetime):
            return item.expires_at(ttl)
        return item.expires_after(ttl)

    def _apply_delta(self, key: str, delta: int) -> Optional[int]:
        if self.require_atomic_counters:
            raise AtomicCounterRequiredError(
                f"{self.pool.storage!r} has no native atomic counters"
            )

        logger.debug(f"Non-atomic counter update for {key} on {self.pool.storage!r}")
        item = self.pool.get_item(key)
        current = _as_counter(key, item.get()) if item.is_hit else 0

        new_value = current + delta
        item.set(new_value)
        return new_value if self.pool.save(item) else None

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __getitem__(self, key: str) -> Any:
        item = self.pool.get_item(key)
        if not item.is_hit:
            raise KeyError(key)
        return item.get()

    def __setitem__(self, key: str, value: Any) -> None:
        self.put(key, value)

    def __delitem__(self, key: str) -> None:
        self.delete(key)

    def __repr__(self) -> str:
        return f"Cache(storage={self.pool.storage!r})"


def _as_counter(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Cached value for {key!r} is not numeric")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"Cached value for {key!r} is not numeric")


__all__ = ["Cache"]
