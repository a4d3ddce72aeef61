"""RoadStash Factory - Builds Backends and Pools from Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Optional, Type

from roadstash_core.cache.pool import CacheItemPool
from roadstash_core.clock import Clock, SystemClock
from roadstash_core.config import CacheConfig, StoreConfig
from roadstash_core.events import EventDispatcher
from roadstash_core.store.backend import StorageBackend, StorageConfig
from roadstash_core.store.file import FileConfig, FileStore
from roadstash_core.store.memcached import MemcachedConfig, MemcachedStore
from roadstash_core.store.memory import MemoryStore
from roadstash_core.store.redis import RedisConfig, RedisStore

logger = logging.getLogger(__name__)


class StoreFactory:
    """Creates storage backends and item pools for named stores.

    This is the wiring boundary: the application builds one factory from its
    configuration and hands out caches from it. Network clients may be
    supplied per store name; otherwise stores connect lazily from their
    options.

    Example:
        factory = StoreFactory(CacheConfig.from_dict(settings), clients={"redis": r})
        pool = factory.create_pool("redis")
    """

    def __init__(
        self,
        config: CacheConfig,
        clients: Optional[Dict[str, Any]] = None,
        clock: Optional[Clock] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        """Initialize factory.

        Args:
            config: Cache configuration
            clients: Pre-built network clients keyed by store name
            clock: Time source shared by created stores and pools
            dispatcher: Event dispatcher attached to created pools
        """
        self.config = config
        self.clients = clients or {}
        self.clock = clock or SystemClock()
        self.dispatcher = dispatcher

    def create_backend(self, name: Optional[str] = None) -> StorageBackend:
        """Create the storage backend for a store.

        Args:
            name: Store name, defaults to the default store

        Returns:
            Storage backend

        Raises:
            UnsupportedDriverError: Unknown store
            ValueError: File store without a path
        """
        store = self.config.store(name)
        options = dict(store.options)

        if store.driver == "file":
            path = options.pop("path", None)
            if not path:
                raise ValueError(f"File cache store {store.name!r} requires a 'path'")
            return FileStore(path, self._build_config(FileConfig, store, options), clock=self.clock)

        if store.driver == "redis":
            return RedisStore(
                self._build_config(RedisConfig, store, options),
                client=self.clients.get(store.name),
                clock=self.clock,
            )

        if store.driver == "memcached":
            return MemcachedStore(
                self._build_config(MemcachedConfig, store, options),
                client=self.clients.get(store.name),
                clock=self.clock,
            )

        return MemoryStore(self._build_config(StorageConfig, store, options), clock=self.clock)

    def create_pool(self, name: Optional[str] = None) -> CacheItemPool:
        """Create an item pool over a fresh backend for a store.

        Args:
            name: Store name, defaults to the default store

        Returns:
            Cache item pool
        """
        return CacheItemPool(
            self.create_backend(name),
            clock=self.clock,
            dispatcher=self.dispatcher,
        )

    @staticmethod
    def _build_config(
        config_cls: Type[StorageConfig],
        store: StoreConfig,
        options: Dict[str, Any],
    ) -> StorageConfig:
        known = {f.name for f in dataclasses.fields(config_cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            logger.warning(f"Ignoring unknown options for cache store {store.name!r}: {', '.join(unknown)}")

        kwargs = {k: v for k, v in options.items() if k in known}
        kwargs["name"] = store.name
        return config_cls(**kwargs)

    def __repr__(self) -> str:
        return f"StoreFactory(stores={list(self.config.stores)}, default={self.config.default!r})"


__all__ = ["StoreFactory"]
