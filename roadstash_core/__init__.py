"""RoadStash - Multi-Backend Application Cache.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A pluggable caching engine with:
- File, Redis and Memcached storage backends behind one contract
- Per-backend bounded in-process memo
- Transparent compression of large payloads
- Item pool with lazy expiry and deferred commits
- Tag-scoped invalidation
- Cache warming from registered producers
- Cache events and metrics

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        RoadStash System                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Cache     │  │ TaggedCache │  │   Warmer    │   FACADE    │
    │  │  get/put    │  │ tag flush   │  │  producers  │   LAYER     │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘             │
    │         │                │                │                     │
    │  ┌──────┴────────────────┴────────────────┴──────┐             │
    │  │              CacheItemPool                     │   POOL      │
    │  │   key validation, expiry, deferred commit      │   LAYER     │
    │  └──────────────────────┬────────────────────────┘             │
    │                         │                                       │
    │  ┌──────────────────────┴────────────────────────┐             │
    │  │              Storage Backends                  │             │
    │  │   memo -> serializer -> compression codec      │   STORAGE   │
    │  │   ┌────────┐  ┌────────┐  ┌───────────┐       │   LAYER     │
    │  │   │  File  │  │ Redis  │  │ Memcached │       │             │
    │  │   └────────┘  └────────┘  └───────────┘       │             │
    │  └──────────────────────────────────────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from roadstash_core import Cache, CacheConfig

    config = CacheConfig.from_dict({
        "default": "file",
        "stores": {
            "file": {"driver": "file", "path": "/var/cache/app"},
            "redis": {"driver": "redis", "host": "localhost"},
        },
    })
    cache = Cache.from_config(config)

    cache.put("user.1", {"name": "Alice"}, ttl=3600)
    user = cache.get("user.1")

    # Compute on miss
    report = cache.remember("report", 300, build_report)

    # Tag-scoped invalidation
    cache.tags(["users"]).put("1", user)
    cache.tags(["users"]).flush()

    # Another configured store
    cache.store("redis").increment("visits")

    # Cache decorator
    @cache.cached(ttl=60)
    def get_expensive_data(id: str):
        return fetch_from_database(id)
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from roadstash_core.exceptions import (
    CacheError,
    InvalidKeyError,
    CompressionError,
    UnsupportedDriverError,
    AtomicCounterRequiredError,
)
from roadstash_core.clock import Clock, SystemClock, FrozenClock
from roadstash_core.config import CacheConfig, StoreConfig
from roadstash_core.events import (
    EventDispatcher,
    CacheEvent,
    CacheHit,
    CacheMissed,
    KeyWritten,
    KeyForgotten,
)
from roadstash_core.cache.item import CacheItem
from roadstash_core.cache.pool import CacheItemPool
from roadstash_core.cache.cache import Cache
from roadstash_core.cache.tagged import TaggedCache, TagIndex, CacheTagIndex
from roadstash_core.cache.warmup import CacheWarmer, WarmupStats
from roadstash_core.store.record import Record
from roadstash_core.store.memo import BoundedMemo
from roadstash_core.store.backend import (
    AtomicCounter,
    StorageBackend,
    StorageConfig,
    StorageStats,
)
from roadstash_core.store.memory import MemoryStore
from roadstash_core.store.file import FileStore
from roadstash_core.store.redis import RedisStore
from roadstash_core.store.memcached import MemcachedStore
from roadstash_core.factory import StoreFactory
from roadstash_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
)
from roadstash_core.protocol.codec import CompressionCodec
from roadstash_core.metrics.collector import (
    MetricsCollector,
    CacheMetrics,
)

__all__ = [
    # Errors
    "CacheError",
    "InvalidKeyError",
    "CompressionError",
    "UnsupportedDriverError",
    "AtomicCounterRequiredError",
    # Config
    "CacheConfig",
    "StoreConfig",
    "StoreFactory",
    "Clock",
    "SystemClock",
    "FrozenClock",
    # Cache
    "Cache",
    "CacheItem",
    "CacheItemPool",
    "TaggedCache",
    "TagIndex",
    "CacheTagIndex",
    "CacheWarmer",
    "WarmupStats",
    # Storage
    "Record",
    "BoundedMemo",
    "AtomicCounter",
    "StorageBackend",
    "StorageConfig",
    "StorageStats",
    "MemoryStore",
    "FileStore",
    "RedisStore",
    "MemcachedStore",
    # Protocol
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "CompressionCodec",
    # Events
    "EventDispatcher",
    "CacheEvent",
    "CacheHit",
    "CacheMissed",
    "KeyWritten",
    "KeyForgotten",
    # Metrics
    "MetricsCollector",
    "CacheMetrics",
]
