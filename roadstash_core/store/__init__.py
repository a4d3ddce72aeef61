"""Store module - Storage backends for caching."""

from roadstash_core.store.record import Record
from roadstash_core.store.memo import BoundedMemo
from roadstash_core.store.backend import (
    AtomicCounter,
    StorageBackend,
    StorageStats,
    StorageConfig,
)
from roadstash_core.store.memory import MemoryStore
from roadstash_core.store.file import FileStore, FileConfig
from roadstash_core.store.redis import RedisStore, RedisConfig, RedisEvictionPolicy
from roadstash_core.store.memcached import MemcachedStore, MemcachedConfig

__all__ = [
    "Record",
    "BoundedMemo",
    "AtomicCounter",
    "StorageBackend",
    "StorageStats",
    "StorageConfig",
    "MemoryStore",
    "FileStore",
    "FileConfig",
    "RedisStore",
    "RedisConfig",
    "RedisEvictionPolicy",
    "MemcachedStore",
    "MemcachedConfig",
]
