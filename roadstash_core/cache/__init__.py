"""Cache module - Cache facade, item pool, tagging and warming.

This module provides the caller-facing cache API over a storage backend.
"""

from roadstash_core.cache.item import CacheItem
from roadstash_core.cache.pool import CacheItemPool, validate_key
from roadstash_core.cache.cache import Cache
from roadstash_core.cache.tagged import (
    TaggedCache,
    TagIndex,
    CacheTagIndex,
)
from roadstash_core.cache.warmup import (
    CacheWarmer,
    WarmupConfig,
    WarmupStats,
)

__all__ = [
    "CacheItem",
    "CacheItemPool",
    "validate_key",
    "Cache",
    "TaggedCache",
    "TagIndex",
    "CacheTagIndex",
    "CacheWarmer",
    "WarmupConfig",
    "WarmupStats",
]
