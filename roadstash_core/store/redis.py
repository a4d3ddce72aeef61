"""RoadStash Redis Store - Redis Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from roadstash_core.clock import Clock
from roadstash_core.store.backend import AtomicCounter, StorageBackend, StorageConfig
from roadstash_core.store.memo import MISSING
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)

_INTEGER_PAYLOAD = re.compile(rb"-?[0-9]+")


class RedisEvictionPolicy(Enum):
    """Server-side ``maxmemory-policy`` values."""

    NOEVICTION = "noeviction"
    ALLKEYS_LRU = "allkeys-lru"
    ALLKEYS_LFU = "allkeys-lfu"
    ALLKEYS_RANDOM = "allkeys-random"
    VOLATILE_LRU = "volatile-lru"
    VOLATILE_LFU = "volatile-lfu"
    VOLATILE_RANDOM = "volatile-random"
    VOLATILE_TTL = "volatile-ttl"


@dataclass
class RedisConfig(StorageConfig):
    """Redis-specific configuration.

    Attributes:
        host: Redis host
        port: Redis port
        db: Redis database number
        password: Redis password
        socket_timeout: Socket timeout
        socket_connect_timeout: Connection timeout
        max_connections: Connection pool size
        prefix: Key prefix
        eviction_policy: Server eviction policy applied on connect
        max_memory: Server memory limit in bytes applied on connect
    """

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    max_connections: int = 10
    prefix: str = "cmp_cache:"
    eviction_policy: Optional[str] = None
    max_memory: Optional[int] = None


class RedisStore(StorageBackend, AtomicCounter):
    """Redis storage backend.

    Keys are namespaced as ``{prefix}{key}``. Records with an expiry are
    written with a matching ``PX`` so Redis drops them on its own; the pool
    still checks expiry on read. Integer values are stored as plain decimal
    strings so that ``INCRBY``/``DECRBY`` work on keys written with ``put``;
    their lifetime is carried by ``PX`` alone.

    Multi-key reads use ``MGET`` and multi-key writes a pipeline. ``clear``
    scans the prefix in batches since Redis has no delete-by-prefix.

    The client must return bytes (``decode_responses=False``). A client passed
    in is owned by the caller and never closed here.

    Example:
        store = RedisStore(client=redis.Redis())
        store.set("key", Record(value="data", expiry=time.time() + 60))
        record = store.get("key")
    """

    SCAN_BATCH = 100

    def __init__(
        self,
        config: Optional[RedisConfig] = None,
        client: Optional[Any] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize Redis store.

        Args:
            config: Redis configuration
            client: Existing redis.Redis client
            clock: Time source for TTL calculations
        """
        super().__init__(config or RedisConfig(), clock)
        self.config: RedisConfig
        self._client = client
        self._owns_client = client is None
        self._pool: Optional[Any] = None
        self._server_configured = False

    @property
    def prefix(self) -> str:
        return self.config.prefix

    def _ensure_connected(self) -> Any:
        """Ensure Redis connection exists.

        Returns:
            Redis client
        """
        if self._client is None:
            try:
                import redis
            except ImportError:
                raise ImportError("Redis package not installed. Run: pip install redis")

            self._pool = redis.ConnectionPool(
                host=self.config.host,
                port=self.config.port,
                db=self.config.db,
                password=self.config.password,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                max_connections=self.config.max_connections,
                decode_responses=False,
            )
            self._client = redis.Redis(connection_pool=self._pool)
            self._client.ping()
            logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}")

        if not self._server_configured:
            self._server_configured = True
            if self.config.eviction_policy:
                self.with_eviction_policy(RedisEvictionPolicy(self.config.eviction_policy))
            if self.config.max_memory:
                self.max_capacity(self.config.max_memory)

        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    def _encode(self, record: Record) -> bytes:
        if type(record.value) is int:
            return str(record.value).encode("ascii")
        return super()._encode(record)

    def _decode(self, key: str, payload: bytes) -> Optional[Record]:
        if _INTEGER_PAYLOAD.fullmatch(payload):
            return Record(value=int(payload))
        return super()._decode(key, payload)

    def _read(self, key: str) -> Optional[bytes]:
        return self._ensure_connected().get(self._make_key(key))

    def _write(self, key: str, payload: bytes, record: Record) -> bool:
        client = self._ensure_connected()
        ttl = self._ttl_seconds(record)

        if ttl is not None:
            return bool(client.set(self._make_key(key), payload, px=max(1, int(ttl * 1000))))
        return bool(client.set(self._make_key(key), payload))

    def _remove(self, key: str) -> bool:
        # DEL reports 0 for absent keys; deleting is idempotent either way
        self._ensure_connected().delete(self._make_key(key))
        return True

    def _flush(self) -> bool:
        client = self._ensure_connected()
        pattern = f"{self.config.prefix}*"

        cursor = 0
        while True:
            cursor, keys = client.scan(cursor, match=pattern, count=self.SCAN_BATCH)
            if keys:
                client.delete(*keys)
            if cursor == 0:
                break

        return True

    def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[Record]]:
        """Get multiple records with a single MGET for memo misses.

        Args:
            keys: Cache keys

        Returns:
            Dict of key -> record (None for misses)
        """
        keys = list(keys)
        found: Dict[str, Optional[Record]] = {}
        pending: List[str] = []

        for key in keys:
            memoized = self._memo.lookup(key)
            if memoized is MISSING:
                pending.append(key)
            else:
                found[key] = self._decode(key, memoized) if memoized is not None else None

        if pending:
            try:
                self._stats.reads += len(pending)
                payloads = self._ensure_connected().mget([self._make_key(k) for k in pending])
            except Exception as e:
                logger.error(f"Redis mget error: {e}")
                self._stats.record_error(str(e))
                payloads = None

            for index, key in enumerate(pending):
                if payloads is None:
                    found[key] = None
                    continue
                payload = payloads[index]
                record = self._decode(key, payload) if payload is not None else None
                self._memo.put(key, payload if record is not None else None)
                found[key] = record

        return {key: found[key] for key in keys}

    def set_many(self, records: Mapping[str, Record]) -> bool:
        """Store multiple records through one pipeline.

        Records whose expiry has already passed are deleted in the same
        pipeline.

        Args:
            records: Dict of key -> record

        Returns:
            True if all writes succeeded
        """
        if not records:
            return True

        payloads: Dict[str, Optional[bytes]] = {}
        try:
            pipe = self._ensure_connected().pipeline(transaction=False)
            for key, record in records.items():
                ttl = self._ttl_seconds(record)
                if ttl is not None and ttl <= 0:
                    payloads[key] = None
                    pipe.delete(self._make_key(key))
                    continue

                payload = self._encode(record)
                payloads[key] = payload
                if ttl is not None:
                    pipe.set(self._make_key(key), payload, px=max(1, int(ttl * 1000)))
                else:
                    pipe.set(self._make_key(key), payload)
            results = pipe.execute()
        except Exception as e:
            logger.error(f"Redis pipeline set error: {e}")
            self._stats.record_error(str(e))
            for key in records:
                self._memo.discard(key)
            return False

        success = True
        for (key, payload), result in zip(payloads.items(), results):
            if payload is None:
                self._stats.deletes += 1
                self._memo.discard(key)
            elif result:
                self._stats.writes += 1
                self._memo.put(key, payload)
            else:
                success = False
                self._memo.discard(key)

        return success

    def delete_many(self, keys: Iterable[str]) -> bool:
        """Delete multiple records with a single DEL.

        Args:
            keys: Keys to delete

        Returns:
            True if successful
        """
        keys = list(keys)
        if not keys:
            return True

        for key in keys:
            self._memo.discard(key)

        try:
            self._ensure_connected().delete(*[self._make_key(k) for k in keys])
            self._stats.deletes += len(keys)
            return True
        except Exception as e:
            logger.error(f"Redis delete error: {e}")
            self._stats.record_error(str(e))
            return False

    def increment(self, key: str, delta: int = 1) -> Optional[int]:
        """Atomically increment a counter with INCRBY.

        Args:
            key: Cache key
            delta: Amount to increment

        Returns:
            New value, or None on failure
        """
        self._memo.discard(key)
        try:
            return int(self._ensure_connected().incrby(self._make_key(key), delta))
        except Exception as e:
            logger.error(f"Redis increment error for {key}: {e}")
            self._stats.record_error(str(e))
            return None

    def decrement(self, key: str, delta: int = 1) -> Optional[int]:
        """Atomically decrement a counter with DECRBY.

        Args:
            key: Cache key
            delta: Amount to decrement

        Returns:
            New value, or None on failure
        """
        self._memo.discard(key)
        try:
            return int(self._ensure_connected().decrby(self._make_key(key), delta))
        except Exception as e:
            logger.error(f"Redis decrement error for {key}: {e}")
            self._stats.record_error(str(e))
            return None

    def with_eviction_policy(self, policy: RedisEvictionPolicy) -> bool:
        """Set the server ``maxmemory-policy``.

        Args:
            policy: Eviction policy

        Returns:
            True if the server accepted it
        """
        try:
            return bool(self._ensure_connected().config_set("maxmemory-policy", policy.value))
        except Exception as e:
            logger.error(f"Redis eviction policy error: {e}")
            return False

    def max_capacity(self, size: int) -> bool:
        """Set the server ``maxmemory`` in bytes.

        Args:
            size: Memory limit in bytes

        Returns:
            True if the server accepted it
        """
        try:
            return bool(self._ensure_connected().config_set("maxmemory", str(size)))
        except Exception as e:
            logger.error(f"Redis maxmemory error: {e}")
            return False

    def get_info(self) -> Dict[str, Any]:
        """Get a summary of Redis server info.

        Returns:
            Server info dict
        """
        try:
            client = self._ensure_connected()
            info = client.info()
            return {
                "connected": True,
                "memory_used": info.get("used_memory_human", "N/A"),
                "memory_peak": info.get("used_memory_peak_human", "N/A"),
                "total_keys": client.dbsize(),
                "uptime_days": int(info.get("uptime_in_days", 0)),
            }
        except Exception as e:
            logger.error(f"Redis info error: {e}")
            return {"connected": False}

    def close(self) -> None:
        """Close the connection pool this store created."""
        if self._owns_client and self._pool:
            self._pool.disconnect()
            self._pool = None
            self._client = None
            self._server_configured = False

    def __repr__(self) -> str:
        return f"RedisStore(host={self.config.host}, port={self.config.port}, prefix={self.config.prefix!r})"


__all__ = ["RedisStore", "RedisConfig", "RedisEvictionPolicy"]
