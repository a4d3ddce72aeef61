"""RoadStash Memcached Store - Memcached Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from roadstash_core.clock import Clock
from roadstash_core.store.backend import StorageBackend, StorageConfig
from roadstash_core.store.record import Record

logger = logging.getLogger(__name__)

# Memcached reads expirations beyond 30 days as absolute unix timestamps
RELATIVE_EXPIRY_LIMIT = 60 * 60 * 24 * 30


@dataclass
class MemcachedConfig(StorageConfig):
    """Memcached-specific configuration.

    Attributes:
        host: Memcached host
        port: Memcached port
        connect_timeout: Connection timeout
        timeout: Socket timeout
        prefix: Key prefix
    """

    host: str = "localhost"
    port: int = 11211
    connect_timeout: float = 5.0
    timeout: float = 5.0
    prefix: str = "cache:"


class MemcachedStore(StorageBackend):
    """Memcached storage backend.

    Keys are namespaced as ``{prefix}{key}``. Memcached has no prefix-scoped
    delete, so ``clear`` flushes the ENTIRE instance: stores sharing one
    Memcached server must be isolated by connection, not by prefix.

    Memcached rejects keys containing whitespace or control characters;
    such writes fail and are reported as ``False``.

    Example:
        store = MemcachedStore(client=pymemcache.client.base.Client("localhost"))
        store.set("key", Record(value="data"))
        record = store.get("key")
    """

    def __init__(
        self,
        config: Optional[MemcachedConfig] = None,
        client: Optional[Any] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize Memcached store.

        Args:
            config: Memcached configuration
            client: Existing pymemcache client
            clock: Time source for TTL calculations
        """
        super().__init__(config or MemcachedConfig(), clock)
        self.config: MemcachedConfig
        self._client = client
        self._owns_client = client is None

    @property
    def prefix(self) -> str:
        return self.config.prefix

    def _ensure_connected(self) -> Any:
        """Ensure Memcached client exists.

        Returns:
            pymemcache client
        """
        if self._client is not None:
            return self._client

        try:
            from pymemcache.client.base import Client
        except ImportError:
            raise ImportError("pymemcache package not installed. Run: pip install pymemcache")

        self._client = Client(
            (self.config.host, self.config.port),
            connect_timeout=self.config.connect_timeout,
            timeout=self.config.timeout,
        )
        logger.info(f"Using Memcached at {self.config.host}:{self.config.port}")
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    def _read(self, key: str) -> Optional[bytes]:
        return self._ensure_connected().get(self._make_key(key))

    def _write(self, key: str, payload: bytes, record: Record) -> bool:
        ttl = self._ttl_seconds(record)

        if ttl is None:
            expire = 0
        elif ttl > RELATIVE_EXPIRY_LIMIT:
            expire = int(math.ceil(record.expiry))
        else:
            expire = max(1, int(math.ceil(ttl)))

        result = self._ensure_connected().set(self._make_key(key), payload, expire=expire, noreply=False)
        if not result:
            logger.error(f"Memcached set failed for {key}")
        return bool(result)

    def _remove(self, key: str) -> bool:
        # False from pymemcache means NOT_FOUND, which counts as deleted
        self._ensure_connected().delete(self._make_key(key), noreply=False)
        return True

    def _flush(self) -> bool:
        logger.warning(
            f"Flushing entire Memcached instance for {self!r}; "
            f"entries outside prefix {self.config.prefix!r} are removed too"
        )
        return bool(self._ensure_connected().flush_all(noreply=False))

    def max_capacity(self, size: int) -> bool:
        """Advisory only: Memcached memory limits are set on the server.

        Returns:
            Always False
        """
        logger.warning(
            f"Memcached memory limits ({size} bytes requested) must be configured "
            f"in the memcached server settings"
        )
        return False

    def close(self) -> None:
        """Close the client this store created."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"MemcachedStore(host={self.config.host}, port={self.config.port}, prefix={self.config.prefix!r})"


__all__ = ["MemcachedStore", "MemcachedConfig"]
