"""Shared fixtures for RoadStash tests.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import fnmatch
from typing import Dict, List, Optional, Set

import pytest

from roadstash_core.cache.cache import Cache
from roadstash_core.cache.pool import CacheItemPool
from roadstash_core.clock import FrozenClock
from roadstash_core.store.file import FileConfig, FileStore
from roadstash_core.store.memcached import MemcachedStore, RELATIVE_EXPIRY_LIMIT
from roadstash_core.store.memory import MemoryStore
from roadstash_core.store.redis import RedisStore

EPOCH = 1_700_000_000.0


class FlakyStore(MemoryStore):
    """MemoryStore whose physical operations fail for chosen keys."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_reads: Set[str] = set()
        self.fail_writes: Set[str] = set()
        self.fail_deletes: Set[str] = set()
        self.write_attempts: List[str] = []
        self.delete_attempts: List[str] = []

    def _read(self, key):
        if key in self.fail_reads:
            raise OSError(f"read failed for {key}")
        return super()._read(key)

    def _write(self, key, payload, record):
        self.write_attempts.append(key)
        if key in self.fail_writes:
            raise OSError(f"write failed for {key}")
        return super()._write(key, payload, record)

    def _remove(self, key):
        self.delete_attempts.append(key)
        if key in self.fail_deletes:
            raise OSError(f"delete failed for {key}")
        return super()._remove(key)


class FakeRedisPipeline:
    """Buffers SET and DEL commands like redis-py's pipeline."""

    def __init__(self, client: "FakeRedis"):
        self._client = client
        self._commands = []

    def set(self, key, value, px=None):
        self._commands.append(lambda: self._client.set(key, value, px=px))
        return self

    def delete(self, *keys):
        self._commands.append(lambda: self._client.delete(*keys))
        return self

    def execute(self):
        self._client._check()
        results = [command() for command in self._commands]
        self._commands = []
        return results


class FakeRedis:
    """In-memory stand-in for a redis.Redis client with bytes responses."""

    def __init__(self, clock: FrozenClock):
        self.clock = clock
        self.data: Dict[str, bytes] = {}
        self.expires: Dict[str, float] = {}
        self.server_config: Dict[str, str] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("Connection refused")

    def _alive(self, key: str) -> bool:
        expires_at = self.expires.get(key)
        if expires_at is not None and expires_at <= self.clock.timestamp():
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return key in self.data

    def ping(self):
        self._check()
        return True

    def get(self, key):
        self._check()
        return self.data[key] if self._alive(key) else None

    def mget(self, keys):
        self._check()
        return [self.get(k) for k in keys]

    def set(self, key, value, px=None):
        self._check()
        self.data[key] = bytes(value)
        if px:
            self.expires[key] = self.clock.timestamp() + px / 1000
        else:
            self.expires.pop(key, None)
        return True

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self.data.pop(key, None)
            self.expires.pop(key, None)
        return removed

    def scan(self, cursor=0, match=None, count=None):
        self._check()
        keys = [k for k in list(self.data) if match is None or fnmatch.fnmatch(k, match)]
        return 0, keys

    def incrby(self, key, amount=1):
        self._check()
        current = self.data[key] if self._alive(key) else b"0"
        try:
            value = int(current) + amount
        except ValueError:
            raise ValueError("value is not an integer or out of range")
        self.data[key] = str(value).encode("ascii")
        return value

    def decrby(self, key, amount=1):
        return self.incrby(key, -amount)

    def pipeline(self, transaction=True):
        return FakeRedisPipeline(self)

    def config_set(self, name, value):
        self._check()
        self.server_config[name] = value
        return True

    def info(self):
        self._check()
        return {
            "used_memory_human": "1.00M",
            "used_memory_peak_human": "2.00M",
            "uptime_in_days": 3,
        }

    def dbsize(self):
        return len(self.data)


class FakeMemcache:
    """In-memory stand-in for a pymemcache base Client."""

    def __init__(self, clock: FrozenClock):
        self.clock = clock
        self.data: Dict[str, bytes] = {}
        self.expires: Dict[str, Optional[float]] = {}
        self.set_calls: List[tuple] = []
        self.flushes = 0
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("Connection refused")

    def get(self, key):
        self._check()
        expires_at = self.expires.get(key)
        if expires_at is not None and expires_at <= self.clock.timestamp():
            self.data.pop(key, None)
        return self.data.get(key)

    def set(self, key, value, expire=0, noreply=None):
        self._check()
        self.set_calls.append((key, expire))
        self.data[key] = bytes(value)
        if expire == 0:
            self.expires[key] = None
        elif expire > RELATIVE_EXPIRY_LIMIT:
            self.expires[key] = float(expire)
        else:
            self.expires[key] = self.clock.timestamp() + expire
        return True

    def delete(self, key, noreply=None):
        self._check()
        return self.data.pop(key, None) is not None

    def flush_all(self, delay=0, noreply=None):
        self._check()
        self.flushes += 1
        self.data.clear()
        self.expires.clear()
        return True

    def close(self):
        pass


@pytest.fixture
def clock():
    return FrozenClock(EPOCH)


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def flaky_store(clock):
    return FlakyStore(clock=clock)


@pytest.fixture
def file_store(tmp_path, clock):
    return FileStore(str(tmp_path / "cache"), FileConfig(max_items=1000), clock=clock)


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def redis_store(fake_redis, clock):
    return RedisStore(client=fake_redis, clock=clock)


@pytest.fixture
def fake_memcache(clock):
    return FakeMemcache(clock)


@pytest.fixture
def memcached_store(fake_memcache, clock):
    return MemcachedStore(client=fake_memcache, clock=clock)


@pytest.fixture
def cache(memory_store):
    return Cache(CacheItemPool(memory_store))
