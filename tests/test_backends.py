"""Tests for storage backends.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import json
from datetime import date

import pytest

from roadstash_core.exceptions import CompressionError
from roadstash_core.protocol.codec import COMPRESSION_MARKER
from roadstash_core.store.backend import AtomicCounter, StorageConfig
from roadstash_core.store.file import FileConfig, FileStore
from roadstash_core.store.memcached import MemcachedConfig, MemcachedStore, RELATIVE_EXPIRY_LIMIT
from roadstash_core.store.memo import MISSING
from roadstash_core.store.memory import MemoryStore
from roadstash_core.store.record import Record
from roadstash_core.store.redis import RedisConfig, RedisStore

from conftest import EPOCH, FakeRedis


class TestStorageBackend:
    """Tests for behavior shared by every backend."""

    def test_set_get(self, memory_store):
        """Test set and get."""
        assert memory_store.set("key", Record(value={"a": 1}, expiry=EPOCH + 60))
        record = memory_store.get("key")
        assert record == Record(value={"a": 1}, expiry=EPOCH + 60)

    def test_missing_key(self, memory_store):
        """Missing keys are None, not errors."""
        assert memory_store.get("nope") is None
        assert memory_store.delete("nope") is True

    def test_memo_answers_repeat_reads(self, memory_store):
        """Second read of a key is served by the memo."""
        memory_store.set("key", Record(value=1))
        memory_store.memo.clear()

        memory_store.get("key")
        memory_store.get("key")
        assert memory_store.get_stats().reads == 1

    def test_memo_caches_absence(self, memory_store):
        """A miss is memoized as None."""
        assert memory_store.get("absent") is None
        assert memory_store.memo.lookup("absent") is None

    def test_delete_clears_memo(self, memory_store):
        """Delete removes the memo entry and the record."""
        memory_store.set("key", Record(value=1))
        memory_store.delete("key")

        assert memory_store.memo.lookup("key") is MISSING
        assert memory_store.get("key") is None

    def test_clear(self, memory_store):
        """Clear drops everything."""
        memory_store.set("a", Record(value=1))
        memory_store.set("b", Record(value=2))

        assert memory_store.clear()
        assert len(memory_store.memo) == 0
        assert memory_store.size() == 0

    def test_read_error_is_miss(self, flaky_store):
        """Read errors become misses and are not memoized."""
        flaky_store.set("key", Record(value=1))
        flaky_store.memo.clear()
        flaky_store.fail_reads.add("key")

        assert flaky_store.get("key") is None
        assert "key" not in flaky_store.memo
        assert flaky_store.get_stats().errors == 1

        flaky_store.fail_reads.clear()
        assert flaky_store.get("key").value == 1

    def test_write_error_is_false(self, flaky_store):
        """Write errors return False and leave no memo entry."""
        flaky_store.fail_writes.add("key")
        assert flaky_store.set("key", Record(value=1)) is False
        assert "key" not in flaky_store.memo

    def test_delete_error_is_false(self, flaky_store):
        """Delete errors return False."""
        flaky_store.set("key", Record(value=1))
        flaky_store.fail_deletes.add("key")
        assert flaky_store.delete("key") is False

    def test_batch_attempts_every_key(self, flaky_store):
        """Batch writes keep going after a failure."""
        flaky_store.fail_writes.add("b")
        records = {k: Record(value=k) for k in ["a", "b", "c"]}

        assert flaky_store.set_many(records) is False
        assert flaky_store.write_attempts == ["a", "b", "c"]
        assert flaky_store.get("c").value == "c"

    def test_get_many(self, memory_store):
        """Test get_many."""
        memory_store.set("a", Record(value=1))
        result = memory_store.get_many(["a", "b"])
        assert result == {"a": Record(value=1), "b": None}

    def test_large_value_compressed(self, memory_store):
        """Large payloads are stored with the compression marker."""
        value = "x" * 200000
        memory_store.set("big", Record(value=value))

        raw = memory_store.raw("big")
        assert raw.startswith(COMPRESSION_MARKER)
        assert len(raw) < 200000

        memory_store.memo.clear()
        assert memory_store.get("big").value == value

    def test_compression_toggle(self, memory_store):
        """Compression can be switched off fluently."""
        memory_store.with_compression(False).set("big", Record(value="x" * 200000))
        assert not memory_store.raw("big").startswith(COMPRESSION_MARKER)

        memory_store.with_compression(True).with_compression_threshold(10)
        memory_store.set("small", Record(value="y" * 100))
        assert memory_store.raw("small").startswith(COMPRESSION_MARKER)

    def test_corrupt_payload_reads_absent(self, memory_store):
        """Corrupt compressed payloads read as misses by default."""
        memory_store._data["bad"] = COMPRESSION_MARKER + b"garbage"
        assert memory_store.get("bad") is None
        assert memory_store.get_stats().errors == 1

    def test_corrupt_payload_strict(self, clock):
        """Strict decompression raises."""
        store = MemoryStore(StorageConfig(strict_decompression=True), clock=clock)
        store._data["bad"] = COMPRESSION_MARKER + b"garbage"
        with pytest.raises(CompressionError):
            store.get("bad")

    def test_json_serializer(self, clock):
        """Backends can persist JSON envelopes."""
        store = MemoryStore(StorageConfig(serializer="json"), clock=clock)
        store.set("key", Record(value={"name": "Alice"}))

        assert json.loads(store.raw("key")) == {"value": {"name": "Alice"}, "expiry": None}

    def test_memo_isolated_from_caller_values(self, memory_store):
        """Mutating a stored or returned value does not change the cache."""
        value = {"name": "Alice"}
        memory_store.set("user.1", Record(value=value))
        value["name"] = "Mallory"
        assert memory_store.get("user.1").value == {"name": "Alice"}

        memory_store.get("user.1").value["name"] = "Eve"
        assert memory_store.get("user.1").value == {"name": "Alice"}

    def test_elapsed_record_removes_key(self, memory_store):
        """Writing an already-expired record deletes the key and succeeds."""
        memory_store.set("key", Record(value=1))

        assert memory_store.set("key", Record(value=2, expiry=EPOCH - 1)) is True
        assert memory_store.raw("key") is None
        assert memory_store.get("key") is None

    def test_elapsed_record_delete_failure(self, flaky_store):
        """A failed removal of an expired write reports False."""
        flaky_store.fail_deletes.add("key")
        assert flaky_store.set("key", Record(value=1, expiry=EPOCH)) is False
        assert flaky_store.write_attempts == []

    def test_msgpack_int_keys(self, clock):
        """Integer dict keys survive a msgpack store round trip."""
        pytest.importorskip("msgpack")
        store = MemoryStore(StorageConfig(serializer="msgpack"), clock=clock)
        assert store.set("key", Record(value={1: "a"}))

        store.memo.clear()
        assert store.get("key").value == {1: "a"}

    def test_json_unserializable_write_fails(self, clock):
        """A value JSON cannot hold is not written."""
        store = MemoryStore(StorageConfig(serializer="json"), clock=clock)
        assert store.set("key", Record(value=date(2024, 1, 1))) is False
        assert store.get("key") is None
        assert store.get_stats().errors == 1

    def test_health_check(self, memory_store):
        """Test health check."""
        assert memory_store.health_check()
        assert memory_store.get("__health_check__") is None

    def test_memory_store_has_no_atomics(self, memory_store):
        """MemoryStore relies on the counter fallback."""
        assert not isinstance(memory_store, AtomicCounter)


class TestFileStore:
    """Tests for FileStore."""

    def test_layout(self, file_store):
        """One hashed file per key plus meta.json."""
        file_store.set("user.1", Record(value="alice"))

        path = file_store.path_for("user.1")
        assert path.exists()
        assert path.suffix == ".cache"
        assert len(path.stem) == 32

        meta = json.loads(file_store.meta_path.read_text())
        assert meta == {"user.1": EPOCH}

    def test_persists_across_instances(self, file_store, clock):
        """A new store on the same directory reads existing entries."""
        file_store.set("key", Record(value=[1, 2, 3]))

        reopened = FileStore(str(file_store.base_path), clock=clock)
        assert reopened.get("key").value == [1, 2, 3]
        assert reopened.item_count() == 1

    def test_compressed_on_disk(self, file_store):
        """A 200000 byte value is written with the marker and read back intact."""
        value = "z" * 200000
        file_store.set("big", Record(value=value))

        assert file_store.path_for("big").read_bytes()[:2] == b"C:"

        file_store.memo.clear()
        assert file_store.get("big").value == value

    def test_delete(self, file_store):
        """Delete removes the file and the access log entry."""
        file_store.set("key", Record(value=1))
        assert file_store.delete("key")

        assert not file_store.path_for("key").exists()
        assert "key" not in file_store.access_log()

    def test_lru_eviction(self, tmp_path, clock):
        """The least recently accessed key is evicted at capacity."""
        store = FileStore(str(tmp_path), FileConfig(max_items=2), clock=clock)

        store.set("a", Record(value=1))
        clock.travel(1)
        store.set("b", Record(value=2))
        clock.travel(1)
        store.memo.clear()
        store.get("a")
        clock.travel(1)
        store.set("c", Record(value=3))

        assert store.item_count() == 2
        assert not store.path_for("b").exists()
        assert store.path_for("a").exists()
        assert store.path_for("c").exists()

    def test_overwrite_does_not_evict(self, tmp_path, clock):
        """Rewriting an existing key at capacity evicts nothing."""
        store = FileStore(str(tmp_path), FileConfig(max_items=2), clock=clock)
        store.set("a", Record(value=1))
        store.set("b", Record(value=2))
        store.set("a", Record(value=3))

        assert store.item_count() == 2
        assert store.get("b").value == 2

    def test_max_capacity_shrinks(self, file_store, clock):
        """Lowering capacity evicts the oldest entries."""
        for i in range(5):
            file_store.set(f"k{i}", Record(value=i))
            clock.travel(1)

        file_store.max_capacity(2)
        assert sorted(file_store.access_log()) == ["k3", "k4"]

    def test_clear(self, file_store):
        """Clear removes every cache file."""
        file_store.set("a", Record(value=1))
        file_store.set("b", Record(value=2))

        assert file_store.clear()
        assert list(file_store.base_path.glob("*.cache")) == []
        assert file_store.access_log() == {}

    def test_unreadable_meta(self, tmp_path, clock):
        """A corrupt access log is ignored."""
        (tmp_path / "meta.json").write_text("{not json")
        store = FileStore(str(tmp_path), clock=clock)
        assert store.access_log() == {}

    def test_disk_usage(self, file_store):
        """Test disk usage."""
        file_store.set("a", Record(value="x" * 100))
        assert file_store.disk_usage() > 0


class TestRedisStore:
    """Tests for RedisStore."""

    def test_prefixed_keys(self, redis_store, fake_redis):
        """Keys are stored under the configured prefix."""
        redis_store.set("key", Record(value="v"))
        assert "cmp_cache:key" in fake_redis.data

    def test_ttl_applied(self, redis_store, fake_redis):
        """Expiring records get a PX expiry."""
        redis_store.set("key", Record(value="v", expiry=EPOCH + 60))
        assert fake_redis.expires["cmp_cache:key"] == pytest.approx(EPOCH + 60)

        redis_store.set("forever", Record(value="v"))
        assert "cmp_cache:forever" not in fake_redis.expires

    def test_round_trip(self, redis_store):
        """Test set and get through the client."""
        redis_store.set("key", Record(value={"a": [1, 2]}, expiry=EPOCH + 60))
        redis_store.memo.clear()
        assert redis_store.get("key") == Record(value={"a": [1, 2]}, expiry=EPOCH + 60)

    def test_integers_native(self, redis_store, fake_redis):
        """Integers are stored as decimal strings."""
        redis_store.set("count", Record(value=41))
        assert fake_redis.data["cmp_cache:count"] == b"41"

        assert redis_store.increment("count") == 42
        assert redis_store.get("count").value == 42

    def test_atomic_counter(self, redis_store):
        """RedisStore implements AtomicCounter."""
        assert isinstance(redis_store, AtomicCounter)
        assert redis_store.increment("hits", 5) == 5
        assert redis_store.decrement("hits", 2) == 3

    def test_increment_non_integer(self, redis_store):
        """Incrementing a non-integer value fails softly."""
        redis_store.set("name", Record(value="alice"))
        assert redis_store.increment("name") is None

    def test_clear_scoped_to_prefix(self, redis_store, fake_redis):
        """Clear only touches keys under the prefix."""
        fake_redis.data["other:key"] = b"keep"
        redis_store.set("a", Record(value=1))
        redis_store.set("b", Record(value=2))

        assert redis_store.clear()
        assert list(fake_redis.data) == ["other:key"]

    def test_get_many_uses_memo(self, redis_store):
        """Test get_many with partially memoized keys."""
        redis_store.set("a", Record(value="A"))
        redis_store.set("b", Record(value="B"))
        redis_store.memo.discard("b")

        result = redis_store.get_many(["a", "b", "c"])
        assert result["a"].value == "A"
        assert result["b"].value == "B"
        assert result["c"] is None

    def test_set_many_pipeline(self, redis_store, fake_redis):
        """Test set_many."""
        assert redis_store.set_many({
            "a": Record(value=1),
            "b": Record(value="two", expiry=EPOCH + 10),
        })
        assert fake_redis.data["cmp_cache:a"] == b"1"
        assert "cmp_cache:b" in fake_redis.expires

    def test_elapsed_integer_not_persisted(self, redis_store, fake_redis, clock):
        """Integers written with an elapsed expiry are deleted, not kept forever."""
        redis_store.set("n", Record(value=1))

        assert redis_store.set("n", Record(value=5, expiry=EPOCH - 10)) is True
        assert "cmp_cache:n" not in fake_redis.data
        assert fake_redis.expires == {}

        clock.travel(10000)
        reopened = RedisStore(client=fake_redis, clock=clock)
        assert reopened.get("n") is None

    def test_integer_expires_with_px(self, redis_store, fake_redis, clock):
        """Integer payloads rely on PX for their lifetime."""
        redis_store.set("n", Record(value=5, expiry=EPOCH + 5))
        assert fake_redis.data["cmp_cache:n"] == b"5"

        clock.travel(6)
        redis_store.memo.clear()
        assert redis_store.get("n") is None

    def test_set_many_elapsed_deletes(self, redis_store, fake_redis):
        """Pipelined writes delete records whose expiry already passed."""
        redis_store.set("old", Record(value=1))

        assert redis_store.set_many({
            "old": Record(value=2, expiry=EPOCH - 1),
            "new": Record(value=3, expiry=EPOCH + 10),
        })
        assert "cmp_cache:old" not in fake_redis.data
        assert fake_redis.data["cmp_cache:new"] == b"3"
        assert redis_store.get("old") is None

    def test_delete_many(self, redis_store, fake_redis):
        """Test delete_many."""
        redis_store.set("a", Record(value=1))
        redis_store.set("b", Record(value=2))

        assert redis_store.delete_many(["a", "b", "missing"])
        assert fake_redis.data == {}

    def test_connection_errors(self, redis_store, fake_redis):
        """Connection failures degrade to misses and False."""
        fake_redis.fail = True

        assert redis_store.get("key") is None
        assert redis_store.set("key", Record(value=1)) is False
        assert redis_store.delete("key") is False
        assert redis_store.increment("key") is None
        assert redis_store.get_many(["key"]) == {"key": None}
        assert redis_store.set_many({"key": Record(value=1)}) is False

    def test_server_settings(self, clock):
        """Eviction policy and memory limit are sent on first use."""
        client = FakeRedis(clock)
        store = RedisStore(
            RedisConfig(eviction_policy="allkeys-lru", max_memory=1024),
            client=client,
            clock=clock,
        )
        store.get("key")

        assert client.server_config == {"maxmemory-policy": "allkeys-lru", "maxmemory": "1024"}

    def test_get_info(self, redis_store):
        """Test server info summary."""
        redis_store.set("a", Record(value=1))
        info = redis_store.get_info()
        assert info["connected"]
        assert info["total_keys"] == 1


class TestMemcachedStore:
    """Tests for MemcachedStore."""

    def test_round_trip(self, memcached_store, fake_memcache):
        """Test set and get."""
        memcached_store.set("key", Record(value={"a": 1}))
        memcached_store.memo.clear()

        assert "cache:key" in fake_memcache.data
        assert memcached_store.get("key").value == {"a": 1}

    def test_expire_values(self, memcached_store, fake_memcache):
        """TTLs map onto memcached's relative and absolute expire."""
        memcached_store.set("forever", Record(value=1))
        memcached_store.set("short", Record(value=1, expiry=EPOCH + 60))
        memcached_store.set("fraction", Record(value=1, expiry=EPOCH + 0.2))
        long_expiry = EPOCH + RELATIVE_EXPIRY_LIMIT + 100
        memcached_store.set("long", Record(value=1, expiry=long_expiry))

        assert dict(fake_memcache.set_calls) == {
            "cache:forever": 0,
            "cache:short": 60,
            "cache:fraction": 1,
            "cache:long": int(long_expiry),
        }

    def test_already_expired_deleted(self, memcached_store, fake_memcache):
        """Records past their expiry delete the key like every other store."""
        memcached_store.set("old", Record(value=1))
        fake_memcache.set_calls.clear()

        assert memcached_store.set("old", Record(value=2, expiry=EPOCH - 1)) is True
        assert fake_memcache.set_calls == []
        assert "cache:old" not in fake_memcache.data

    def test_delete(self, memcached_store):
        """Deleting absent or present keys succeeds."""
        memcached_store.set("key", Record(value=1))
        assert memcached_store.delete("key")
        assert memcached_store.delete("key")
        assert memcached_store.get("key") is None

    def test_clear_flushes_instance(self, memcached_store, fake_memcache):
        """Clear flushes the whole server."""
        fake_memcache.data["other:key"] = b"x"
        memcached_store.set("key", Record(value=1))

        assert memcached_store.clear()
        assert fake_memcache.flushes == 1
        assert fake_memcache.data == {}

    def test_no_atomics(self, memcached_store):
        """MemcachedStore relies on the counter fallback."""
        assert not isinstance(memcached_store, AtomicCounter)

    def test_max_capacity_advisory(self, memcached_store):
        """Memory limits cannot be set from the client."""
        assert memcached_store.max_capacity(1024) is False

    def test_custom_prefix(self, fake_memcache, clock):
        """Test configurable prefix."""
        store = MemcachedStore(MemcachedConfig(prefix="app:"), client=fake_memcache, clock=clock)
        store.set("key", Record(value=1))
        assert "app:key" in fake_memcache.data

    def test_connection_errors(self, memcached_store, fake_memcache):
        """Connection failures degrade to misses and False."""
        fake_memcache.fail = True
        assert memcached_store.get("key") is None
        assert memcached_store.set("key", Record(value=1)) is False
        assert memcached_store.clear() is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
