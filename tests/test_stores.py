#!/usr/bin/env python3
"""
Test Value Store Backends

Verifies the in-memory store and the Redis store (against a mocked client)
implement the same hash semantics.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from unittest.mock import Mock, patch

import redis

from hashmodel import MemoryStore, RedisStore, StoreError, get_memory_store


def test_memory_store_hashes():
    """Test basic hash writes and reads."""
    store = MemoryStore()

    store.write_hash("1", {"text": "hi", "tags": ""})
    assert store.read_hash("1") == {"text": "hi", "tags": ""}
    assert store.read_hash("absent") == {}
    assert store.exists("1")
    assert not store.exists("absent")

    print("✓ Hash write and read work")

    store.write_hash("1", {"text": "updated"})
    assert store.read_hash("1") == {"text": "updated", "tags": ""}

    print("✓ Writes merge into existing hashes")

    copy = store.read_hash("1")
    copy["text"] = "mutated"
    assert store.read_hash("1")["text"] == "updated"

    print("✓ Reads return copies")

    store.write_hash("empty", {})
    assert not store.exists("empty")

    assert store.delete("1")
    assert not store.delete("1")
    assert len(store) == 0

    print("✓ Empty writes and deletion work")


def test_memory_store_validation():
    """Test that only text keys and values are accepted."""
    store = MemoryStore()

    for key, mapping in (("", {"a": "b"}), ("k", {"a": 1}), (7, {"a": "b"})):
        try:
            store.write_hash(key, mapping)
            assert False, f"Should reject {key!r}: {mapping!r}"
        except StoreError:
            pass

    assert store.metrics.failures == 3
    assert store.metrics.writes == 0

    print("✓ Non-text keys and values rejected")


def test_memory_store_metrics():
    """Test operation counters."""
    store = MemoryStore()
    store.write_hash("a", {"x": "1"})
    store.read_hash("a")
    store.read_hash("b")
    store.delete("a")

    assert store.metrics.to_dict() == {
        "reads": 2, "writes": 1, "deletes": 1, "failures": 0, "last_error": None
    }

    store.metrics.reset()
    assert store.metrics.reads == 0

    print("✓ Metrics count operations")


def test_shared_memory_store():
    """Test the process-wide memory store."""
    assert get_memory_store() is get_memory_store()
    assert isinstance(get_memory_store(), MemoryStore)

    print("✓ Shared memory store is a singleton")


def test_redis_store_commands():
    """Test that the Redis store issues HSET / HGETALL."""
    client = Mock()
    client.hgetall.return_value = {b"text": b"hi", b"tags": b"2"}
    client.delete.return_value = 1
    client.exists.return_value = 0
    store = RedisStore(client=client)

    store.write_hash("1", {"text": "hi", "tags": "2"})
    client.hset.assert_called_once_with("1", mapping={"text": "hi", "tags": "2"})

    assert store.read_hash("1") == {"text": "hi", "tags": "2"}
    client.hgetall.assert_called_once_with("1")

    assert store.delete("1")
    assert not store.exists("1")

    store.write_hash("2", {})
    assert client.hset.call_count == 1

    assert store.metrics.writes == 2
    assert store.metrics.reads == 1

    print("✓ Redis store maps onto hash commands")


def test_redis_store_absent_key():
    """Test that an absent key reads as an empty mapping."""
    client = Mock()
    client.hgetall.return_value = {}
    store = RedisStore(client=client)

    assert store.read_hash("missing") == {}

    print("✓ Absent Redis key reads as empty")


def test_redis_store_errors():
    """Test that Redis errors become StoreError."""
    client = Mock()
    client.hset.side_effect = redis.ConnectionError("refused")
    client.hgetall.side_effect = redis.TimeoutError("slow")
    client.ping.side_effect = redis.ConnectionError("refused")
    store = RedisStore(client=client)

    try:
        store.write_hash("1", {"text": "hi"})
        assert False, "Should raise StoreError"
    except StoreError as e:
        assert isinstance(e.__cause__, redis.ConnectionError)

    try:
        store.read_hash("1")
        assert False, "Should raise StoreError"
    except StoreError:
        pass

    assert not store.ping()
    assert store.metrics.failures == 3
    assert store.metrics.last_error == "refused"

    print("✓ Redis errors wrapped in StoreError")


def test_redis_store_connects_from_url():
    """Test client creation from a URL."""
    with patch("hashmodel.persistence.redis_store.redis.from_url") as from_url:
        store = RedisStore("redis://cache:6379/2", socket_timeout=1.5)

    from_url.assert_called_once_with("redis://cache:6379/2", decode_responses=True, socket_timeout=1.5)
    assert store.client is from_url.return_value

    store.close()
    from_url.return_value.close.assert_called_once()

    print("✓ Redis store connects from URL")


if __name__ == "__main__":
    test_memory_store_hashes()
    test_memory_store_validation()
    test_memory_store_metrics()
    test_shared_memory_store()
    test_redis_store_commands()
    test_redis_store_absent_key()
    test_redis_store_errors()
    test_redis_store_connects_from_url()
    print("\n🎉 All store tests passed!")
