"""
Tests for the bounded TTL cache.
"""

import threading
import time

import pytest

from classes.expiring_cache import ExpiringCache


class TestBasicOperations:

    def test_set_and_get(self):
        cache = ExpiringCache(10, 60)
        cache.set("a", {"id": 1})

        assert cache.get("a") == {"id": 1}

    def test_missing_key(self):
        assert ExpiringCache(10, 60).get("nope") is None

    def test_delete_reports_presence(self):
        cache = ExpiringCache(10, 60)
        cache.set("a", 1)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.get("a") is None

    def test_clear_and_size(self):
        cache = ExpiringCache(10, 60)
        for i in range(4):
            cache.set(f"k{i}", i)
        assert cache.size == 4

        cache.clear()

        assert cache.size == 0
        assert cache.get("k0") is None

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ExpiringCache(0, 60)

    def test_overwrite_keeps_single_entry(self):
        cache = ExpiringCache(10, 60)
        cache.set("a", 1)
        cache.set("a", 2)

        assert cache.get("a") == 2
        assert cache.size == 1


class TestCapacity:

    def test_size_never_exceeds_capacity(self):
        cache = ExpiringCache(3, 60)
        for i in range(20):
            cache.set(f"k{i}", i)
            assert cache.size <= 3

    def test_oldest_entry_is_evicted(self):
        cache = ExpiringCache(3, 60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        cache.set("d", 4)

        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3
        assert cache.get("d") == 4

    def test_read_protects_entry_from_eviction(self):
        cache = ExpiringCache(3, 60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert cache.get("a") == 1
        cache.set("d", 4)

        assert cache.get("a") == 1
        assert cache.get("b") is None

    def test_resetting_existing_key_at_capacity_evicts_nothing(self):
        cache = ExpiringCache(2, 60)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.set("a", 10)

        assert cache.size == 2
        assert cache.get("b") == 2
        assert cache.get("a") == 10


class TestExpiry:

    def test_entry_expires_after_ttl(self, clock):
        cache = ExpiringCache(10, 60, clock=clock)
        cache.set("a", 1)

        clock.advance(59)
        assert cache.get("a") == 1

        clock.advance(2)
        assert cache.get("a") is None

    def test_expired_entry_is_removed_on_read(self, clock):
        cache = ExpiringCache(10, 60, clock=clock)
        cache.set("a", 1)
        clock.advance(61)

        assert cache.size == 1
        assert cache.get("a") is None
        assert cache.size == 0

    def test_per_entry_ttl_overrides_default(self, clock):
        cache = ExpiringCache(10, 300, clock=clock)
        cache.set("short", 1, ttl_seconds=5)
        cache.set("long", 2)

        clock.advance(10)

        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_zero_ttl_uses_default(self, clock):
        cache = ExpiringCache(10, 60, clock=clock)
        cache.set("a", 1, ttl_seconds=0)
        clock.advance(30)

        assert cache.get("a") == 1

    def test_read_does_not_extend_lifetime(self, clock):
        cache = ExpiringCache(10, 60, clock=clock)
        cache.set("a", 1)
        clock.advance(50)
        assert cache.get("a") == 1

        clock.advance(20)

        assert cache.get("a") is None

    def test_real_clock_expiry(self):
        cache = ExpiringCache(10, 60)
        cache.set("a", 1, ttl_seconds=1)
        assert cache.get("a") == 1

        time.sleep(1.1)

        assert cache.get("a") is None


class TestConcurrency:

    def test_parallel_writers_respect_capacity(self):
        cache = ExpiringCache(50, 60)

        def writer(prefix):
            for i in range(200):
                cache.set(f"{prefix}-{i}", i)
                cache.get(f"{prefix}-{i // 2}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.size <= 50
