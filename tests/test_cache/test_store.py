"""Tests for CacheStore: TTL rules, expiry, persistence, and eviction-and-retry."""

from __future__ import annotations

import json
from typing import Optional

import pytest

from fetchcache.cache import (
    CacheStore,
    EvictionPolicy,
    MemoryStorage,
    PersistenceAdapter,
    WriteResult,
    WriteStatus,
)
from fetchcache.exceptions import PersistenceError, SerializationError
from fetchcache.models import CacheConfig, CacheEntry

NOW_MS = 1_700_000_000_000


class RecordingStorage:
    """Backend that records every blob and rejects those with too many entries."""

    def __init__(self, max_entries: Optional[int] = None, fail_with: Optional[Exception] = None) -> None:
        self.max_entries = max_entries
        self.fail_with = fail_with
        self.writes: list[list[str]] = []
        self.items: dict[str, str] = {}

    def is_available(self) -> bool:
        return True

    def get_item(self, slot: str) -> Optional[str]:
        return self.items.get(slot)

    def set_item(self, slot: str, text: str) -> WriteResult:
        keys = list(json.loads(text))
        self.writes.append(keys)
        if self.fail_with is not None:
            return WriteResult.failed(self.fail_with)
        if self.max_entries is not None and len(keys) > self.max_entries:
            return WriteResult.quota_exceeded()
        self.items[slot] = text
        return WriteResult.ok()

    def close(self) -> None:
        pass


def _store(backend, clock) -> CacheStore:
    return CacheStore(PersistenceAdapter(backend, CacheConfig()), EvictionPolicy(), clock)


# ------------------------------------------------------------------ #
# Core get/set/delete
# ------------------------------------------------------------------ #


class TestGetSet:
    def test_get_missing_returns_none(self, store: CacheStore) -> None:
        assert store.get("https://api.example.com/nothing") is None

    def test_set_then_get(self, store: CacheStore) -> None:
        entry = CacheEntry(expires_at=NOW_MS + 1000, value={"id": 1})
        result = store.set("/users/1", entry)
        assert result.is_ok
        assert store.get("/users/1") == entry

    def test_set_replaces_whole_entry(self, store: CacheStore) -> None:
        store.set("/users/1", CacheEntry(expires_at=None, value={"id": 1, "name": "a"}))
        store.set("/users/1", CacheEntry(expires_at=NOW_MS + 5, value={"id": 1}))
        assert store.get("/users/1") == CacheEntry(expires_at=NOW_MS + 5, value={"id": 1})
        assert len(store) == 1

    def test_delete_is_idempotent(self, store: CacheStore) -> None:
        store.put("/users/1", {"id": 1})
        store.delete("/users/1")
        store.delete("/users/1")
        assert "/users/1" not in store

    def test_replace_all(self, store: CacheStore) -> None:
        store.put("/old", {"x": 1})
        store.replace_all({"/new": CacheEntry(value=[1, 2])})
        assert store.keys() == ["/new"]

    def test_set_persists_whole_store(self, store: CacheStore, storage: MemoryStorage) -> None:
        store.put("/a", {"a": 1})
        store.put("/b", {"b": 2}, expires=False)
        blob = json.loads(storage.get_item("fetchcache"))
        assert blob == {
            "/a": {"expiresAt": NOW_MS + 300_000, "value": {"a": 1}},
            "/b": {"expiresAt": None, "value": {"b": 2}},
        }

    def test_clear_persists_empty_store(self, store: CacheStore, storage: MemoryStorage) -> None:
        store.put("/a", {"a": 1})
        store.clear()
        assert len(store) == 0
        assert json.loads(storage.get_item("fetchcache")) == {}


# ------------------------------------------------------------------ #
# TTL computation and expiry
# ------------------------------------------------------------------ #


class TestExpiry:
    def test_default_ttl_is_five_minutes(self, store: CacheStore) -> None:
        entry = store.make_entry({"id": 1})
        assert entry.expires_at == NOW_MS + 300_000

    def test_explicit_ttl(self, store: CacheStore) -> None:
        assert store.make_entry({}, expires=60).expires_at == NOW_MS + 60_000

    def test_zero_ttl_falls_back_to_default(self, store: CacheStore) -> None:
        assert store.make_entry({}, expires=0).expires_at == NOW_MS + 300_000

    def test_expires_false_never_expires(self, store: CacheStore, clock) -> None:
        entry = store.make_entry({}, expires=False)
        assert entry.expires_at is None
        clock.advance(10 * 365 * 24 * 3600)
        assert store.is_usable(entry)

    def test_negative_ttl_rejected(self, store: CacheStore) -> None:
        with pytest.raises(ValueError):
            store.make_entry({}, expires=-5)

    def test_true_is_not_a_ttl(self, store: CacheStore) -> None:
        with pytest.raises(ValueError, match="expires=True"):
            store.make_entry({}, expires=True)

    def test_usable_until_the_expiry_instant(self, store: CacheStore, clock) -> None:
        entry = CacheEntry(expires_at=NOW_MS + 1000, value={})
        clock.now = NOW_MS + 999
        assert store.is_usable(entry)
        clock.now = NOW_MS + 1000
        assert not store.is_usable(entry)

    def test_lookup_hides_expired_but_keeps_it_stored(self, store: CacheStore, clock) -> None:
        store.put("/users/1", {"id": 1}, expires=10)
        clock.advance(11)
        assert store.lookup("/users/1") is None
        assert store.get("/users/1") is not None

    def test_keys_keep_insertion_order_and_expired_entries(self, store: CacheStore, clock) -> None:
        store.put("/b", 1, expires=1)
        store.put("/a", 2, expires=60)
        clock.advance(5)
        assert store.keys() == ["/b", "/a"]
        assert store.lookup("/b") is None

    def test_stats_counts_expired(self, store: CacheStore, clock) -> None:
        store.put("/a", {}, expires=10)
        store.put("/b", {}, expires=100)
        clock.advance(50)
        stats = store.stats()
        assert stats["entries"] == 2
        assert stats["expired"] == 1
        assert stats["persistent"] is True


# ------------------------------------------------------------------ #
# Quota pressure
# ------------------------------------------------------------------ #


class TestEvictionAndRetry:
    def test_evicts_closest_to_expiry_in_order(self, clock) -> None:
        backend = RecordingStorage(max_entries=-1)  # every write is over quota
        store = _store(backend, clock)
        store.replace_all({
            "/t2": CacheEntry(expires_at=NOW_MS + 2000, value=2),
            "/t1": CacheEntry(expires_at=NOW_MS + 1000, value=1),
            "/t3": CacheEntry(expires_at=NOW_MS + 3000, value=3),
        })

        result = store.flush()

        assert result.status is WriteStatus.QUOTA_EXCEEDED
        assert len(store) == 0
        assert backend.writes == [
            ["/t2", "/t1", "/t3"],
            ["/t2", "/t3"],
            ["/t3"],
            [],
        ]

    def test_stops_once_a_write_fits(self, clock) -> None:
        backend = RecordingStorage(max_entries=2)
        store = _store(backend, clock)
        store.put("/a", "a", expires=30)
        store.put("/b", "b", expires=10)

        result = store.put("/c", "c", expires=60)

        assert result.is_ok
        assert store.keys() == ["/a", "/c"]

    def test_undated_entries_evicted_last(self, clock) -> None:
        backend = RecordingStorage(max_entries=1)
        store = _store(backend, clock)
        store.replace_all({
            "/forever": CacheEntry(expires_at=None, value=0),
            "/soon": CacheEntry(expires_at=NOW_MS + 10, value=1),
        })

        store.put("/later", 2, expires=60)

        assert store.keys() == ["/forever"]
        assert "/soon" not in store

    def test_eviction_bounded_by_store_size(self, clock) -> None:
        backend = RecordingStorage(max_entries=-1)
        store = _store(backend, clock)
        store.replace_all({f"/{i}": CacheEntry(expires_at=NOW_MS + i, value=i) for i in range(5)})

        store.flush()

        # one initial save plus one retry per evicted entry
        assert len(backend.writes) == 6


# ------------------------------------------------------------------ #
# Failures that are not quota
# ------------------------------------------------------------------ #


class TestFailures:
    def test_serialization_error_propagates_after_memory_write(self, store: CacheStore) -> None:
        with pytest.raises(SerializationError):
            store.put("/bad", {"when": object()})
        assert "/bad" in store

    def test_backend_error_raises_persistence_error(self, clock) -> None:
        store = _store(RecordingStorage(fail_with=OSError("disk gone")), clock)
        with pytest.raises(PersistenceError, match="disk gone"):
            store.put("/a", "a")
        assert "/a" in store
