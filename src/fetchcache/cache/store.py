"""The authoritative in-memory cache and its persistence trigger.

:class:`CacheStore` maps cache keys to :class:`~fetchcache.models.CacheEntry`
objects.  Every :meth:`~CacheStore.set` rewrites the persisted blob; when
the backend reports it is full, the store evicts entries one at a time via
its :class:`~fetchcache.cache.eviction.EvictionPolicy` and retries until a
save succeeds or nothing is left to evict.

One store is constructed per process (see :func:`fetchcache.cache.build_cache`)
and handed to every :class:`~fetchcache.interceptor.FetchInterceptor` that
should share it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Literal, Mapping, Optional, Union

from fetchcache.cache.eviction import EvictionPolicy
from fetchcache.cache.persistence import PersistenceAdapter
from fetchcache.cache.storage import WriteResult, WriteStatus
from fetchcache.clock import Clock, SystemClock
from fetchcache.exceptions import PersistenceError
from fetchcache.models import CacheEntry

logger = logging.getLogger(__name__)

Expires = Union[int, Literal[False], None]


class CacheStore:
    """Key to entry mapping that persists itself on every write.

    Args:
        persistence: Adapter that saves and loads the whole store.
        eviction: Policy consulted when a save hits the backend quota.
        clock: Time source for expiry checks and TTL computation.
        default_ttl_seconds: TTL used when a write does not specify one.

    Example::

        store = CacheStore(PersistenceAdapter(MemoryStorage(), CacheConfig()))
        store.put("https://api.example.com/users/1", {"id": 1})
        store.get("https://api.example.com/users/1").value  # {"id": 1}
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        eviction: Optional[EvictionPolicy] = None,
        clock: Optional[Clock] = None,
        default_ttl_seconds: int = 300,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._persistence = persistence
        self._eviction = eviction or EvictionPolicy()
        self._clock = clock or SystemClock()
        self._default_ttl_seconds = default_ttl_seconds

    # ------------------------------------------------------------------ #
    # Core contract
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under *key*, expired or not."""
        return self._entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> WriteResult:
        """Store *entry* under *key* and persist the whole store.

        The in-memory write always stands, whatever persistence reports.
        On quota pressure entries are evicted and the save retried; the
        returned result is that of the last save attempt.

        Raises:
            SerializationError: If the store cannot be encoded.
            PersistenceError: If the backend fails for a reason other
                than quota.
        """
        self._entries[key] = entry
        return self._persist()

    def delete(self, key: str) -> None:
        """Remove *key* from memory.  Missing keys are ignored."""
        self._entries.pop(key, None)

    def replace_all(self, entries: Mapping[str, CacheEntry]) -> None:
        """Swap the whole in-memory contents for *entries*."""
        self._entries = dict(entries)

    # ------------------------------------------------------------------ #
    # Conveniences built on the core contract
    # ------------------------------------------------------------------ #

    def prime(self) -> None:
        """Load the persisted blob into memory, replacing current contents."""
        self.replace_all(self._persistence.load())
        logger.debug("Primed cache with %d entries", len(self._entries))

    def is_usable(self, entry: CacheEntry) -> bool:
        """Whether *entry* has not yet expired."""
        return not entry.is_expired(self._clock.now_ms())

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key* only if it exists and is not expired."""
        entry = self._entries.get(key)
        if entry is None or not self.is_usable(entry):
            return None
        return entry

    def make_entry(self, value: Any, expires: Expires = None) -> CacheEntry:
        """Build an entry for *value* using the TTL rules.

        Args:
            value: Payload to cache.
            expires: TTL in seconds, ``False`` for no expiry, or ``None``
                (or ``0``) for the store's default TTL.
        """
        if expires is False:
            return CacheEntry(expires_at=None, value=value)
        if expires is True:
            raise ValueError("expires=True is not a TTL; pass seconds, False or None")
        ttl = expires or self._default_ttl_seconds
        if ttl < 0:
            raise ValueError(f"expires must be positive, got {ttl}")
        return CacheEntry(expires_at=self._clock.now_ms() + ttl * 1000, value=value)

    def put(self, key: str, value: Any, expires: Expires = None) -> WriteResult:
        """Build an entry for *value* and :meth:`set` it under *key*."""
        return self.set(key, self.make_entry(value, expires))

    def flush(self) -> WriteResult:
        """Persist the current contents, evicting on quota pressure."""
        return self._persist()

    def clear(self) -> WriteResult:
        """Drop every entry and persist the empty store."""
        self._entries = {}
        return self._persist()

    def snapshot(self) -> dict[str, CacheEntry]:
        """Return a shallow copy of the current contents."""
        return dict(self._entries)

    def keys(self) -> list[str]:
        """Return the stored keys in insertion order, expired ones included."""
        return list(self._entries)

    def stats(self) -> dict[str, Any]:
        """Return counts of live and expired entries plus persistence state."""
        now = self._clock.now_ms()
        expired = sum(1 for e in self._entries.values() if e.is_expired(now))
        return {
            "entries": len(self._entries),
            "expired": expired,
            "persistent": self._persistence.enabled,
            "slot": self._persistence.slot_name,
            "default_ttl_seconds": self._default_ttl_seconds,
        }

    def close(self) -> None:
        """Release the storage backend."""
        self._persistence.close()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    # ------------------------------------------------------------------ #
    # Persistence with eviction-and-retry
    # ------------------------------------------------------------------ #

    def _persist(self) -> WriteResult:
        result = self._persistence.save(self._entries)
        # Each pass removes one entry, so this runs at most len(store) times.
        while result.is_quota_exceeded and self._entries:
            victim = self._eviction.choose_victim(self._entries)
            if victim is None:
                break
            logger.info("Storage quota exceeded; evicting %s", victim)
            self.delete(victim)
            result = self._persistence.save(self._entries)

        if result.is_quota_exceeded:
            logger.error("Storage quota exceeded with an empty cache; giving up")
        elif result.status is WriteStatus.ERROR:
            raise PersistenceError(f"Cache persistence failed: {result.error}") from result.error
        return result
