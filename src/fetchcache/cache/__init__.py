"""Persistent client-side cache for fetched resources.

This package provides :class:`CacheStore`, the in-memory map of cache key to
:class:`~fetchcache.models.CacheEntry`, together with the pieces it is built
from: a :class:`PersistenceAdapter` that writes the whole store as one JSON
blob into a :class:`StorageBackend`, and an :class:`EvictionPolicy` that
frees quota when the backend is full.

:func:`build_cache` wires these together from a
:class:`~fetchcache.models.CacheConfig` and primes the store from disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fetchcache.cache.eviction import EvictionPolicy, PriorityFn, default_priority
from fetchcache.cache.persistence import PersistenceAdapter
from fetchcache.cache.storage import (
    DiskStorage,
    MemoryStorage,
    StorageBackend,
    WriteResult,
    WriteStatus,
)
from fetchcache.cache.store import CacheStore
from fetchcache.clock import Clock
from fetchcache.models import CacheConfig


def build_cache(
    config: Optional[CacheConfig] = None,
    backend: Optional[StorageBackend] = None,
    priority_fn: Optional[PriorityFn] = None,
    clock: Optional[Clock] = None,
    cache_dir: Optional[str | Path] = None,
) -> CacheStore:
    """Construct a primed :class:`CacheStore`.

    Args:
        config: Cache settings.  Defaults to :class:`CacheConfig()`.
        backend: Storage backend to use.  When omitted, one is created from
            ``config.backend``: a :class:`DiskStorage` under *cache_dir*
            (default: the XDG cache directory) or a :class:`MemoryStorage`.
        priority_fn: Optional eviction comparator overriding
            :func:`default_priority`.
        clock: Optional time source.
        cache_dir: Directory for the disk backend.

    Returns:
        A store already loaded from the backend.  A missing or corrupt
        persisted blob yields an empty store.
    """
    config = config or CacheConfig()
    if backend is None:
        if config.backend == "memory":
            backend = MemoryStorage(quota_bytes=config.quota_bytes)
        else:
            if cache_dir is None:
                from fetchcache.config import get_cache_dir

                cache_dir = get_cache_dir()
            backend = DiskStorage(Path(cache_dir) / "store", quota_bytes=config.quota_bytes)

    store = CacheStore(
        PersistenceAdapter(backend, config),
        eviction=EvictionPolicy(priority_fn),
        clock=clock,
        default_ttl_seconds=config.default_ttl_seconds,
    )
    store.prime()
    return store


__all__ = [
    "CacheStore",
    "DiskStorage",
    "EvictionPolicy",
    "MemoryStorage",
    "PersistenceAdapter",
    "PriorityFn",
    "StorageBackend",
    "WriteResult",
    "WriteStatus",
    "build_cache",
    "default_priority",
]
