"""Victim selection when the storage backend runs out of quota.

The default policy evicts the entry closest to expiry.  Entries that never
expire rank after every dated entry, so they are only evicted once no dated
entry remains.  This is an approximate LRU-by-TTL: cheap to compute for the
small stores a client cache holds, but not a true recency ordering.

A custom ranking can be supplied as a ``cmp``-style function::

    def newest_first(a: CacheEntry, b: CacheEntry) -> int:
        return (b.expires_at or 0) - (a.expires_at or 0)

    policy = EvictionPolicy(priority_fn=newest_first)
"""

from __future__ import annotations

import functools
from typing import Callable, Mapping, Optional

from fetchcache.models import CacheEntry

PriorityFn = Callable[[CacheEntry, CacheEntry], int]


def default_priority(a: CacheEntry, b: CacheEntry) -> int:
    """Order entries by ascending expiry, undated entries last."""
    if a.expires_at is None and b.expires_at is None:
        return 0
    if a.expires_at is None:
        return 1
    if b.expires_at is None:
        return -1
    return a.expires_at - b.expires_at


class EvictionPolicy:
    """Pick the single key to drop from a full store.

    Args:
        priority_fn: Comparator ranking entries; the first-ranked entry is
            evicted.  Ties keep the store's insertion order.
    """

    def __init__(self, priority_fn: Optional[PriorityFn] = None) -> None:
        self._priority_fn = priority_fn or default_priority

    def choose_victim(self, entries: Mapping[str, CacheEntry]) -> Optional[str]:
        """Return the key to evict, or ``None`` if *entries* is empty."""
        if not entries:
            return None
        ranked = sorted(
            entries.items(),
            key=functools.cmp_to_key(lambda a, b: self._priority_fn(a[1], b[1])),
        )
        return ranked[0][0]
