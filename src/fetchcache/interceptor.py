"""Per-resource fetch entry point that consults the cache first.

:class:`FetchInterceptor` decides, for every call, between three paths:

1. **Serve cached** (``cache=True``) -- a usable entry is applied to the
   resource synchronously and the call completes without touching the
   network.
2. **Prefill** (``prefill=True``) -- a usable entry is applied
   synchronously, ``progress`` fires, and a live fetch still runs; the call
   completes when that fetch does.
3. **Miss** -- the live fetch runs and, on success, its payload is written
   to the :class:`~fetchcache.cache.CacheStore`.

An entry is usable only if it exists, has not expired, and the caller asked
for ``cache`` or ``prefill``.  A resource without a URL is never cached.

The cache check and apply always happen before the live fetch is
dispatched.  After a successful fetch the payload is applied and written
to the cache before ``success`` fires.
Failures of the live fetch are raised to the caller and never cached.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fetchcache.cache import CacheStore
from fetchcache.client.fetcher import LiveFetcher
from fetchcache.exceptions import LiveFetchError
from fetchcache.options import FetchOptions
from fetchcache.resources import Resource

logger = logging.getLogger(__name__)


class FetchInterceptor:
    """Cache-aware front for a :class:`~fetchcache.client.LiveFetcher`.

    Args:
        store: The shared cache store.
        fetcher: Performs the live fetch on a miss or a prefill refresh.

    Example::

        interceptor = FetchInterceptor(store, fetcher)
        users = RecordSet("https://api.example.com/users")
        await interceptor.fetch(users, FetchOptions(prefill=True, progress=render))
    """

    def __init__(self, store: CacheStore, fetcher: LiveFetcher) -> None:
        self._store = store
        self._fetcher = fetcher

    @property
    def store(self) -> CacheStore:
        return self._store

    async def fetch(self, resource: Resource, options: Optional[FetchOptions] = None, **kwargs: Any) -> Resource:
        """Fetch *resource*, serving from the cache when allowed.

        Options may be passed as a :class:`FetchOptions` instance, as
        keyword arguments, or both (keywords override).

        Returns:
            The same *resource*, now populated.

        Raises:
            LiveFetchError: If a live fetch was needed and failed.
        """
        opts = _resolve_options(options, kwargs)
        key = resource.resolve_identity()
        if self._serve_cached(resource, opts, key):
            return resource
        return await self._fetch_live(resource, opts, key)

    def submit(self, resource: Resource, options: Optional[FetchOptions] = None, **kwargs: Any) -> asyncio.Future[Resource]:
        """Run the cache check now and return a future for the outcome.

        Must be called from inside a running event loop.  A cached result
        is applied before this method returns; the returned future is then
        already done unless a live fetch is in flight.
        """
        loop = asyncio.get_running_loop()
        opts = _resolve_options(options, kwargs)
        key = resource.resolve_identity()
        if self._serve_cached(resource, opts, key):
            future: asyncio.Future[Resource] = loop.create_future()
            future.set_result(resource)
            return future
        return asyncio.ensure_future(self._fetch_live(resource, opts, key))

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _serve_cached(self, resource: Resource, opts: FetchOptions, key: Optional[str]) -> bool:
        """Apply a usable cached entry; return ``True`` if the call is finished."""
        if not key or not opts.wants_cached:
            return False
        entry = self._store.lookup(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return False

        logger.debug("Cache hit: %s", key)
        resource.apply_cached(entry.value, opts)
        if opts.prefill_success is not None:
            opts.prefill_success(resource)

        if opts.prefill:
            if opts.progress is not None:
                opts.progress(resource)
            return False

        if opts.success is not None:
            opts.success(resource)
        return True

    async def _fetch_live(self, resource: Resource, opts: FetchOptions, key: Optional[str]) -> Resource:
        """Run the live fetch, apply its payload, cache it, then report success.

        ``success`` fires only once nothing else can fail, so a call never
        reports success and then raises.  What reaches the caller:

        * :class:`~fetchcache.exceptions.LiveFetchError` -- after ``error``
          has been called; nothing is cached.
        * :class:`~fetchcache.exceptions.PayloadShapeError` from the
          resource's ``parse`` when the payload has the wrong shape;
          nothing is cached.
        * :class:`~fetchcache.exceptions.SerializationError` /
          :class:`~fetchcache.exceptions.PersistenceError` from the cache
          write; the resource is populated and the in-memory entry is set.

        Neither callback fires for the last two.
        """
        try:
            raw = await self._fetcher.perform_fetch(resource, opts)
        except LiveFetchError as exc:
            if opts.error is not None:
                opts.error(resource, exc)
            raise

        resource.apply_fetched(raw, opts)
        if key:
            self._store.put(key, resource.cache_value(raw), expires=opts.expires)
        if opts.success is not None:
            opts.success(resource)
        return resource


def _resolve_options(options: Optional[FetchOptions], overrides: dict[str, Any]) -> FetchOptions:
    opts = options or FetchOptions()
    return opts.merge(**overrides) if overrides else opts
