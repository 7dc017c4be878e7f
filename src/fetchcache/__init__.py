"""fetchcache -- client-side response cache for URL-addressed resources.

This package sits in front of a live network fetch and lets callers read
previously fetched records synchronously, optionally while a refresh is
still in flight ("prefill"). The cache survives restarts by persisting the
whole store as one JSON blob into a quota-limited key/value backend.

Typical usage::

    from fetchcache import FetchInterceptor, FetchOptions, Record, build_cache
    from fetchcache.client import HttpFetcher

    store = build_cache()
    async with HttpFetcher() as fetcher:
        interceptor = FetchInterceptor(store, fetcher)
        user = Record("https://api.example.com/users/1")
        await interceptor.fetch(user, FetchOptions(cache=True))

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for cache entries and configuration.
    config: XDG-aware configuration management.
    interceptor: The per-resource fetch entry point.
    resources: Record and record-set resource implementations.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"

from fetchcache.cache import CacheStore, build_cache
from fetchcache.interceptor import FetchInterceptor
from fetchcache.options import FetchOptions
from fetchcache.resources import Record, RecordSet

__all__ = [
    "CacheStore",
    "FetchInterceptor",
    "FetchOptions",
    "Record",
    "RecordSet",
    "build_cache",
]
