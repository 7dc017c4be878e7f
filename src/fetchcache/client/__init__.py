"""Live fetch collaborators for fetchcache.

Classes:
    :class:`LiveFetcher` -- protocol the interceptor depends on.
    :class:`HttpFetcher` -- httpx-backed implementation with retry and
    error mapping.

Example::

    from fetchcache.client import HttpFetcher

    async with HttpFetcher(config.request) as fetcher:
        payload = await fetcher.perform_fetch(record, FetchOptions())
"""

from fetchcache.client.fetcher import HttpFetcher, LiveFetcher

__all__ = ["HttpFetcher", "LiveFetcher"]
