"""Live fetch capability backed by :mod:`httpx`.

:class:`HttpFetcher` performs ``GET <resource url>`` with an
:class:`httpx.AsyncClient` and returns the decoded JSON payload.  It layers
on:

- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- non-2xx responses become typed
  :class:`~fetchcache.exceptions.LiveFetchError` subclasses.

Any object with a matching :meth:`LiveFetcher.perform_fetch` coroutine can
stand in for it, which is how tests and non-HTTP sources plug into
:class:`~fetchcache.interceptor.FetchInterceptor`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

import httpx

from fetchcache.exceptions import (
    AuthError,
    ConnectionError_,
    InvalidUsageError,
    LiveFetchError,
    NotFoundError,
    ServerError,
)
from fetchcache.models import RequestConfig
from fetchcache.options import FetchOptions
from fetchcache.resources import Resource

logger = logging.getLogger(__name__)


class LiveFetcher(Protocol):
    """Network collaborator consumed by the interceptor.

    Implementations return the raw server payload on success and raise a
    :class:`~fetchcache.exceptions.LiveFetchError` on failure.
    """

    async def perform_fetch(self, resource: Resource, options: FetchOptions) -> Any: ...


class HttpFetcher:
    """Fetch resources over HTTP.

    Must be entered as an async context manager; the connection pool lives
    for the duration of the ``async with`` block.

    Args:
        config: Request settings (base URL, timeout, retries, SSL verify).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        async with HttpFetcher(RequestConfig(base_url="https://api.example.com")) as fetcher:
            payload = await fetcher.perform_fetch(Record("/users/1"), FetchOptions())
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> HttpFetcher:
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url or "",
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def perform_fetch(self, resource: Resource, options: FetchOptions) -> Any:
        """GET the resource's URL and return the decoded body.

        Raises:
            InvalidUsageError: If the resource has no URL.
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries, or any other 4xx.
            ConnectionError_: On network / timeout errors after all retries.
        """
        url = resource.resolve_identity()
        if not url:
            raise InvalidUsageError(f"{resource!r} has no URL to fetch")

        response = await self._get(url, {"Accept": "application/json", **options.headers}, options.params)
        if response.is_error:
            raise _error_for(response)
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _get(self, url: str, headers: dict[str, str], params: dict[str, Any]) -> httpx.Response:
        """Issue the request, backing off 1 s, 2 s, 4 s, ... between attempts.

        Only 5xx responses and transport failures are retried.  The last 5xx
        response is returned as-is for :func:`_error_for` to report.
        """
        if self._client is None:
            raise RuntimeError("HttpFetcher must be entered with 'async with' before use")

        attempts = self._config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.get(url, headers=headers, params=params)
            except httpx.TransportError as exc:
                if attempt == attempts:
                    raise ConnectionError_(f"Connection failed after {attempts} attempts: {exc}") from exc
                reason = f"{type(exc).__name__}: {exc}"
            else:
                if response.status_code < 500 or attempt == attempts:
                    return response
                reason = f"status {response.status_code}"

            delay = 2 ** (attempt - 1)
            logger.debug("GET %s failed (%s); attempt %d/%d, next in %ss", url, reason, attempt, attempts, delay)
            await asyncio.sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for field in ("message", "error", "detail"):
            if body.get(field):
                return str(body[field])
        return ""
    return str(body)


def _error_for(response: httpx.Response) -> LiveFetchError:
    """Typed exception for a 4xx / 5xx response."""
    status = response.status_code
    detail = _error_detail(response)
    message = f"HTTP {status}: {detail}" if detail else f"HTTP {status}"
    if status in (401, 403):
        return AuthError(message)
    if status == 404:
        return NotFoundError(message)
    return ServerError(message)
