"""Tests for the httpx-backed live fetcher."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from fetchcache.client import HttpFetcher
from fetchcache.exceptions import (
    AuthError,
    ConnectionError_,
    InvalidUsageError,
    NotFoundError,
    ServerError,
)
from fetchcache.models import RequestConfig
from fetchcache.options import FetchOptions
from fetchcache.resources import Record, RecordSet


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(max_retries: int = 3) -> RequestConfig:
    return RequestConfig(base_url="https://api.example.com", max_retries=max_retries)


def _fetch(handler, resource: Any, options: FetchOptions | None = None, max_retries: int = 3) -> Any:
    """Run one perform_fetch against an httpx.MockTransport."""

    async def go() -> Any:
        async with HttpFetcher(_config(max_retries), transport=httpx.MockTransport(handler)) as fetcher:
            return await fetcher.perform_fetch(resource, options or FetchOptions())

    return asyncio.run(go())


# ---------------------------------------------------------------------------
# Context manager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_client_open_only_inside_block(self) -> None:
        fetcher = HttpFetcher(_config())

        async def go() -> None:
            assert fetcher._client is None
            async with fetcher:
                assert fetcher._client is not None
            assert fetcher._client is None

        asyncio.run(go())

    def test_client_settings_come_from_config(self) -> None:
        config = RequestConfig(base_url="https://api.example.com", timeout=7, verify_ssl=False)

        async def go() -> None:
            async with HttpFetcher(config) as fetcher:
                assert str(fetcher._client.base_url) == "https://api.example.com"
                assert fetcher._client.timeout == httpx.Timeout(7)

        asyncio.run(go())

    def test_fetch_outside_block_raises(self) -> None:
        fetcher = HttpFetcher(_config())
        with pytest.raises(RuntimeError, match="async with"):
            asyncio.run(fetcher.perform_fetch(Record("/users/1"), FetchOptions()))

    def test_satisfies_live_fetcher_protocol(self) -> None:
        import fetchcache.client as client

        assert client.HttpFetcher is HttpFetcher
        assert asyncio.iscoroutinefunction(HttpFetcher.perform_fetch)


# ---------------------------------------------------------------------------
# Successful requests
# ---------------------------------------------------------------------------


class TestPerformFetch:
    def test_returns_decoded_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert str(request.url) == "https://api.example.com/users/1"
            return httpx.Response(200, json={"id": 1})

        assert _fetch(handler, Record("/users/1")) == {"id": 1}

    def test_absolute_url_bypasses_base(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "other.example.org"
            return httpx.Response(200, json=[])

        assert _fetch(handler, RecordSet("https://other.example.org/items")) == []

    def test_params_and_headers_forwarded(self) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["page"] = request.url.params.get("page")
            seen["accept"] = request.headers.get("accept")
            seen["trace"] = request.headers.get("x-trace")
            return httpx.Response(200, json=[])

        _fetch(
            handler,
            RecordSet("/users"),
            FetchOptions(params={"page": 2}, headers={"X-Trace": "abc"}),
        )
        assert seen == {"page": "2", "accept": "application/json", "trace": "abc"}

    def test_non_json_body_returned_as_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="plain body")

        assert _fetch(handler, Record("/raw")) == "plain body"

    def test_missing_url_is_invalid_usage(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
            raise AssertionError("no request expected")

        with pytest.raises(InvalidUsageError):
            _fetch(handler, Record(lambda: None))


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("status", "exc_type"),
        [
            (401, AuthError),
            (403, AuthError),
            (404, NotFoundError),
            (400, ServerError),
            (422, ServerError),
        ],
    )
    def test_status_maps_to_exception(self, status: int, exc_type: type) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"message": "nope"})

        with pytest.raises(exc_type, match=f"HTTP {status}: nope"):
            _fetch(handler, Record("/x"))

    def test_text_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="missing")

        with pytest.raises(NotFoundError, match="missing"):
            _fetch(handler, Record("/x"))

    def test_exit_codes(self) -> None:
        assert NotFoundError("x").exit_code == 4
        assert AuthError("x").exit_code == 3


# ---------------------------------------------------------------------------
# Retry with backoff
# ---------------------------------------------------------------------------


class TestRetry:
    @patch("fetchcache.client.fetcher.asyncio.sleep", new_callable=AsyncMock)
    def test_retry_on_500_then_success(self, mock_sleep: AsyncMock) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] == 1:
                return httpx.Response(500, json={"error": "boom"})
            return httpx.Response(200, json={"ok": True})

        assert _fetch(handler, Record("/x")) == {"ok": True}
        assert calls["n"] == 2
        mock_sleep.assert_awaited_once_with(1)

    @patch("fetchcache.client.fetcher.asyncio.sleep", new_callable=AsyncMock)
    def test_exponential_backoff_then_server_error(self, mock_sleep: AsyncMock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": "unavailable"})

        with pytest.raises(ServerError, match="503"):
            _fetch(handler, Record("/x"))

        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2, 4]

    @patch("fetchcache.client.fetcher.asyncio.sleep", new_callable=AsyncMock)
    def test_connection_error_after_retries(self, mock_sleep: AsyncMock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectionError_, match="after 2 attempts"):
            _fetch(handler, Record("/x"), max_retries=1)
        assert mock_sleep.await_count == 1

    @patch("fetchcache.client.fetcher.asyncio.sleep", new_callable=AsyncMock)
    def test_4xx_not_retried(self, mock_sleep: AsyncMock) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(404)

        with pytest.raises(NotFoundError):
            _fetch(handler, Record("/x"))
        assert calls["n"] == 1
        mock_sleep.assert_not_awaited()
