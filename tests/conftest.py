"""Shared test fixtures for fetchcache.

Provides a controllable clock, in-memory cache stores, a scripted live
fetcher, isolated config directories, and a CLI runner.  These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from fetchcache.cache import CacheStore, EvictionPolicy, MemoryStorage, PersistenceAdapter
from fetchcache.exceptions import LiveFetchError
from fetchcache.models import CacheConfig
from fetchcache.options import FetchOptions
from fetchcache.output import OutputFormat, OutputManager, reset_output, set_output

NOW_MS = 1_700_000_000_000


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the package logger after every test.

    The OutputManager and the RichHandler installed by the CLI cache
    references to sys.stdout/sys.stderr at creation time, which go stale
    once CliRunner restores the streams.
    """
    yield
    reset_output()
    logger = logging.getLogger("fetchcache")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    return output


# ---------------------------------------------------------------------------
# Time and storage
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, now_ms: int = NOW_MS) -> None:
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage, clock: FakeClock) -> CacheStore:
    """An empty store persisting into :func:`storage`."""
    return CacheStore(
        PersistenceAdapter(storage, CacheConfig(backend="memory")),
        eviction=EvictionPolicy(),
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Live fetch
# ---------------------------------------------------------------------------


class ScriptedFetcher:
    """LiveFetcher returning queued payloads (or raising queued errors)."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[Any, FetchOptions]] = []

    async def perform_fetch(self, resource: Any, options: FetchOptions) -> Any:
        self.calls.append((resource, options))
        if not self.responses:
            raise LiveFetchError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def fetcher() -> ScriptedFetcher:
    return ScriptedFetcher()


# ---------------------------------------------------------------------------
# Config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and cache directories under tmp_path.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME, forces the XDG
    layout, and clears every FETCHCACHE_* environment variable.
    """
    monkeypatch.setattr("fetchcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["FETCHCACHE_PERSIST", "FETCHCACHE_TTL", "FETCHCACHE_BASE_URL"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

