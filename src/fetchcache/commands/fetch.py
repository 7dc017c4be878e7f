"""The ``fetchcache get`` command.

Fetches one URL through a :class:`~fetchcache.interceptor.FetchInterceptor`
backed by the persisted cache, then prints the resulting data to stdout.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import typer

from fetchcache.cache import build_cache
from fetchcache.client import HttpFetcher
from fetchcache.config import resolve_config
from fetchcache.exceptions import FetchCacheError, PayloadShapeError
from fetchcache.interceptor import FetchInterceptor
from fetchcache.models import GlobalConfig
from fetchcache.options import FetchOptions
from fetchcache.output import error, format_response, info
from fetchcache.resources import Record, RecordSet


def get_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Resource URL (absolute, or relative to --base-url)."),
    cache: bool = typer.Option(
        False, "--cache", help="Serve a fresh cached copy without hitting the network."
    ),
    prefill: bool = typer.Option(
        False, "--prefill", help="Show a cached copy, then refresh from the network."
    ),
    expires: Optional[int] = typer.Option(
        None, "--expires", min=1, help="TTL in seconds for the cache write."
    ),
    no_expires: bool = typer.Option(
        False, "--no-expires", help="Cache the response without expiry."
    ),
    collection: bool = typer.Option(
        False, "--collection", "-c", help="Treat the response as a list of records."
    ),
) -> None:
    """Fetch a resource, using the cache when asked.

    Example::

        fetchcache get https://api.example.com/users/1 --cache
        fetchcache --base-url https://api.example.com get /users -c --prefill
    """
    if expires is not None and no_expires:
        error("--expires and --no-expires are mutually exclusive")
        raise typer.Exit(code=2)

    obj = ctx.obj or {}
    try:
        config = resolve_config(cli_base_url=obj.get("base_url"))
        # Cache keys are absolute so one entry serves every base URL spelling.
        base = config.request.base_url
        if base and "://" not in url:
            url = f"{base.rstrip('/')}/{url.lstrip('/')}"
        resource = RecordSet(url) if collection else Record(url)
        options = FetchOptions(
            cache=cache,
            prefill=prefill,
            expires=False if no_expires else expires,
            prefill_success=lambda _: info("Serving cached copy"),
            progress=lambda _: info("Refreshing from network..."),
        )
        asyncio.run(_run(config, resource, options))
    except PayloadShapeError as exc:
        hint = "drop --collection" if collection else "pass --collection for list responses"
        error(f"{exc}; {hint}")
        raise typer.Exit(code=exc.exit_code) from None
    except FetchCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(resource.to_data())


async def _run(config: GlobalConfig, resource: Any, options: FetchOptions) -> None:
    store = build_cache(config.cache)
    try:
        async with HttpFetcher(config.request) as fetcher:
            await FetchInterceptor(store, fetcher).fetch(resource, options)
    finally:
        store.close()
