"""Cache commands -- inspect and prune the persisted response cache.

Provides the ``fetchcache cache`` sub-command group.  Every command loads
the store from the configured backend, acts on it, and persists any change
before exiting.
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from fetchcache.cache import CacheStore, build_cache
from fetchcache.config import resolve_config
from fetchcache.exceptions import FetchCacheError
from fetchcache.models import CacheEntry
from fetchcache.output import error, format_response, info, print_table, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_store() -> CacheStore:
    try:
        return build_cache(resolve_config().cache)
    except FetchCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _format_expiry(entry: CacheEntry) -> str:
    if entry.expires_at is None:
        return "never"
    return datetime.fromtimestamp(entry.expires_at / 1000, tz=timezone.utc).isoformat(
        timespec="seconds"
    )


@cache_app.command("show")
def cache_show() -> None:
    """List cached keys with their expiry and state.

    Example::

        fetchcache cache show
        fetchcache --json cache show
    """
    store = _open_store()
    try:
        rows = []
        for key, entry in store.snapshot().items():
            state = "fresh" if store.is_usable(entry) else "expired"
            rows.append([key, _format_expiry(entry), state])
    finally:
        store.close()

    if not rows:
        info("Cache is empty.")
        return
    print_table(["key", "expires", "state"], rows, title="Cached resources")


@cache_app.command("stats")
def cache_stats() -> None:
    """Show entry counts and persistence settings."""
    store = _open_store()
    try:
        format_response(store.stats())
    finally:
        store.close()


@cache_app.command("delete")
def cache_delete(
    key: str = typer.Argument(help="Cache key (the resource URL) to remove."),
) -> None:
    """Remove one cached resource."""
    store = _open_store()
    try:
        if key not in store:
            info(f"No cached entry for {key}")
            return
        store.delete(key)
        store.flush()
    finally:
        store.close()
    success(f"Removed {key}")


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Remove every cached resource."""
    if not yes and not typer.confirm("Clear the whole cache?"):
        info("Cancelled.")
        raise typer.Exit()
    store = _open_store()
    try:
        count = len(store)
        store.clear()
    finally:
        store.close()
    success(f"Cleared {count} cached entries")
