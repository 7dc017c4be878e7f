"""The ``fetchcache`` command-line application.

``fetchcache get`` fetches one URL through the cache; ``fetchcache cache``
inspects and prunes the persisted store; ``fetchcache config`` edits the
stored settings.  Global flags (output format, colour, verbosity, base URL)
are handled by :func:`main_callback` before any sub-command runs.

:func:`main` is the console-script entry point.  Anything that escapes a
command other than a :class:`~fetchcache.exceptions.FetchCacheError` leaves
a traceback under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from fetchcache import __version__
from fetchcache.commands.cache import cache_app
from fetchcache.commands.config import config_app
from fetchcache.commands.fetch import get_command
from fetchcache.exit_codes import EXIT_GENERIC_FAILURE
from fetchcache.output import OutputFormat, OutputManager, configure_logging, set_output

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="fetchcache",
    help="Fetch URL-addressed resources through a persistent client-side cache.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("get")(get_command)
app.add_typer(cache_app, name="cache", help="Inspect and prune the persisted cache.")
app.add_typer(config_app, name="config", help="Show and edit stored settings.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"fetchcache {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Prefix for relative resource URLs."
    ),
    json_output: bool = typer.Option(False, "--json", help="Render data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Render data as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log cache hits, misses and evictions."),
) -> None:
    """Install the output manager and library logging for this run."""
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url


def _exit_interrupted(*_: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _write_crash_log() -> Path:
    """Save the current traceback under the data directory and return its path."""
    from fetchcache.config import get_data_dir

    log_dir = get_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point.

    A :class:`~fetchcache.exceptions.FetchCacheError` exits with its own
    ``exit_code``; any other exception is logged to a crash file and exits
    with :data:`~fetchcache.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    from fetchcache.exceptions import FetchCacheError
    from fetchcache.output import error

    signal.signal(signal.SIGINT, _exit_interrupted)
    try:
        app()
    except KeyboardInterrupt:
        _exit_interrupted()
    except FetchCacheError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
