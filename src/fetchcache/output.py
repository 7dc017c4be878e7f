"""Terminal output for the fetchcache CLI.

Fetched payloads and cache listings are written to stdout; status lines and
log records are written to stderr, so ``fetchcache get URL --json | jq`` only
ever sees data.  Rendering follows the resolved :class:`OutputFormat`:

* ``json`` -- indented JSON, stable for scripting.
* ``plain`` -- tab-separated lines, one record per line.
* ``rich`` -- syntax-highlighted JSON and boxed tables.

``auto`` picks ``rich`` for an interactive, colour-capable terminal and
``plain`` otherwise.  Colour is disabled by ``--no-color``, ``NO_COLOR`` (any
value), or ``TERM=dumb``.

The CLI installs one :class:`OutputManager` per run with :func:`set_output`;
commands use the module-level helpers below.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How payloads and listings are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


_STATUS_STYLES = {
    "info": ("", "{}"),
    "success": ("", "[green]{}[/green]"),
    "error": ("Error: ", "[bold red]Error:[/bold red] {}"),
}


class OutputManager:
    """Route CLI output to the right stream in the right format.

    Args:
        format: Requested format; ``AUTO`` is resolved once, here.
        no_color: Force colourless output on both streams.
        quiet: Drop ``info`` and ``success`` status lines.  Errors and data
            are always written.
        verbose: Lower the library log level to DEBUG (see
            :func:`configure_logging`).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.PLAIN if self._no_color or not _is_tty() else OutputFormat.RICH
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    # --- stdout ---

    def print_data(self, text: str) -> None:
        """Write one line of raw text to stdout."""
        sys.stdout.write(text + "\n")
        sys.stdout.flush()

    def format_response(self, data: Any) -> None:
        """Render a fetched payload (a record's attributes, a list of them, or a scalar)."""
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format is OutputFormat.RICH:
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))
        elif isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(_plain_row(item.values() if isinstance(item, dict) else [item]))
        else:
            self.print_data(str(data))

    def print_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows under *headers*: objects in JSON, TSV in plain, a table in rich."""
        if self._format is OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
            return
        if self._format is OutputFormat.PLAIN:
            for row in (headers, *rows):
                self.print_data(_plain_row(row))
            return
        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def info(self, message: str) -> None:
        self._status("info", message)

    def success(self, message: str) -> None:
        self._status("success", message)

    def error(self, message: str) -> None:
        self._status("error", message)

    def _status(self, kind: str, message: str) -> None:
        if self._quiet and kind != "error":
            return
        prefix, markup = _STATUS_STYLES[kind]
        if self._no_color:
            sys.stderr.write(prefix + message + "\n")
            sys.stderr.flush()
        else:
            self._stderr.print(markup.format(message), highlight=False)


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_row(values: Any) -> str:
    return "\t".join(str(v) for v in values)


def _is_tty() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or a dumb terminal."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(output: OutputManager) -> None:
    """Send ``fetchcache`` log records to the stderr console.

    DEBUG and up with ``--verbose``, WARNING and up otherwise.  Calling this
    again replaces the previous handler.
    """
    logger = logging.getLogger("fetchcache")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=output.stderr_console, show_time=False, show_path=False, markup=False)
    )
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)
    logger.propagate = False


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed :class:`OutputManager`, or a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: Sequence[str], rows: Sequence[Sequence[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)
