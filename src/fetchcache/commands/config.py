"""``fetchcache config`` -- read and edit the stored settings.

Keys use dot notation over :class:`~fetchcache.models.GlobalConfig`, e.g.
``cache.default_ttl_seconds`` or ``request.base_url``.  Environment
overrides (``FETCHCACHE_*``) are not shown here; they apply at run time only.
"""

from __future__ import annotations

from typing import Any

import typer

from fetchcache.config import get_config_dir, load_global_config, save_global_config
from fetchcache.exceptions import ConfigError
from fetchcache.exit_codes import EXIT_INVALID_USAGE
from fetchcache.models import GlobalConfig
from fetchcache.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _load() -> GlobalConfig:
    try:
        return load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _usage_error(message: str) -> typer.Exit:
    error(message)
    return typer.Exit(code=EXIT_INVALID_USAGE)


def _section_for(data: dict[str, Any], key: str) -> tuple[dict[str, Any], str]:
    """Walk *key* down to the mapping that owns its last segment."""
    *path, leaf = key.split(".")
    section = data
    for part in path:
        section = section.get(part)
        if not isinstance(section, dict):
            raise _usage_error(f"Invalid config key: {key}")
    if leaf not in section or isinstance(section[leaf], dict):
        raise _usage_error(f"Unknown config key: {key}")
    return section, leaf


def _coerce(key: str, current: Any, raw: str) -> Any:
    """Convert *raw* to the type of the value it replaces."""
    if raw == "null":
        return None
    if isinstance(current, bool):
        return raw.lower() in ("true", "1", "yes", "on")
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            raise _usage_error(f"Expected integer for {key}, got: {raw}") from None
    return raw


@config_app.command("show")
def config_show() -> None:
    """Print the stored configuration.

    Example::

        fetchcache --json config show
    """
    config = _load()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'cache.default_ttl_seconds'."),
    value: str = typer.Argument(help="New value; 'null' clears an optional setting."),
) -> None:
    """Change one setting and save it.

    Example::

        fetchcache config set cache.persist false
        fetchcache config set cache.quota_bytes null
        fetchcache config set request.base_url https://api.example.com
    """
    data = _load().model_dump(mode="json")
    section, leaf = _section_for(data, key)
    section[leaf] = _coerce(key, section[leaf], value)

    try:
        updated = GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise _usage_error(f"Validation error: {exc}") from None

    save_global_config(updated)
    success(f"Set {key} = {section[leaf]}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Restore every setting to its default."""
    if not yes and not typer.confirm("Reset all settings to defaults?"):
        info("Cancelled.")
        raise typer.Exit()
    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
