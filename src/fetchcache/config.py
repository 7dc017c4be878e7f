"""User configuration: where fetchcache keeps its files and which settings apply.

Three directories are used, each created on first access:

=========  ==============================  ===========================
Kind       Linux / BSD (XDG)               macOS / Windows
=========  ==============================  ===========================
config     ``$XDG_CONFIG_HOME/fetchcache``  ``~/.fetchcache``
cache      ``$XDG_CACHE_HOME/fetchcache``   ``~/.fetchcache/cache``
data       ``$XDG_DATA_HOME/fetchcache``    ``~/.fetchcache/data``
=========  ==============================  ===========================

The persisted response store lives under the cache directory and may be
deleted at any time.  Settings are a single
:class:`~fetchcache.models.GlobalConfig` JSON file in the config directory,
rewritten atomically.  :func:`resolve_config` layers ``FETCHCACHE_*``
environment variables and CLI flags on top of it.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from fetchcache.exceptions import ConfigError
from fetchcache.models import GlobalConfig

_APP_NAME = "fetchcache"
_CONFIG_FILENAME = "config.json"

ENV_PERSIST = "FETCHCACHE_PERSIST"
ENV_TTL = "FETCHCACHE_TTL"
ENV_BASE_URL = "FETCHCACHE_BASE_URL"

# kind -> (XDG env var, default under $HOME, subdirectory on other platforms)
_DIR_LAYOUT: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "cache": ("XDG_CACHE_HOME", (".cache",), ("cache",)),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("data",)),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    """Linux and the BSDs follow the XDG base directory layout."""
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback = _DIR_LAYOUT[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or str(Path.home().joinpath(*home_default))
        path = Path(base) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json``."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Directory holding the persisted response store."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory holding crash logs."""
    return _app_dir("data")


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers never see a half-written file.

    The temp file lives next to *path* because ``os.replace`` is only atomic
    within one filesystem.  On any failure the temp file is removed and the
    original is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
        encoding="utf-8",
    ) as tmp:
        tmp_path = Path(tmp.name)
        try:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise
    try:
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


# --- Global config file ---


def global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Read ``config.json``, or return defaults when it does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or does not match
            :class:`~fetchcache.models.GlobalConfig`.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        # Covers json.JSONDecodeError and pydantic.ValidationError.
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    _atomic_write(global_config_path(), json.dumps(config.model_dump(mode="json"), indent=2) + "\n")


# --- Effective settings ---


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name, "").strip().lower()
    if not value:
        return None
    return value in ("1", "true", "yes", "on")


def _env_ttl() -> Optional[int]:
    raw = os.environ.get(ENV_TTL)
    if not raw:
        return None
    try:
        ttl = int(raw)
    except ValueError:
        raise ConfigError(f"{ENV_TTL} must be an integer, got {raw!r}") from None
    if ttl <= 0:
        raise ConfigError(f"{ENV_TTL} must be positive, got {ttl}")
    return ttl


def resolve_config(cli_base_url: Optional[str] = None) -> GlobalConfig:
    """Return the settings in force for this run.

    Later sources win: defaults, then ``config.json``, then
    ``FETCHCACHE_PERSIST`` / ``FETCHCACHE_TTL`` / ``FETCHCACHE_BASE_URL``,
    then ``--base-url``.

    Raises:
        ConfigError: If the stored config or an environment override is
            invalid.
    """
    config = load_global_config()

    persist = _env_bool(ENV_PERSIST)
    if persist is not None:
        config.cache.persist = persist

    ttl = _env_ttl()
    if ttl is not None:
        config.cache.default_ttl_seconds = ttl

    base_url = cli_base_url if cli_base_url is not None else os.environ.get(ENV_BASE_URL)
    if base_url:
        config.request.base_url = base_url

    return config
