"""Key/value storage backends used to persist the cache.

A backend is a tiny string-to-string store with a size quota, modelled on
browser ``localStorage``.  Writes never raise for expected failures; they
return a :class:`WriteResult` whose :attr:`~WriteResult.status` tells the
caller whether the write succeeded, hit the quota, or failed outright.

Two backends ship with the package:

* :class:`MemoryStorage` -- process-local dict with an optional byte quota.
  Useful in tests and for callers who want the cache without touching disk.
* :class:`DiskStorage` -- persists via :mod:`diskcache` under the XDG cache
  directory so the cache survives restarts.
"""

from __future__ import annotations

import enum
import errno
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import diskcache

from fetchcache.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class WriteStatus(str, enum.Enum):
    """Outcome tag of a storage write."""

    OK = "ok"
    QUOTA_EXCEEDED = "quota_exceeded"
    ERROR = "error"


@dataclass(frozen=True)
class WriteResult:
    """Tagged result of a storage write.

    Attributes:
        status: Which branch of the result this is.
        error: The underlying failure when :attr:`status` is
            :attr:`WriteStatus.ERROR`, otherwise ``None``.
    """

    status: WriteStatus
    error: Optional[Exception] = None

    @classmethod
    def ok(cls) -> WriteResult:
        return cls(WriteStatus.OK)

    @classmethod
    def quota_exceeded(cls) -> WriteResult:
        return cls(WriteStatus.QUOTA_EXCEEDED)

    @classmethod
    def failed(cls, error: Exception) -> WriteResult:
        return cls(WriteStatus.ERROR, error)

    @property
    def is_ok(self) -> bool:
        return self.status is WriteStatus.OK

    @property
    def is_quota_exceeded(self) -> bool:
        return self.status is WriteStatus.QUOTA_EXCEEDED


class StorageBackend(Protocol):
    """Narrow interface consumed by :class:`~fetchcache.cache.persistence.PersistenceAdapter`."""

    def is_available(self) -> bool: ...

    def get_item(self, slot: str) -> Optional[str]: ...

    def set_item(self, slot: str, text: str) -> WriteResult: ...

    def close(self) -> None: ...


def _item_size(slot: str, text: str) -> int:
    return len(slot.encode("utf-8")) + len(text.encode("utf-8"))


class MemoryStorage:
    """In-process storage backend with an optional byte quota.

    The quota covers every item held by the backend, so writing a large
    blob fails once the sum of all items would exceed ``quota_bytes``.

    Args:
        quota_bytes: Maximum combined size of all items, or ``None`` for
            no limit.
        available: Value reported by :meth:`is_available`.  Set to
            ``False`` to simulate a runtime without storage support.

    Example::

        storage = MemoryStorage(quota_bytes=1024)
        storage.set_item("slot", "{}").is_ok  # True
    """

    def __init__(self, quota_bytes: Optional[int] = None, available: bool = True) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes
        self._available = available

    def is_available(self) -> bool:
        return self._available

    def get_item(self, slot: str) -> Optional[str]:
        return self._items.get(slot)

    def set_item(self, slot: str, text: str) -> WriteResult:
        if self._quota_bytes is not None:
            used = sum(
                _item_size(k, v) for k, v in self._items.items() if k != slot
            )
            if used + _item_size(slot, text) > self._quota_bytes:
                return WriteResult.quota_exceeded()
        self._items[slot] = text
        return WriteResult.ok()

    def remove_item(self, slot: str) -> None:
        self._items.pop(slot, None)

    def close(self) -> None:
        pass


class DiskStorage:
    """Storage backend persisted on disk through :class:`diskcache.Cache`.

    The underlying cache directory is opened lazily by :meth:`is_available`
    so that an unwritable location degrades persistence instead of failing
    at construction time.

    Args:
        directory: Directory holding the diskcache database.
        quota_bytes: Maximum size of a single stored blob (key plus value,
            UTF-8 encoded), or ``None`` for no limit.
    """

    def __init__(self, directory: str | Path, quota_bytes: Optional[int] = None) -> None:
        self._directory = Path(directory)
        self._quota_bytes = quota_bytes
        self._cache: Optional[diskcache.Cache] = None

    @property
    def directory(self) -> Path:
        """Filesystem location of the diskcache database."""
        return self._directory

    def is_available(self) -> bool:
        """Open the cache directory, returning ``False`` if it is unusable."""
        if self._cache is not None:
            return True
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except (OSError, sqlite3.Error) as exc:
            logger.warning("Disk storage unavailable at %s: %s", self._directory, exc)
            return False
        return True

    def get_item(self, slot: str) -> Optional[str]:
        if self._cache is None:
            return None
        value = self._cache.get(slot)
        return value if isinstance(value, str) else None

    def set_item(self, slot: str, text: str) -> WriteResult:
        if self._cache is None:
            return WriteResult.failed(PersistenceError("Disk storage is not open"))
        if self._quota_bytes is not None and _item_size(slot, text) > self._quota_bytes:
            return WriteResult.quota_exceeded()
        try:
            self._cache.set(slot, text)
        except sqlite3.OperationalError as exc:
            if "full" in str(exc).lower():
                return WriteResult.quota_exceeded()
            return WriteResult.failed(exc)
        except OSError as exc:
            if exc.errno == errno.ENOSPC:
                return WriteResult.quota_exceeded()
            return WriteResult.failed(exc)
        return WriteResult.ok()

    def remove_item(self, slot: str) -> None:
        if self._cache is not None:
            self._cache.delete(slot)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None
