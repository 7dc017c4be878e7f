"""Whole-store persistence into a single storage slot.

The entire cache is serialised to one JSON object and written under a fixed
slot name on every save::

    {"https://api.example.com/users/1": {"expiresAt": 1700000300000, "value": {...}}}

Rewriting the whole blob makes a save cost proportional to the total cached
bytes rather than the size of the changed entry.

Persistence is switched off for the lifetime of the adapter when the backend
reports itself unavailable at construction time, or when
:attr:`~fetchcache.models.CacheConfig.persist` is ``False``.  In that mode
:meth:`PersistenceAdapter.save` always succeeds and
:meth:`PersistenceAdapter.load` always returns an empty mapping.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping

from fetchcache.cache.storage import StorageBackend, WriteResult
from fetchcache.exceptions import SerializationError
from fetchcache.models import CacheConfig, CacheEntry

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """Serialise the cache store to and from a :class:`StorageBackend`.

    Args:
        backend: The key/value backend to write to.  Its availability is
            queried exactly once, here.
        config: Supplies the ``persist`` toggle and the slot name.
    """

    def __init__(self, backend: StorageBackend, config: CacheConfig) -> None:
        self._backend = backend
        self._slot = config.slot_name
        self._enabled = False
        if not config.persist:
            logger.debug("Persistence disabled by configuration")
        elif not backend.is_available():
            logger.warning("Storage backend unavailable; cache will not persist")
        else:
            self._enabled = True

    @property
    def enabled(self) -> bool:
        """Whether saves and loads actually reach the backend."""
        return self._enabled

    @property
    def slot_name(self) -> str:
        return self._slot

    def save(self, entries: Mapping[str, CacheEntry]) -> WriteResult:
        """Write every entry to the backend as one JSON blob.

        Args:
            entries: The full contents of the store.

        Returns:
            The backend's :class:`WriteResult`.  Quota pressure is reported,
            not raised.

        Raises:
            SerializationError: If a cached value is not JSON-representable.
        """
        if not self._enabled:
            return WriteResult.ok()
        payload = {
            key: entry.model_dump(by_alias=True) for key, entry in entries.items()
        }
        try:
            blob = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Cannot serialise cache contents: {exc}") from exc
        return self._backend.set_item(self._slot, blob)

    def load(self) -> dict[str, CacheEntry]:
        """Read the persisted blob back into entries.

        Returns:
            A fresh mapping of cache key to :class:`CacheEntry`.  Missing or
            malformed content yields an empty mapping.
        """
        if not self._enabled:
            return {}
        text = self._backend.get_item(self._slot)
        if not text:
            return {}
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return {key: CacheEntry.model_validate(raw) for key, raw in data.items()}
        except ValueError as exc:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
            logger.warning("Discarding corrupt persisted cache in %r: %s", self._slot, exc)
            return {}

    def close(self) -> None:
        """Release the backend."""
        self._backend.close()
