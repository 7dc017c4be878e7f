"""URL-addressed resources that the interceptor can fetch and cache.

A resource exposes a small capability contract (:class:`Resource`):

* :meth:`~Resource.resolve_identity` -- the cache key, or ``None`` when the
  resource has no URL and must not be cached.
* :meth:`~Resource.apply_fetched` -- absorb a raw server payload.
* :meth:`~Resource.apply_cached` -- absorb a previously cached value.
* :meth:`~Resource.cache_value` -- what to store for a raw payload.

Two implementations are provided.  :class:`Record` is a single object whose
cached value is its parsed attribute mapping.  :class:`RecordSet` is a list
of records whose cached value is the raw payload, re-parsed on every hit.
Both route cached data through their own ``parse``/``set`` pathway so a
cache hit builds exactly the same state as a live fetch.

Identities are always zero-argument callables.  A plain string URL is
wrapped by :func:`static_identity`::

    Record("https://api.example.com/users/1")
    Record(lambda: f"https://api.example.com/users/{user_id}")
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional, Protocol, Union

from fetchcache.exceptions import PayloadShapeError
from fetchcache.options import FetchOptions

Identity = Callable[[], Optional[str]]
UrlSource = Union[str, Identity, None]


def static_identity(url: Optional[str]) -> Identity:
    """Wrap a fixed URL (or ``None``) in an identity callable."""
    return lambda: url


def as_identity(url: UrlSource) -> Identity:
    if callable(url):
        return url
    return static_identity(url)


class Resource(Protocol):
    """Capability contract consumed by :class:`~fetchcache.interceptor.FetchInterceptor`."""

    def resolve_identity(self) -> Optional[str]: ...

    def apply_fetched(self, raw: Any, options: FetchOptions) -> None: ...

    def apply_cached(self, value: Any, options: FetchOptions) -> None: ...

    def cache_value(self, raw: Any) -> Any: ...


class Record:
    """A single server-side record addressed by URL.

    Subclasses override :meth:`parse` when the server wraps the attributes
    (for example ``{"data": {...}}``).

    Args:
        url: The record URL, or a callable producing it.
        attributes: Initial attribute values.
    """

    def __init__(self, url: UrlSource = None, attributes: Optional[dict[str, Any]] = None) -> None:
        self._identity = as_identity(url)
        self.attributes: dict[str, Any] = dict(attributes or {})

    def resolve_identity(self) -> Optional[str]:
        return self._identity() or None

    def parse(self, raw: Any) -> dict[str, Any]:
        """Turn a raw server payload into an attribute mapping."""
        if not isinstance(raw, dict):
            raise PayloadShapeError(f"{type(self).__name__} expects a JSON object, got {type(raw).__name__}")
        return raw

    def set(self, attributes: dict[str, Any]) -> None:
        """Merge *attributes* into the record."""
        self.attributes.update(attributes)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def apply_fetched(self, raw: Any, options: FetchOptions) -> None:
        self.set(self.parse(raw))

    def apply_cached(self, value: Any, options: FetchOptions) -> None:
        self.set(value)

    def cache_value(self, raw: Any) -> Any:
        return self.parse(raw)

    def to_data(self) -> dict[str, Any]:
        return dict(self.attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.resolve_identity()!r})"


class RecordSet:
    """An ordered collection of :class:`Record` objects fetched from one URL.

    Args:
        url: The collection URL, or a callable producing it.
        record_factory: Builds a member record from one parsed item.
    """

    def __init__(
        self,
        url: UrlSource = None,
        record_factory: Optional[Callable[[dict[str, Any]], Record]] = None,
    ) -> None:
        self._identity = as_identity(url)
        self._record_factory = record_factory or (lambda attrs: Record(attributes=attrs))
        self.records: list[Record] = []

    def resolve_identity(self) -> Optional[str]:
        return self._identity() or None

    def parse(self, raw: Any) -> list[dict[str, Any]]:
        """Turn a raw server payload into a list of attribute mappings."""
        if not isinstance(raw, list):
            raise PayloadShapeError(f"{type(self).__name__} expects a JSON array, got {type(raw).__name__}")
        return raw

    def reset(self, items: list[dict[str, Any]]) -> None:
        """Replace all members with records built from *items*."""
        self.records = [self._record_factory(item) for item in items]

    def add(self, items: list[dict[str, Any]]) -> None:
        """Append records built from *items*."""
        self.records.extend(self._record_factory(item) for item in items)

    def apply_fetched(self, raw: Any, options: FetchOptions) -> None:
        self._apply(self.parse(raw), options)

    def apply_cached(self, value: Any, options: FetchOptions) -> None:
        self._apply(self.parse(value), options)

    def cache_value(self, raw: Any) -> Any:
        return raw

    def to_data(self) -> list[dict[str, Any]]:
        return [record.to_data() for record in self.records]

    def _apply(self, items: list[dict[str, Any]], options: FetchOptions) -> None:
        if options.add:
            self.add(items)
        else:
            self.reset(items)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.resolve_identity()!r}, size={len(self.records)})"
