"""Per-call options accepted by :meth:`FetchInterceptor.fetch`.

Caching is opt-in per call: without ``cache`` or ``prefill`` a valid cached
entry is ignored and the live fetch always runs.

Callbacks are explicit optional continuations:

* ``prefill_success(resource)`` -- a cached value was applied.
* ``progress(resource)`` -- prefill mode only; fired after the cached value
  is applied and before the refresh is dispatched.
* ``success(resource)`` -- the call finished successfully (from cache or
  from the network).
* ``error(resource, exc)`` -- the live fetch failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Literal, Optional, Union

ResourceCallback = Callable[[Any], None]
ErrorCallback = Callable[[Any, Exception], None]


@dataclass(frozen=True)
class FetchOptions:
    """Options for one fetch.

    Attributes:
        cache: Serve a usable cached entry and skip the live fetch.
        prefill: Serve a usable cached entry, then refresh from the network.
        expires: TTL in seconds for the cache write, ``False`` for no
            expiry, or ``None`` (or ``0``) for the store default.  Checked
            on construction, so a bad value fails before any fetch.
        add: Record sets only -- append results instead of replacing.
        params: Query parameters forwarded to the live fetch.
        headers: Extra request headers forwarded to the live fetch.
    """

    cache: bool = False
    prefill: bool = False
    expires: Union[int, Literal[False], None] = None
    add: bool = False
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    prefill_success: Optional[ResourceCallback] = None
    progress: Optional[ResourceCallback] = None
    success: Optional[ResourceCallback] = None
    error: Optional[ErrorCallback] = None

    def __post_init__(self) -> None:
        # bool is an int subclass; only False is meaningful here.
        if self.expires is True or (self.expires is not None and self.expires < 0):
            raise ValueError(f"expires must be a non-negative TTL in seconds, False or None; got {self.expires!r}")

    @property
    def wants_cached(self) -> bool:
        return self.cache or self.prefill

    def merge(self, **overrides: Any) -> FetchOptions:
        """Return a copy with *overrides* applied."""
        return replace(self, **overrides)
