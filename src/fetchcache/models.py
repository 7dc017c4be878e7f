"""Canonical Pydantic models shared across all fetchcache modules.

The models fall into two groups:

**Cache models** -- the unit of storage:
    :class:`CacheEntry`, serialised into the persisted blob as
    ``{"expiresAt": <ms or null>, "value": <payload>}``.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Cache entries ---


class CacheEntry(BaseModel):
    """One cached payload with its absolute expiry.

    Entries are immutable: a write for an existing key always substitutes a
    whole new entry.

    Attributes:
        expires_at: Epoch milliseconds after which the entry is unusable, or
            ``None`` when the entry never expires.
        value: The payload reapplied to a resource on a hit.  For a record
            this is its attribute mapping; for a record set it is the raw
            server payload, parsed again at apply time.

    Example::

        CacheEntry(expires_at=1_700_000_300_000, value={"id": 1, "name": "Ada"})
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    expires_at: Optional[int] = Field(default=None, alias="expiresAt")
    value: Any = None

    @field_validator("expires_at", mode="before")
    @classmethod
    def _false_means_never(cls, v: Any) -> Any:
        # Older blobs used a literal ``false`` for "never expires".
        if v is False:
            return None
        return v

    def is_expired(self, now_ms: int) -> bool:
        """Return ``True`` once ``now_ms`` has reached :attr:`expires_at`."""
        if self.expires_at is None:
            return False
        return now_ms >= self.expires_at


# --- Configuration ---


class CacheConfig(BaseModel):
    """Cache and persistence settings."""

    persist: bool = Field(
        default=True, description="Persist the cache to the storage backend"
    )
    default_ttl_seconds: int = Field(
        default=300, gt=0, description="TTL applied when a write gives no expiry"
    )
    slot_name: str = Field(
        default="fetchcache", description="Key under which the whole store is saved"
    )
    quota_bytes: Optional[int] = Field(
        default=5 * 1024 * 1024,
        description="Maximum size of the persisted blob (None = unlimited)",
    )
    backend: Literal["disk", "memory"] = Field(
        default="disk", description="Storage backend used for persistence"
    )


class RequestConfig(BaseModel):
    """HTTP request settings for the live fetcher."""

    base_url: Optional[str] = Field(
        default=None, description="Prefix for relative resource URLs"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=3, description="Max retry attempts")


class GlobalConfig(BaseModel):
    """Top-level user configuration.

    Loaded by :func:`~fetchcache.config.load_global_config` and persisted by
    :func:`~fetchcache.config.save_global_config`. Fields here have the
    lowest precedence; environment variables override them.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
