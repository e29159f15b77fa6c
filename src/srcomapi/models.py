"""Canonical Pydantic models shared across srcomapi modules.

The models fall into two groups:

**Configuration models** -- optionally serialised as JSON in the user's
config directory:
    :class:`CacheTimeout`, :class:`RequestConfig`, :class:`CacheConfig`,
    :class:`RateLimitConfig` and :class:`ClientConfig`.

**Wire models** -- shapes read from the API or the disk cache:
    :class:`CacheEntry`, :class:`PaginationInfo`, :class:`PageEnvelope`
    and :class:`Link`.

All models use Pydantic v2.  Resource models (games, runs, users, ...) live
in :mod:`srcomapi.resources` because they are bound to a client handle.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from srcomapi import __version__
from srcomapi.exceptions import ConfigError

API_BASE_URL = "https://www.speedrun.com/api/v1"
"""Root of the speedrun.com REST API (version 1)."""

RATE_LIMIT_NUM_REQUESTS = 100
"""Requests allowed by the API within one :data:`RATE_LIMIT_INTERVAL`."""

RATE_LIMIT_INTERVAL = 60.0
"""Length in seconds of the sliding rate-limit window."""

DEFAULT_USER_AGENT = f"srcomapi/{__version__}"

_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]+")


def check_header_value(name: str, value: str, *, secret: bool = False) -> str:
    """Return *value* if it can be sent as an HTTP header value.

    Raises:
        ValueError: If *value* is empty or not printable ASCII.  With
            ``secret=True`` the value itself is left out of the message.
    """
    if not _HEADER_VALUE.fullmatch(value):
        shown = "" if secret else f", got {value!r}"
        raise ValueError(f"{name} must be non-empty printable ASCII{shown}")
    return value


# --- Configuration ---


class CacheTimeout(BaseModel):
    """Age range (in seconds) over which a cached response goes stale.

    Entries younger than ``low`` are always valid and entries at least
    ``high`` old are always invalid.  In between, an entry is treated as
    valid with a probability that decays linearly from 1 to 0, so that
    concurrent callers do not all refetch at the same instant.

    A fixed timeout is the degenerate range ``low == high``.

    Example::

        CacheTimeout.fixed(60)           # valid while age < 60s
        CacheTimeout.between(30, 90)     # probabilistic between 30s and 90s
        CacheTimeout.upto(120)           # probabilistic from 0s to 120s
    """

    model_config = ConfigDict(frozen=True)

    low: float = Field(ge=0, description="Age below which entries are always valid")
    high: float = Field(ge=0, description="Age from which entries are always invalid")

    @model_validator(mode="after")
    def _check_order(self) -> CacheTimeout:
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")
        return self

    @classmethod
    def fixed(cls, seconds: float) -> CacheTimeout:
        """Entries are valid while younger than *seconds*."""
        return cls._build(low=seconds, high=seconds)

    @classmethod
    def between(cls, low: float, high: float) -> CacheTimeout:
        """Entries go stale probabilistically between *low* and *high* seconds."""
        return cls._build(low=low, high=high)

    @classmethod
    def upto(cls, high: float) -> CacheTimeout:
        """Shorthand for ``between(0, high)``."""
        return cls._build(low=0, high=high)

    @classmethod
    def _build(cls, **values: float) -> CacheTimeout:
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(f"Invalid cache timeout: {exc}") from exc


class RequestConfig(BaseModel):
    """HTTP settings applied to every API call made through a handle."""

    base_url: str = Field(default=API_BASE_URL, description="API root URL")
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT, description="User-Agent header sent with every request"
    )
    timeout: float = Field(default=30, gt=0, description="Per-attempt timeout in seconds")
    max_tries: int = Field(
        default=1,
        ge=1,
        description="Attempts per request before a server or network error is returned",
    )
    retry_backoff: float = Field(
        default=0.0,
        ge=0,
        description="Base delay in seconds between attempts, doubled after each one",
    )

    @field_validator("user_agent")
    @classmethod
    def _valid_user_agent(cls, value: str) -> str:
        return check_header_value("user_agent", value)


class CacheConfig(BaseModel):
    """Response cache settings.

    ``timeout=None`` keeps entries for the lifetime of the handle.  The
    default timeout equals the rate-limit interval.
    """

    enabled: bool = Field(default=True, description="Enable response caching")
    timeout: Optional[CacheTimeout] = Field(
        default_factory=lambda: CacheTimeout(low=RATE_LIMIT_INTERVAL, high=RATE_LIMIT_INTERVAL),
        description="Expiry range, or null for entries that never expire",
    )
    path: Optional[Path] = Field(
        default=None, description="JSON file the cache is loaded from and persisted to"
    )
    persist_every: int = Field(
        default=16, ge=1, description="Inserts between best-effort writes to disk"
    )
    max_entries: Optional[int] = Field(
        default=None,
        ge=1,
        description="Evict the oldest entry past this size once it left the rate-limit window",
    )


class RateLimitConfig(BaseModel):
    """Request quota shared by every handle cloned from the same client."""

    num_requests: int = Field(default=RATE_LIMIT_NUM_REQUESTS, ge=1)
    interval: float = Field(default=RATE_LIMIT_INTERVAL, gt=0)


class ClientConfig(BaseModel):
    """Everything needed to build a client handle.

    Loaded and saved by :func:`~srcomapi.config.load_client_config` and
    :func:`~srcomapi.config.save_client_config`.  When ``api_key`` is set
    the resulting handle is an
    :class:`~srcomapi.client.handle.AuthenticatedClient`.
    """

    api_key: Optional[SecretStr] = None
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @field_validator("api_key")
    @classmethod
    def _valid_api_key(cls, value: Optional[SecretStr]) -> Optional[SecretStr]:
        if value is not None:
            check_header_value("api_key", value.get_secret_value(), secret=True)
        return value


# --- Wire formats ---


class CacheEntry(BaseModel):
    """One persisted response: when it was fetched and the raw JSON body."""

    timestamp: float
    data: Any


class PaginationInfo(BaseModel):
    """The ``pagination`` block of a listing response."""

    model_config = ConfigDict(extra="ignore")

    size: int = Field(ge=0)
    max: int = Field(ge=0)


class PageEnvelope(BaseModel):
    """A listing response: one page of items plus pagination metadata."""

    model_config = ConfigDict(extra="ignore")

    data: list[Any]
    pagination: PaginationInfo


class Link(BaseModel):
    """A ``{rel, uri}`` link embedded in resource bodies."""

    rel: str
    uri: str
