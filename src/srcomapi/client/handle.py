"""Client handles: the objects callers hold to reach the fetch pipeline.

A handle is a thin, cheap-to-copy wrapper around a shared
:class:`~srcomapi.client.pipeline.FetchPipeline`.  Cloning a handle never
copies the cache or the rate limiter, so every clone counts against the
same quota and sees the same cached responses.

Two flavours exist:

* :class:`Client` -- unauthenticated; enough for every public endpoint.
* :class:`AuthenticatedClient` -- also sends the user's API key.  It can be
  downgraded with :meth:`AuthenticatedClient.unauthenticated`; there is no
  way back.  Accessors that need credentials call :func:`require_auth`
  before issuing any request.
"""

from __future__ import annotations

import copy
import random
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

import httpx
from pydantic import SecretStr

from srcomapi.client.pipeline import FetchPipeline, QueryParams, unwrap
from srcomapi.clock import Clock
from srcomapi.exceptions import AuthError, ConfigError, MalformedResponseError
from srcomapi.models import ClientConfig, check_header_value

T = TypeVar("T")

API_KEY_HEADER = "X-API-Key"


@dataclass(frozen=True)
class AnnotatedData(Generic[T]):
    """A piece of response data paired with the handle it was fetched through."""

    data: T
    client: Client


Factory = Callable[[Any, "Client"], T]


class Client:
    """Unauthenticated handle to the speedrun.com API.

    Use :meth:`create` to build a handle with its own pipeline, and
    :meth:`clone` to hand copies to other threads.  Closing any clone
    closes the shared pipeline.

    Example::

        with Client.create() as client:
            body = client.get("/games/sms")
    """

    def __init__(self, pipeline: FetchPipeline, base_url: Optional[str] = None) -> None:
        self._pipeline = pipeline
        self._base_url = (base_url or ClientConfig().request.base_url).rstrip("/")

    @classmethod
    def create(
        cls,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> Client:
        """Build an unauthenticated handle with a fresh pipeline.

        Any ``api_key`` in *config* is ignored; see
        :meth:`AuthenticatedClient.create`.
        """
        config = config or ClientConfig()
        pipeline = FetchPipeline.from_config(config, transport=transport, clock=clock, rng=rng)
        return Client(pipeline, config.request.base_url)

    # ------------------------------------------------------------------ #
    # Handle management
    # ------------------------------------------------------------------ #

    @property
    def pipeline(self) -> FetchPipeline:
        return self._pipeline

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_authenticated(self) -> bool:
        return False

    def clone(self) -> Client:
        """Return a new handle sharing this handle's pipeline."""
        return copy.copy(self)

    def close(self) -> None:
        """Close the shared transport and flush the cache."""
        self._pipeline.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(base_url={self._base_url!r})"

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    def url(self, path: str) -> str:
        """Return the absolute URL for an API-relative *path*."""
        return f"{self._base_url}{path}"

    def get_raw(self, url: Union[str, httpx.URL], query: Optional[QueryParams] = None) -> Any:
        """Fetch an absolute URL and return the whole JSON body."""
        return self._pipeline.get_raw(url, query, headers=self._headers())

    def get_abs_query(self, url: Union[str, httpx.URL], query: Optional[QueryParams]) -> Any:
        """Fetch an absolute URL with extra query parameters and unwrap ``data``."""
        return unwrap(self.get_raw(url, query))

    def get_abs(self, url: Union[str, httpx.URL]) -> Any:
        """Fetch an absolute URL and unwrap ``data``."""
        return self.get_abs_query(url, None)

    def get_query(self, path: str, query: Optional[QueryParams]) -> Any:
        """Fetch an API-relative path with extra query parameters and unwrap ``data``."""
        return self.get_abs_query(self.url(path), query)

    def get(self, path: str) -> Any:
        """Fetch an API-relative path and unwrap ``data``."""
        return self.get_abs(self.url(path))

    def annotate(self, data: T) -> AnnotatedData[T]:
        return AnnotatedData(data, self)

    def get_collection(
        self,
        path: str,
        factory: Optional[Factory[T]] = None,
        query: Optional[QueryParams] = None,
    ) -> list[T]:
        """Fetch a path whose ``data`` is a JSON array.

        Each element is passed to ``factory(element, client)`` together with
        this handle, so the resulting objects can issue further requests
        with the same credentials.  Without a factory the elements are
        wrapped in :class:`AnnotatedData`.

        Raises:
            MalformedResponseError: If ``data`` is not an array.
        """
        data = self.get_query(path, query)
        if not isinstance(data, list):
            raise MalformedResponseError(f"Expected a list from {path}, got {type(data).__name__}")
        build = factory or AnnotatedData
        return [build(item, self) for item in data]

    def _headers(self) -> dict[str, str]:
        return {}


class AuthenticatedClient(Client):
    """Handle that sends the user's API key with every request.

    Usable anywhere a :class:`Client` is accepted.  The key is validated
    eagerly, so a key that cannot be sent as a header fails here and not on
    the first request.

    Raises:
        ConfigError: If the key is empty or contains non-printable characters.
    """

    def __init__(
        self,
        pipeline: FetchPipeline,
        api_key: Union[str, SecretStr],
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(pipeline, base_url)
        if not isinstance(api_key, SecretStr):
            api_key = SecretStr(api_key)
        try:
            check_header_value("api_key", api_key.get_secret_value(), secret=True)
        except ValueError as exc:
            raise ConfigError(f"Invalid API key: {exc}") from exc
        self._api_key = api_key

    @classmethod
    def create(
        cls,
        config: Optional[ClientConfig] = None,
        *,
        api_key: Optional[Union[str, SecretStr]] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> AuthenticatedClient:
        """Build an authenticated handle with a fresh pipeline.

        The key is taken from *api_key*, falling back to ``config.api_key``.

        Raises:
            ConfigError: If no key is available or it is invalid.
        """
        config = config or ClientConfig()
        key = api_key if api_key is not None else config.api_key
        if key is None:
            raise ConfigError("An API key is required for an authenticated client")
        pipeline = FetchPipeline.from_config(config, transport=transport, clock=clock, rng=rng)
        try:
            return cls(pipeline, key, config.request.base_url)
        except ConfigError:
            pipeline.close()
            raise

    @property
    def is_authenticated(self) -> bool:
        return True

    def unauthenticated(self) -> Client:
        """Return a handle on the same pipeline that no longer sends the key."""
        return Client(self._pipeline, self._base_url)

    def _headers(self) -> dict[str, str]:
        return {API_KEY_HEADER: self._api_key.get_secret_value()}


def build_client(
    config: ClientConfig,
    *,
    transport: Optional[httpx.BaseTransport] = None,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> Client:
    """Return an :class:`AuthenticatedClient` when *config* has a key, else a :class:`Client`."""
    if config.api_key is not None:
        return AuthenticatedClient.create(config, transport=transport, clock=clock, rng=rng)
    return Client.create(config, transport=transport, clock=clock, rng=rng)


def require_auth(client: Client) -> AuthenticatedClient:
    """Return *client* if it carries an API key.

    Raises:
        AuthError: For unauthenticated handles, before any request is sent.
    """
    if not isinstance(client, AuthenticatedClient):
        raise AuthError("This endpoint requires an authenticated client (API key)")
    return client
