"""The fetch pipeline: cache, rate limit, HTTP with retry, cache write.

:class:`FetchPipeline` is the single place where srcomapi talks to the
network.  Every GET goes through the same steps:

1. **Normalize** -- merge the query mapping into the URL and sort the
   pairs, giving one cache key per logical request.
2. **Cache lookup** -- a valid entry is returned without network I/O and
   without touching the rate limiter.
3. **Rate limit** -- reserve a slot, sleeping and starting over from step 2
   when the quota is used up.  A request already in flight for the same
   URL is waited for instead of duplicated; if it fails, the waiters get
   the same error, except for 401/403.
4. **Request with retry** -- 5xx responses and transport failures are
   retried up to ``max_tries`` attempts in total; 4xx responses and
   unparsable bodies are returned immediately.
5. **Cache store** -- the parsed body is cached under the normalized URL.

Retries reuse the slot reserved in step 3 and do not consult the cache or
the limiter again.
"""

from __future__ import annotations

import copy
import logging
import random
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from srcomapi.cache import CacheStore
from srcomapi.clock import Clock, SystemClock
from srcomapi.exceptions import (
    AuthError,
    ClientError,
    ConfigError,
    ConnectionError_,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    SrcomError,
    TransientError,
)
from srcomapi.models import ClientConfig
from srcomapi.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

QueryParams = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


def normalize_url(url: Union[str, httpx.URL], query: Optional[QueryParams] = None) -> str:
    """Return the canonical form of *url* with *query* merged in.

    Existing and added query pairs are combined and sorted, so
    ``/runs?b=2`` plus ``{"a": 1}`` and ``/runs?a=1&b=2`` normalize to the
    same string.
    """
    parsed = httpx.URL(url)
    pairs = list(parsed.params.multi_items())
    if query:
        items = query.items() if isinstance(query, Mapping) else query
        pairs.extend((str(key), str(value)) for key, value in items)
    pairs.sort()
    return str(parsed.copy_with(params=pairs))


def unwrap(body: Any) -> Any:
    """Return the ``data`` member of a ``{"data": ...}`` response envelope.

    Raises:
        MalformedResponseError: If *body* is not such an envelope.
    """
    if not isinstance(body, dict) or "data" not in body:
        raise MalformedResponseError("Response body is missing the 'data' envelope")
    return body["data"]


@dataclass
class _Flight:
    """A request in progress; other callers for the same URL wait on it."""

    done: threading.Event = field(default_factory=threading.Event)
    error: Optional[SrcomError] = None
    waiters: int = 0


def _shared_failure(error: SrcomError) -> SrcomError:
    """Copy *error* so each waiting thread raises its own instance."""
    shared = copy.copy(error)
    shared.__cause__ = error.__cause__
    return shared


class FetchPipeline:
    """Shared request machinery behind every client handle.

    Owns the :class:`httpx.Client` transport, the
    :class:`~srcomapi.cache.CacheStore` and the
    :class:`~srcomapi.ratelimit.RateLimiter`.  Safe to use from many
    threads at once; no lock is held while a request or a disk write is in
    progress.

    Args:
        http: Transport used for the actual GET requests.
        cache: Response cache consulted before the network.
        limiter: Rate limiter shared by all callers.
        max_tries: Attempts per request for transient failures (>= 1).
        retry_backoff: Base delay before a retry, doubled after each one.
        clock: Time source for timestamps and sleeps.

    Raises:
        ConfigError: If ``max_tries`` is below 1.
    """

    def __init__(
        self,
        http: httpx.Client,
        cache: CacheStore,
        limiter: RateLimiter,
        *,
        max_tries: int = 1,
        retry_backoff: float = 0.0,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_tries < 1:
            raise ConfigError(f"max_tries must be at least 1, got {max_tries}")
        self._http = http
        self._cache = cache
        self._limiter = limiter
        self._max_tries = max_tries
        self._retry_backoff = retry_backoff
        self._clock = clock or SystemClock()
        self._gate = threading.Lock()
        self._inflight: dict[str, _Flight] = {}

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> FetchPipeline:
        """Build the transport, cache and limiter described by *config*.

        Raises:
            CacheFileError: If the configured cache file is unreadable.
        """
        clock = clock or SystemClock()
        request = config.request
        http = httpx.Client(
            headers={"User-Agent": request.user_agent, "Accept": "application/json"},
            timeout=request.timeout,
            follow_redirects=True,
            transport=transport,
        )
        cache = CacheStore.from_config(
            config.cache,
            eviction_window=config.rate_limit.interval,
            clock=clock,
            rng=rng,
        )
        limiter = RateLimiter.from_config(config.rate_limit, clock)
        return cls(
            http,
            cache,
            limiter,
            max_tries=request.max_tries,
            retry_backoff=request.retry_backoff,
            clock=clock,
        )

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def max_tries(self) -> int:
        return self._max_tries

    def close(self) -> None:
        """Close the transport and flush the cache to disk."""
        self._http.close()
        self._cache.close()

    def get_raw(
        self,
        url: Union[str, httpx.URL],
        query: Optional[QueryParams] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """GET *url* and return the parsed JSON body.

        Args:
            url: Absolute URL, optionally with a query string.
            query: Extra query parameters merged into the URL.
            headers: Extra headers for this request (e.g. the API key).

        Returns:
            The decoded JSON body, from the cache when possible.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ClientError: On any other 4xx.
            MalformedResponseError: If the body is not JSON.
            ServerError: On 5xx after all attempts.
            ConnectionError_: On transport failures after all attempts.
        """
        key = normalize_url(url, query)
        while True:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit: %s", key)
                return cached

            pending: Optional[_Flight] = None
            wait: Optional[float] = None
            with self._gate:
                cached = self._cache.get(key)
                if cached is not None:
                    return cached
                pending = self._inflight.get(key)
                if pending is None:
                    wait = self._limiter.try_acquire(self._clock.now())
                    if wait is None:
                        flight = _Flight()
                        self._inflight[key] = flight
                        break
                else:
                    pending.waiters += 1

            if pending is not None:
                pending.done.wait()
                if pending.error is not None:
                    logger.debug("Sharing failure of in-flight GET %s", key)
                    raise _shared_failure(pending.error)
            else:
                logger.info("Rate limit reached, waiting %.2fs before GET %s", wait, key)
                self._clock.sleep(wait)

        try:
            body = self._execute_with_retry(key, headers)
            self._cache.insert(key, body, self._clock.now())
        except SrcomError as exc:
            # 401/403 depend on the caller's key; waiters retry with their own.
            if not isinstance(exc, AuthError):
                flight.error = exc
            raise
        finally:
            with self._gate:
                del self._inflight[key]
            flight.done.set()
        return body

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _execute_with_retry(self, url: str, headers: Optional[Mapping[str, str]]) -> Any:
        """Attempt the request up to ``max_tries`` times.

        Only :class:`~srcomapi.exceptions.TransientError` triggers another
        attempt.  The delay before attempt ``n + 1`` is
        ``retry_backoff * 2 ** (n - 1)``.
        """
        last_error: Optional[TransientError] = None
        for attempt in range(1, self._max_tries + 1):
            try:
                return self._execute(url, headers)
            except TransientError as exc:
                last_error = exc
                if attempt < self._max_tries:
                    delay = self._retry_backoff * 2 ** (attempt - 1)
                    logger.warning(
                        "%s, retrying in %.1fs (attempt %d/%d)",
                        exc,
                        delay,
                        attempt,
                        self._max_tries,
                    )
                    self._clock.sleep(delay)
        assert last_error is not None
        raise last_error

    def _execute(self, url: str, headers: Optional[Mapping[str, str]]) -> Any:
        try:
            response = self._http.get(url, headers=dict(headers or {}))
        except httpx.TransportError as exc:
            raise ConnectionError_(f"GET {url} failed: {exc}") from exc

        self._map_response_error(response)

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"GET {url} returned a body that is not JSON: {exc}",
                status_code=response.status_code,
            ) from exc

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            raise AuthError(full_msg, status_code=status)
        if status == 404:
            raise NotFoundError(full_msg, status_code=status)
        if status < 500:
            raise ClientError(full_msg, status_code=status)
        raise ServerError(full_msg, status_code=status)
