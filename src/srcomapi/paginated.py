"""Lazy iteration over paginated listing endpoints.

Listing endpoints return ``{"data": [...], "pagination": {"size", "max"}}``
one page at a time.  :class:`PaginatedList` turns such an endpoint into a
forward-only iterator that only requests the next page once the previous
one has been consumed.  Every page goes through the client's fetch
pipeline, so pages are cached and rate limited like any other request.

The iterator is an explicit state machine::

    FRESH --fetch--> BUFFERED --fetch--> ... --short page--> EXHAUSTED

A page shorter than the requested size ends the sequence.  A full page
does not: the next page is always requested to confirm there is nothing
left.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx
from pydantic import ValidationError

from srcomapi.client.handle import AnnotatedData, Client
from srcomapi.exceptions import ConfigError, MalformedResponseError, PaginationError
from srcomapi.models import PageEnvelope

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
MAX_BULK_PAGE_SIZE = 1000


class ListState(str, enum.Enum):
    """Where a :class:`PaginatedList` is in its lifecycle."""

    FRESH = "fresh"
    BUFFERED = "buffered"
    EXHAUSTED = "exhausted"


class PaginatedList(Generic[T]):
    """Iterator over every item of a paginated endpoint.

    Items are built with ``factory(item, client)``; by default they are
    wrapped in :class:`~srcomapi.client.handle.AnnotatedData`.  Iteration
    may raise any error of the fetch pipeline, plus
    :class:`~srcomapi.exceptions.PaginationError` when a page's declared
    size disagrees with its contents.

    Args:
        client: Handle used to fetch pages.
        uri: API-relative path of the listing, e.g. ``"/users"``.
        factory: Builds an item from its JSON and the client.
        page_size: Items requested per page, see :attr:`page_size`.

    Example::

        users = PaginatedList(client, "/users")
        users.page_size = 200
        for user in users:
            ...
    """

    def __init__(
        self,
        client: Client,
        uri: str,
        factory: Optional[Callable[[Any, Client], T]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._uri = uri
        self._factory = factory or AnnotatedData
        self._bulk = httpx.URL(uri).params.get("_bulk") == "yes"
        self._buffer: deque[Any] = deque()
        self._offset = 0
        self._pages_fetched = 0
        self._end_seen = False
        self._page_size = DEFAULT_PAGE_SIZE
        self.page_size = page_size

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def is_bulk(self) -> bool:
        """Whether the endpoint was requested in bulk mode (``_bulk=yes``)."""
        return self._bulk

    @property
    def max_page_size(self) -> int:
        return MAX_BULK_PAGE_SIZE if self._bulk else MAX_PAGE_SIZE

    @property
    def page_size(self) -> int:
        """Items requested per page.

        Must be within ``1..=200``, or ``1..=1000`` for a bulk listing.
        Changing it mid-iteration affects the pages not fetched yet.
        """
        return self._page_size

    @page_size.setter
    def page_size(self, value: int) -> None:
        limit = self.max_page_size
        if not 1 <= value <= limit:
            raise ConfigError(f"page_size for {self._uri} must be in 1..={limit}, got {value}")
        self._page_size = value

    @property
    def offset(self) -> int:
        """Number of items fetched from the endpoint so far."""
        return self._offset

    @property
    def state(self) -> ListState:
        if self._end_seen:
            return ListState.EXHAUSTED
        if self._pages_fetched == 0:
            return ListState.FRESH
        return ListState.BUFFERED

    def __iter__(self) -> PaginatedList[T]:
        return self

    def __next__(self) -> T:
        while True:
            if self._buffer:
                return self._factory(self._buffer.popleft(), self._client)
            if self._end_seen:
                raise StopIteration
            self._fetch_page()

    def __length_hint__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"PaginatedList(uri={self._uri!r}, page_size={self._page_size}, "
            f"offset={self._offset}, state={self.state.value})"
        )

    def _fetch_page(self) -> None:
        body = self._client.get_raw(
            self._client.url(self._uri),
            {"offset": self._offset, "max": self._page_size},
        )
        try:
            page = PageEnvelope.model_validate(body)
        except ValidationError as exc:
            raise MalformedResponseError(f"Invalid page from {self._uri}: {exc}") from exc

        size = page.pagination.size
        if size != len(page.data):
            raise PaginationError(
                f"{self._uri} at offset {self._offset} declared {size} items "
                f"but returned {len(page.data)}"
            )
        # Only a short page proves the end; a full one is ambiguous.
        if size < page.pagination.max or size == 0:
            self._end_seen = True

        self._buffer = deque(page.data)
        self._offset += size
        self._pages_fetched += 1
        logger.debug(
            "Fetched page %d of %s (%d items, offset now %d)",
            self._pages_fetched,
            self._uri,
            size,
            self._offset,
        )
