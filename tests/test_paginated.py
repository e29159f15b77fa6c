"""Tests for lazily paginated listings."""

from __future__ import annotations

import httpx
import pytest

from srcomapi.client import Client
from srcomapi.exceptions import ConfigError, MalformedResponseError, PaginationError, ServerError
from srcomapi.models import CacheConfig, ClientConfig
from srcomapi.paginated import ListState, PaginatedList


@pytest.fixture
def client(api, clock, rng):
    client = Client.create(
        ClientConfig(cache=CacheConfig(enabled=False)), transport=api.transport, clock=clock, rng=rng
    )
    yield client
    client.close()


def _items(n: int) -> list[dict]:
    return [{"id": f"u{i}"} for i in range(n)]


class TestIteration:
    def test_yields_every_item_in_order(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(25))
        users = PaginatedList(client, "/users", page_size=10)
        assert [u.data["id"] for u in users] == [f"u{i}" for i in range(25)]
        assert len(api.requests) == 3

    def test_requests_offset_and_max(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(25))
        list(PaginatedList(client, "/users", page_size=10))
        offsets = [(r.url.params["offset"], r.url.params["max"]) for r in api.requests]
        assert offsets == [("0", "10"), ("10", "10"), ("20", "10")]

    def test_full_last_page_needs_one_more_request(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(20))
        users = PaginatedList(client, "/users", page_size=10)
        assert len(list(users)) == 20
        assert len(api.requests) == 3

    def test_empty_listing(self, api, client, paged) -> None:
        api.routes["/users"] = paged([])
        users = PaginatedList(client, "/users")
        assert list(users) == []
        assert users.state is ListState.EXHAUSTED

    def test_lazy_until_iterated(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(5))
        users = PaginatedList(client, "/users")
        assert api.requests == []
        assert users.state is ListState.FRESH
        next(users)
        assert len(api.requests) == 1

    def test_states_and_offset(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(15))
        users = PaginatedList(client, "/users", page_size=10)
        next(users)
        assert users.state is ListState.BUFFERED
        assert users.offset == 10
        rest = list(users)
        assert len(rest) == 14
        assert users.state is ListState.EXHAUSTED
        assert users.offset == 15

    def test_stays_exhausted(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(3))
        users = PaginatedList(client, "/users")
        list(users)
        with pytest.raises(StopIteration):
            next(users)
        assert len(api.requests) == 1

    def test_factory_receives_client(self, api, client, paged) -> None:
        api.routes["/users"] = paged(_items(2))
        users = PaginatedList(client, "/users", lambda item, c: (item["id"], c is client))
        assert list(users) == [("u0", True), ("u1", True)]

    def test_bulk_query_kept(self, api, client, paged) -> None:
        api.routes["/games"] = paged(_items(3))
        list(PaginatedList(client, "/games?_bulk=yes", page_size=1000))
        assert api.requests[0].url.params["_bulk"] == "yes"
        assert api.requests[0].url.params["max"] == "1000"


class TestPageSize:
    @pytest.mark.parametrize("size", [0, -1, 201])
    def test_out_of_range_rejected(self, client, size: int) -> None:
        with pytest.raises(ConfigError):
            PaginatedList(client, "/users", page_size=size)

    def test_setter_validates(self, client) -> None:
        users = PaginatedList(client, "/users")
        users.page_size = 200
        assert users.page_size == 200
        with pytest.raises(ConfigError):
            users.page_size = 1000

    def test_bulk_allows_thousand(self, client) -> None:
        games = PaginatedList(client, "/games?_bulk=yes", page_size=1000)
        assert games.is_bulk
        assert games.max_page_size == 1000
        with pytest.raises(ConfigError):
            games.page_size = 1001

    def test_default_is_twenty(self, client) -> None:
        assert PaginatedList(client, "/users").page_size == 20


class TestProtocolErrors:
    def test_size_mismatch(self, api, client) -> None:
        api.routes["/users"] = {"data": [{"id": "a"}], "pagination": {"size": 2, "max": 20}}
        with pytest.raises(PaginationError):
            list(PaginatedList(client, "/users"))

    def test_missing_pagination(self, api, client) -> None:
        api.routes["/users"] = {"data": []}
        with pytest.raises(MalformedResponseError):
            list(PaginatedList(client, "/users"))

    def test_server_error_propagates_mid_iteration(self, api, client, paged) -> None:
        serve = paged(_items(15))

        def flaky(request: httpx.Request) -> httpx.Response:
            if request.url.params["offset"] != "0":
                return httpx.Response(500)
            return serve(request)

        api.routes["/users"] = flaky
        users = PaginatedList(client, "/users", page_size=10)
        got = [next(users) for _ in range(10)]
        assert len(got) == 10
        with pytest.raises(ServerError):
            next(users)
