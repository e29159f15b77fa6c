"""Tests for client handles: fetch helpers, cloning and authentication."""

from __future__ import annotations

import httpx
import pytest
from pydantic import SecretStr

from srcomapi.client import (
    AnnotatedData,
    AuthenticatedClient,
    Client,
    build_client,
    require_auth,
)
from srcomapi.client.handle import API_KEY_HEADER
from srcomapi.exceptions import AuthError, ConfigError, MalformedResponseError
from srcomapi.models import CacheConfig, ClientConfig

BASE = "https://www.speedrun.com/api/v1"


def _config(**kwargs) -> ClientConfig:
    return ClientConfig(cache=CacheConfig(enabled=False), **kwargs)


class TestFetchHelpers:
    def test_get_unwraps_data(self, api, clock, rng) -> None:
        api.routes["/games/sms"] = {"data": {"id": "v1pxjz68"}}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            assert client.get("/games/sms") == {"id": "v1pxjz68"}

    def test_get_query_sends_parameters(self, api, clock, rng) -> None:
        api.routes["/runs"] = {"data": []}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            client.get_query("/runs", {"game": "sms", "status": "verified"})
        assert dict(api.requests[0].url.params) == {"game": "sms", "status": "verified"}

    def test_get_abs_follows_absolute_links(self, api, clock, rng) -> None:
        api.routes["/games/v1pxjz68"] = {"data": {"id": "v1pxjz68"}}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            assert client.get_abs(f"{BASE}/games/v1pxjz68") == {"id": "v1pxjz68"}

    def test_missing_envelope_is_malformed(self, api, clock, rng) -> None:
        api.routes["/games/sms"] = {"id": "sms"}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            with pytest.raises(MalformedResponseError):
                client.get("/games/sms")

    def test_get_collection_annotates_items(self, api, clock, rng) -> None:
        api.routes["/games/sms/categories"] = {"data": [{"id": "a"}, {"id": "b"}]}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            items = client.get_collection("/games/sms/categories")
            assert [item.data["id"] for item in items] == ["a", "b"]
            assert all(isinstance(item, AnnotatedData) and item.client is client for item in items)

    def test_get_collection_uses_factory(self, api, clock, rng) -> None:
        api.routes["/games/sms/levels"] = {"data": [{"id": "a"}]}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            items = client.get_collection("/games/sms/levels", lambda item, c: (item["id"], c))
            assert items == [("a", client)]

    def test_get_collection_rejects_non_list(self, api, clock, rng) -> None:
        api.routes["/games/sms/levels"] = {"data": {"id": "a"}}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            with pytest.raises(MalformedResponseError):
                client.get_collection("/games/sms/levels")


class TestCloning:
    def test_clones_share_cache_and_quota(self, api, clock, rng) -> None:
        api.routes["/games/sms"] = {"data": {}}
        config = ClientConfig()
        client = Client.create(config, transport=api.transport, clock=clock, rng=rng)
        clone = client.clone()
        client.get("/games/sms")
        clone.get("/games/sms")
        assert clone.pipeline is client.pipeline
        assert len(api.requests) == 1
        client.close()

    def test_callers_get_independent_results(self, api, clock, rng) -> None:
        api.routes["/games/sms/categories"] = {"data": [{"id": "c1", "name": "Any%"}]}
        client = Client.create(ClientConfig(), transport=api.transport, clock=clock, rng=rng)
        first = client.get_collection("/games/sms/categories")
        first[0].data["name"] = "changed"
        second = client.clone().get("/games/sms/categories")
        second.append({"id": "c2"})
        assert client.get("/games/sms/categories") == [{"id": "c1", "name": "Any%"}]
        assert len(api.requests) == 1
        client.close()


class TestAuthentication:
    def test_unauthenticated_sends_no_key(self, api, clock, rng) -> None:
        api.routes["/games/sms"] = {"data": {}}
        with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
            client.get("/games/sms")
            assert client.is_authenticated is False
        assert API_KEY_HEADER not in api.requests[0].headers

    def test_authenticated_sends_key(self, api, clock, rng) -> None:
        api.routes["/notifications"] = {"data": []}
        client = AuthenticatedClient.create(
            _config(), api_key="abc123", transport=api.transport, clock=clock, rng=rng
        )
        with client:
            client.get("/notifications")
            assert client.is_authenticated is True
        assert api.requests[0].headers[API_KEY_HEADER] == "abc123"

    def test_downgrade_drops_key_and_keeps_pipeline(self, api, clock, rng) -> None:
        api.routes["/games/sms"] = {"data": {}}
        client = AuthenticatedClient.create(
            _config(), api_key="abc123", transport=api.transport, clock=clock, rng=rng
        )
        plain = client.unauthenticated()
        plain.get("/games/sms")
        assert type(plain) is Client
        assert plain.pipeline is client.pipeline
        assert API_KEY_HEADER not in api.requests[0].headers
        client.close()

    def test_key_not_in_repr(self, api, clock, rng) -> None:
        client = AuthenticatedClient.create(
            _config(), api_key="abc123", transport=api.transport, clock=clock, rng=rng
        )
        assert "abc123" not in repr(client)
        client.close()

    @pytest.mark.parametrize("key", ["", "line\nbreak", "ключ"])
    def test_invalid_key_rejected(self, api, key: str) -> None:
        with pytest.raises(ConfigError):
            AuthenticatedClient.create(_config(), api_key=key, transport=api.transport)
        assert api.requests == []

    def test_invalid_key_not_echoed(self, api) -> None:
        with pytest.raises(ConfigError) as exc_info:
            AuthenticatedClient.create(_config(), api_key="top\nsecret", transport=api.transport)
        assert "secret" not in str(exc_info.value)
        assert "api_key" in str(exc_info.value)

    def test_secret_key_accepted(self, api, clock, rng) -> None:
        api.routes["/notifications"] = {"data": []}
        client = AuthenticatedClient.create(
            _config(), api_key=SecretStr("abc123"), transport=api.transport, clock=clock, rng=rng
        )
        with client:
            client.get("/notifications")
        assert api.requests[0].headers[API_KEY_HEADER] == "abc123"

    def test_missing_key_rejected(self, api) -> None:
        with pytest.raises(ConfigError):
            AuthenticatedClient.create(_config(), transport=api.transport)

    def test_build_client_picks_flavour(self, api) -> None:
        plain = build_client(_config(), transport=api.transport)
        authed = build_client(_config(api_key="abc123"), transport=api.transport)
        assert type(plain) is Client
        assert isinstance(authed, AuthenticatedClient)
        plain.close()
        authed.close()

    def test_require_auth(self, api) -> None:
        plain = Client.create(_config(), transport=api.transport)
        authed = AuthenticatedClient.create(_config(), api_key="abc123", transport=api.transport)
        assert require_auth(authed) is authed
        with pytest.raises(AuthError):
            require_auth(plain)
        with pytest.raises(AuthError):
            require_auth(authed.unauthenticated())
        assert api.requests == []
        plain.close()
        authed.close()


def test_connection_failure_surfaces_as_transient(api, clock, rng) -> None:
    from srcomapi.exceptions import ConnectionError_

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    api.routes["/games/sms"] = broken
    with Client.create(_config(), transport=api.transport, clock=clock, rng=rng) as client:
        with pytest.raises(ConnectionError_):
            client.get("/games/sms")
