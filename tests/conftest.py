"""Shared test fixtures for srcomapi.

Provides a simulated clock, a seeded random source, an isolated config
environment and a fake speedrun.com transport.  No test touches the real
network or sleeps.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Optional

import httpx
import pytest

from srcomapi.output import reset_output

BASE = "https://www.speedrun.com/api/v1"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager keeps references to sys.stdout/sys.stderr; CliRunner swaps
    those out per invocation.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Time and randomness
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock whose ``sleep`` advances time instantly and is recorded."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.time = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.time += seconds

    def advance(self, seconds: float) -> None:
        self.time += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


# ---------------------------------------------------------------------------
# Isolated environment
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Point config and cache directories at tmp_path and clear SRCOMAPI_* vars."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in ("SRCOMAPI_API_KEY", "SRCOMAPI_USER_AGENT", "SRCOMAPI_CACHE_FILE"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakeAPI:
    """Routes requests by path to canned JSON bodies and records every request.

    A route value may be a dict (served with status 200), an
    ``httpx.Response``, or a callable taking the request.
    """

    def __init__(self, routes: Optional[dict[str, Any]] = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/api/v1"):
            path = path[len("/api/v1"):]
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, json={"status": 404, "message": f"{path} not found"})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return httpx.Response(200, json=route)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(path))


def paged_handler(items: list[Any]) -> Callable[[httpx.Request], httpx.Response]:
    """Serve *items* honouring ``offset`` and ``max`` like the real API."""

    def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params
        offset = int(query.get("offset", 0))
        size = int(query.get("max", 20))
        page = items[offset:offset + size]
        return httpx.Response(
            200,
            json={
                "data": page,
                "pagination": {"offset": offset, "max": size, "size": len(page), "links": []},
            },
        )

    return handler


@pytest.fixture
def api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def paged() -> Callable[[list[Any]], Callable[[httpx.Request], httpx.Response]]:
    return paged_handler
