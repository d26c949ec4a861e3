"""Shared test fixtures."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from aidigest.cache import ExpiringCache
from aidigest.digest.renderer import build_environment


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport(httpx.MockTransport):
    """MockTransport that routes by URL and records every request it sees.

    Routes map a URL to a response, an exception instance to raise, or a
    callable taking the request.
    """

    def __init__(self, routes: dict[str, Any]):
        self.routes = routes
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, json={"error": "no route"})
        if isinstance(route, Exception):
            raise route
        response = route(request) if callable(route) else route
        # Fresh copy so one canned response can serve repeated requests.
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content,
        )

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]


def completion_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content)


def sequence(*responses: httpx.Response | Exception) -> Callable[[httpx.Request], httpx.Response]:
    """Route handler that returns (or raises) the given responses in turn."""
    remaining = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        item = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(item, Exception):
            raise item
        return item

    return handler


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    return ExpiringCache(ttl=600.0, clock=clock)


@pytest.fixture()
def template_env():
    return build_environment()
