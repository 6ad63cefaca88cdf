# Shared fixtures: a scripted HTTP backend mounted through httpx.MockTransport.

from __future__ import annotations

import asyncio
import urllib.parse
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from pawauth.client import OAuth2Client

BASE_URL = "http://www.example.com"


class FakeServer:
    """Answers requests from per-route queues of scripted responses.

    A route's queue is consumed in order; its last entry repeats forever.
    Entries are ``(status, body)`` tuples (dict bodies become JSON) or
    callables taking the ``httpx.Request``.
    """

    def __init__(self):
        self._routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses: Any) -> FakeServer:
        self._routes.setdefault((method.upper(), path), []).extend(responses)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404)
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(entry):
            return entry(request)
        status, body = entry
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body or b"")

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        return dict(urllib.parse.parse_qsl(request.content.decode()))


def _suspending(server: FakeServer):
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0)
        return server(request)

    return handler


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def make_client(server) -> Callable[..., OAuth2Client]:
    """Build clients wired to ``server``.

    ``yielding=True`` makes each request suspend once before it is answered,
    so concurrent calls genuinely interleave.
    """

    def factory(config=None, base_url: str | None = BASE_URL, *, yielding=False, **kwargs):
        handler = _suspending(server) if yielding else server
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        if base_url is None:
            return OAuth2Client(config, http_client=http, **kwargs)
        return OAuth2Client(base_url, config, http_client=http, **kwargs)

    return factory
