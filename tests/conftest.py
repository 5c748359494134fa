"""Shared fixtures: a WorkFlowyClient wired to an in-memory httpx transport."""

from __future__ import annotations

import asyncio
import json
from collections import deque
from typing import Any, Callable

import httpx
import pytest
from pydantic import SecretStr

from workflowy_api.client import WorkFlowyClient
from workflowy_api.models import APIConfiguration


def run(coro: Any) -> Any:
    """Drive one client coroutine to completion."""
    return asyncio.run(coro)


def node_payload(node_id: str, name: str | None = None, **extra: Any) -> dict[str, Any]:
    """A node as the API returns it."""
    payload: dict[str, Any] = {
        "id": node_id,
        "name": name if name is not None else f"Node {node_id}",
        "note": None,
        "priority": 0,
        "completed": False,
        "data": {"layoutMode": "bullets"},
        "createdAt": 1700000000,
        "modifiedAt": 1700000100,
        "completedAt": None,
    }
    payload.update(extra)
    return payload


class StubAPI:
    """Queued responses in, recorded requests out."""

    def __init__(self) -> None:
        self.responses: deque[Callable[[httpx.Request], httpx.Response] | httpx.Response] = deque()
        self.requests: list[httpx.Request] = []

    def reply(self, status: int = 200, body: Any = None, text: str | None = None, **kwargs: Any) -> "StubAPI":
        if text is not None:
            self.responses.append(httpx.Response(status, text=text, **kwargs))
        else:
            self.responses.append(httpx.Response(status, json=body, **kwargs))
        return self

    def raise_error(self, error_factory: Callable[[httpx.Request], Exception]) -> "StubAPI":
        def handler(request: httpx.Request) -> httpx.Response:
            raise error_factory(request)

        self.responses.append(handler)
        return self

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"No more responses queued for {request.method} {request.url}")
        item = self.responses.popleft()
        if callable(item) and not isinstance(item, httpx.Response):
            return item(request)
        return item

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def stub_api() -> StubAPI:
    return StubAPI()


@pytest.fixture
def api_config() -> APIConfiguration:
    return APIConfiguration(api_key=SecretStr("test_key"), timeout=5.0)


@pytest.fixture
def client(stub_api: StubAPI, api_config: APIConfiguration) -> WorkFlowyClient:
    return WorkFlowyClient(api_config, transport=httpx.MockTransport(stub_api.handle))
