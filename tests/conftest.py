"""Shared fixtures: a fake Redmine served through httpx.MockTransport."""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from redmine_mcp.client import RedmineClient
from redmine_mcp.config import RedmineConfig
from redmine_mcp.context import ContextStore
from redmine_mcp.dispatcher import Dispatcher

BASE_URL = "https://redmine.example.com"

Route = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


class FakeRedmine:
    """Records every request and answers from a (method, path) route table."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = (status, body)

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"errors": ["Not found"]})
        if callable(route):
            return route(request)
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method: str = None, path: str = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


@pytest.fixture
def config():
    return RedmineConfig(base_url=BASE_URL, api_key="secret-key")


@pytest.fixture
def fake():
    return FakeRedmine()


@pytest.fixture
def client(config, fake):
    return RedmineClient(config, transport=httpx.MockTransport(fake.handle))


@pytest.fixture
def store():
    return ContextStore()


@pytest.fixture
def dispatcher(client, store):
    return Dispatcher(client, store)
