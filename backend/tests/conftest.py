"""Pytest configuration and shared fixtures."""

import json
from collections.abc import Callable, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from catalogue.main import create_app
from catalogue.search.search_client import SearchClient, get_search_client, reset_client
from tests.helpers.responses import make_response


class FakeBackend:
    """Scripted search backend recording every request body it receives."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.reply: dict[str, Any] | str = make_response()
        self.error: Exception | None = None

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.method == "HEAD":
            return httpx.Response(self.status_code)
        if isinstance(self.reply, str):
            return httpx.Response(self.status_code, text=self.reply)
        return httpx.Response(self.status_code, json=self.reply)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def search_client(fake_backend: FakeBackend) -> Generator[SearchClient, None, None]:
    """SearchClient wired to the fake backend."""
    client = SearchClient(
        "https://search.test/yaz-scrape/_search",
        username="reader",
        password="secret",
        transport=httpx.MockTransport(fake_backend.handler),
    )
    yield client
    client.close()


@pytest.fixture
def client(search_client: SearchClient) -> Generator[TestClient, None, None]:
    """Test client with the search backend replaced by the fake one."""
    reset_client()
    app = create_app()
    app.dependency_overrides[get_search_client] = lambda: search_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_clock() -> Callable[[], float]:
    """Manually advanced monotonic clock; call `.advance(seconds)` to move it."""

    class Clock:
        def __init__(self):
            self.now = 0.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return Clock()
