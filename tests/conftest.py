"""Shared fixtures: a fake backend served through httpx.MockTransport."""

import json
from typing import Any, Callable

import httpx
import pytest

from stationery_server.auth import AuthManager
from stationery_server.config import Settings
from stationery_server.state import AppState
from stationery_server.stationery_client import StationeryClient
from stationery_server.storage import LocalStorage

BACKEND_URL = "http://backend.test"

PRODUCTS = [
    {
        "_id": "p1",
        "name": "Premium Notebook",
        "description": "Leather cover, dotted pages",
        "price": 24.99,
        "category": "Notebooks",
        "image": "notebook.jpg",
    },
    {
        "_id": "p2",
        "name": "Fountain Pen Set",
        "description": "Three ink cartridges included",
        "price": 45.99,
        "category": "Pens",
        "image": "https://cdn.example.com/pen.jpg",
    },
    {
        "_id": "p3",
        "name": "Sticky Notes",
        "description": "Bright colors",
        "price": 10.0,
        "category": "Office supplies",
        "image": "",
    },
]

BLOG_POSTS = [
    {
        "_id": "b1",
        "title": "Keeping a Bullet Journal",
        "content": "Start with an index page.",
        "author": "Rana",
        "image": "journal.jpg",
        "createdAt": "2024-03-01T09:30:00.000Z",
    },
]

ORDERS = [
    {
        "_id": "o1",
        "name": "Alice",
        "phone": "0999",
        "address": "1 Main St",
        "area": "Homs",
        "products": [{"_id": "p1", "name": "Premium Notebook", "quantity": 2, "price": 24.99}],
        "subtotal": 49.98,
        "total": 59.98,
        "status": "Delivered",
        "createdAt": "2024-03-02T10:00:00.000Z",
    },
]

Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Routes (method, path) pairs to canned responses and records requests."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []
        self.route("GET", "/product/get", 200, json={"products": PRODUCTS})
        self.route("HEAD", "/product/get", 200)
        self.route("GET", "/blog/getblogs", 200, json={"blogs": BLOG_POSTS})
        self.route("HEAD", "/blog/getblogs", 200)
        self.route("GET", "/api/getorders", 200, json={"orders": ORDERS})
        self.route("HEAD", "/api/getorders", 200)
        self.route("POST", "/api/sendorder", 201, json={"message": "Order created"})

    def route(self, method: str, path: str, status_code: int = 200, **kwargs: Any) -> None:
        """Answer with a fresh response built from ``status_code`` and ``kwargs``."""
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, **kwargs)

    def handle(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def fail_all(self) -> None:
        """Make every request fail at the transport level."""
        self.routes.clear()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            if not self.routes:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)

    def last(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return request
        raise AssertionError(f"No {method} {path} request was sent")

    def body(self, method: str, path: str) -> Any:
        return json.loads(self.last(method, path).content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage_file(tmp_path) -> str:
    return str(tmp_path / "storage.json")


@pytest.fixture
def storage(storage_file) -> LocalStorage:
    return LocalStorage(storage_file)


@pytest.fixture
def auth_manager(storage) -> AuthManager:
    return AuthManager(storage)


@pytest.fixture
async def client(auth_manager, backend):
    client = StationeryClient(auth_manager, base_url=BACKEND_URL, transport=backend.transport)
    yield client
    await client.close()


@pytest.fixture
def settings(storage_file) -> Settings:
    return Settings(backend_url=BACKEND_URL, storage_file=storage_file, probe_interval=0.05)


@pytest.fixture
def make_state(settings, backend) -> Callable[[], AppState]:
    def factory() -> AppState:
        return AppState.from_settings(settings, transport=backend.transport)

    return factory


@pytest.fixture
async def state(make_state):
    state = make_state()
    yield state
    await state.aclose()
