"""
Shared pytest fixtures for the restock alerts tests.

These fixtures provide consistent catalog data, an in-memory transport that
stands in for the upstream services, and fresh stores for every test.
"""

import json
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import pytest

from gateway.catalog_proxy import CatalogProxy
from gateway.notification_gateway import NotificationGateway
from gateway.transport import HttpResponse
from shared.data_store import JsonFileStorage, MemoryStorage
from shared.errors import TransportError
from shared.subscription_store import PersistentSubscriptionStore
from subscriptions.controller import AppController


class FakeTransport:
    """
    In-memory transport that replays canned upstream responses.

    Unconfigured paths answer 200 with an empty body. Every call is recorded
    as ``(method, path, payload)``.
    """

    def __init__(self):
        self.responses: dict[tuple[str, str], Union[HttpResponse, Exception]] = {}
        self.calls: list[tuple[str, str, Optional[dict[str, Any]]]] = []

    def respond(self, method: str, path: str, status: int = 200, body: Any = "") -> None:
        text = body if isinstance(body, str) else json.dumps(body)
        self.responses[(method, path)] = HttpResponse(status=status, text=text)

    def fail(self, method: str, path: str) -> None:
        self.responses[(method, path)] = TransportError(f"Request to {path} failed", endpoint=path)

    def _reply(self, method: str, path: str) -> HttpResponse:
        response = self.responses.get((method, path), HttpResponse(status=200, text=""))
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, path: str) -> HttpResponse:
        self.calls.append(("GET", path, None))
        return self._reply("GET", path)

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> HttpResponse:
        self.calls.append(("POST", path, dict(payload)))
        return self._reply("POST", path)

    def posts_to(self, path: str) -> list[dict[str, Any]]:
        return [payload for method, p, payload in self.calls if method == "POST" and p == path]


# =============================================================================
# Catalog Fixtures
# =============================================================================

@pytest.fixture
def all_catalog() -> dict[str, Any]:
    """Raw upstream "all" mapping, in upstream order."""
    return {
        "Amul High Protein Milk": {"available": 0, "price": 25, "images": ["https://img/milk.png"]},
        "Amul High Protein Paneer": {"available": 1, "price": 90, "images": ["https://img/paneer.png"]},
        "Amul Whey Protein": {"available": 0, "price": 2299, "images": []},
        "Amul High Protein Buttermilk": {"available": 1, "price": 30, "images": ["https://img/bm1.png", "https://img/bm2.png"]},
    }


@pytest.fixture
def available_catalog() -> dict[str, Any]:
    """Raw upstream "available" mapping."""
    return {
        "Amul High Protein Paneer": {"available": 1, "price": 90, "images": ["https://img/paneer.png"]},
        "Amul High Protein Buttermilk": {"available": 1, "price": 30, "images": ["https://img/bm1.png", "https://img/bm2.png"]},
    }


@pytest.fixture
def milk_product_name() -> str:
    """Out-of-stock product used in subscription tests."""
    return "Amul High Protein Milk"


# =============================================================================
# Transport and Client Fixtures
# =============================================================================

@pytest.fixture
def transport(all_catalog, available_catalog) -> FakeTransport:
    """Fake upstream serving both catalog views and accepting every subscription."""
    fake = FakeTransport()
    fake.respond("GET", "/all", body=all_catalog)
    fake.respond("GET", "/available", body=available_catalog)
    return fake


@pytest.fixture
def gateway(transport: FakeTransport) -> NotificationGateway:
    return NotificationGateway(transport)


@pytest.fixture
def catalog_proxy(transport: FakeTransport) -> CatalogProxy:
    return CatalogProxy(transport)


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Fresh in-memory storage for each test."""
    return MemoryStorage()


@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "restock_state.json"


@pytest.fixture
def file_storage(storage_path: Path) -> JsonFileStorage:
    return JsonFileStorage(storage_path)


@pytest.fixture
def subscription_store(memory_storage: MemoryStorage) -> PersistentSubscriptionStore:
    """Loaded, empty subscription store backed by memory."""
    store = PersistentSubscriptionStore(memory_storage)
    store.load()
    return store


@pytest.fixture
def controller(
    subscription_store: PersistentSubscriptionStore,
    catalog_proxy: CatalogProxy,
    gateway: NotificationGateway,
) -> AppController:
    return AppController(
        store=subscription_store,
        catalog_proxy=catalog_proxy,
        gateway=gateway,
    )
