"""Pytest configuration for WooMirror tests

WHAT: Shared fixtures: in-memory database, a seeded store, and a fake
      WooCommerce REST API served through httpx.MockTransport
WHY: Every test runs against real SQLModel tables and the real WooClient
     without touching the network
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import re
from typing import Any, Dict, List

import httpx
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from woomirror.connectors.woo.client import RESOURCE_PATHS, WooClient
from woomirror.database import init_db
from woomirror.models.mirror_models import Store
from woomirror.sync.context import create_sync_context

from factories import BASE_URL

REFUNDS_PATH = re.compile(r"^wc/v3/orders/(?P<order_id>[^/]+)/refunds$")


class FakeWooAPI:
    """In-memory stand-in for a store's REST API.

    Collections are served page by page like the real API; every request
    is recorded so tests can assert on the query that was sent.
    """

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {
            name: [] for name in RESOURCE_PATHS
        }
        self.refunds: Dict[str, List[Dict[str, Any]]] = {}
        self.failing: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []

    def fail(self, key: str, status: int = 500) -> None:
        """Make every request for ``key`` (a resource name or ``refunds``) fail."""
        self.failing[key] = status

    def requests_for(self, resource: str) -> List[httpx.Request]:
        path = f"/wp-json/{RESOURCE_PATHS[resource]}"
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/wp-json/")

        if path == "wc/v3/system_status":
            return httpx.Response(200, json={"environment": {"version": "8.0"}})

        match = REFUNDS_PATH.match(path)
        if match:
            if "refunds" in self.failing:
                return httpx.Response(self.failing["refunds"], text="refunds down")
            return httpx.Response(200, json=self.refunds.get(match["order_id"], []))

        resource = next((name for name, p in RESOURCE_PATHS.items() if p == path), None)
        if resource is None:
            return httpx.Response(404, json={"code": "rest_no_route"})
        if resource in self.failing:
            return httpx.Response(self.failing[resource], json={"code": "unavailable"})

        page = int(request.url.params.get("page", 1))
        per_page = int(request.url.params.get("per_page", 100))
        records = self.collections[resource]
        return httpx.Response(200, json=records[(page - 1) * per_page : page * per_page])


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session) -> Store:
    store = Store(name="Test Store", woo_base_url=BASE_URL, woo_key="ck_test", woo_secret="cs_test")
    session.add(store)
    session.commit()
    session.refresh(store)
    return store


# ============================================================================
# Remote API Fixtures
# ============================================================================


@pytest.fixture
def fake_woo() -> FakeWooAPI:
    return FakeWooAPI()


@pytest.fixture
def woo_client(fake_woo) -> WooClient:
    return WooClient(
        BASE_URL,
        "ck_test",
        "cs_test",
        transport=httpx.MockTransport(fake_woo.handler),
        retry_base_delay=0,
    )


@pytest.fixture
def ctx(session, store, woo_client):
    return create_sync_context(session, store, client=woo_client)
