"""Tests for the scheduling adapter

WHAT: Lookback resolution, cron fan-out, sequential event handling and
      the HTTP trigger surface
WHY: The adapter decides which window a run sees and must keep one bad
     store from blocking the rest
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from woomirror.config import settings
from woomirror.database import get_session
from woomirror.main import app
from woomirror.models.mirror_models import Store
from woomirror.models.sync_models import SyncEvent, SyncResult
from woomirror.scheduler.jobs import (
    fan_out_events,
    resolve_since,
    run_events,
    scheduled_sync_job,
)
from woomirror.sync.stores import seed_store

NOW = datetime(2024, 6, 15, 8, 0)


class TestResolveSince:
    def test_explicit_since_is_normalized_to_naive_utc(self):
        since = datetime(2024, 6, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

        assert resolve_since(SyncEvent(store_id=1, since=since), now=NOW) == datetime(2024, 6, 1, 8, 0)

    def test_explicit_since_wins_over_full(self):
        event = SyncEvent(store_id=1, full=True, since=datetime(2024, 6, 1))

        assert resolve_since(event, now=NOW) == datetime(2024, 6, 1)

    def test_full_is_unbounded(self):
        assert resolve_since(SyncEvent(store_id=1, full=True), now=NOW) is None

    def test_default_lookback(self):
        expected = NOW - timedelta(days=settings.default_since_days)

        assert resolve_since(SyncEvent(store_id=1), now=NOW) == expected


class TestFanOut:
    def test_one_event_per_store(self, session, store):
        second = seed_store(session, "Second", "https://second.test/", "ck_2", "cs_2")

        fan_out = fan_out_events(session)

        assert fan_out.triggered == 2
        assert [e.store_id for e in fan_out.events] == [store.id, second.id]
        assert all(e.reason == "scheduled" and not e.full for e in fan_out.events)

    def test_no_stores(self, session):
        assert fan_out_events(session).triggered == 0


@pytest.fixture
def session_factory(engine):
    return lambda: Session(engine)


@pytest.fixture
def recorded_runs(monkeypatch):
    """Replace the orchestrator so events never reach the network."""
    runs = []

    async def fake_run(session, store, full=False, since=None, client=None, only=None):
        runs.append((store.id, full, since, only))
        if store.name == "Crashing":
            raise RuntimeError("database went away")
        return SyncResult(store_id=store.id)

    monkeypatch.setattr("woomirror.scheduler.jobs.run_store_sync", fake_run)
    return runs


class TestRunEvents:
    @pytest.mark.asyncio
    async def test_misconfigured_store_is_skipped(self, session, store, session_factory, recorded_runs):
        broken = Store(name="Broken", woo_base_url="https://broken.test")
        session.add(broken)
        session.commit()
        session.refresh(broken)
        events = [SyncEvent(store_id=broken.id), SyncEvent(store_id=999), SyncEvent(store_id=store.id)]

        results = await run_events(events, session_factory)

        assert [r.store_id for r in results] == [store.id]
        assert [run[0] for run in recorded_runs] == [store.id]

    @pytest.mark.asyncio
    async def test_failing_store_does_not_stop_later_stores(self, session, store, session_factory, recorded_runs):
        crashing = seed_store(session, "Crashing", "https://crashing.test", "ck_c", "cs_c")
        events = [SyncEvent(store_id=crashing.id), SyncEvent(store_id=store.id)]

        results = await run_events(events, session_factory)

        assert [run[0] for run in recorded_runs] == [crashing.id, store.id]
        assert [r.store_id for r in results] == [store.id]

    @pytest.mark.asyncio
    async def test_scheduled_job_runs_every_store(self, session, store, session_factory, recorded_runs):
        seed_store(session, "Second", "https://second.test", "ck_2", "cs_2")

        fan_out = await scheduled_sync_job(session_factory)

        assert fan_out.triggered == 2
        assert len(recorded_runs) == 2
        assert all(run[2] is not None for run in recorded_runs)


class TestSeedStore:
    def test_upserts_by_base_url(self, session):
        first = seed_store(session, "Shop", "https://shop.example/", "ck_1", "cs_1")
        again = seed_store(session, "Shop renamed", "https://shop.example", "ck_2", "cs_2")

        assert again.id == first.id
        assert again.woo_base_url == "https://shop.example"
        assert again.woo_key == "ck_2"


# ============================================================================
# HTTP Trigger Tests
# ============================================================================


@pytest.fixture
def client(session):
    def override():
        yield session

    app.dependency_overrides[get_session] = override
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSyncRoutes:
    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["service"] == "woomirror"

    def test_sync_unknown_store_is_404(self, client):
        response = client.post("/sync", json={"store_id": 999})

        assert response.status_code == 404

    def test_sync_missing_credentials_is_400(self, client, session):
        store = Store(name="No creds", woo_base_url="https://nocreds.test")
        session.add(store)
        session.commit()
        session.refresh(store)

        response = client.post("/sync", json={"store_id": store.id, "full": True})

        assert response.status_code == 400
        assert "woo_key" in response.json()["detail"]

    def test_sync_returns_phase_summaries(self, client, store, recorded_runs):
        response = client.post("/sync", json={"store_id": store.id, "full": True, "reason": "manual"})

        assert response.status_code == 200
        assert response.json()["store_id"] == store.id
        assert recorded_runs == [(store.id, True, None, None)]

    def test_connection_check_unknown_store(self, client):
        assert client.get("/stores/999/test-connection").status_code == 404

    def test_sync_single_phase(self, client, store, recorded_runs):
        response = client.post("/sync", json={"store_id": store.id, "only": "coupons"})

        assert response.status_code == 200
        assert recorded_runs[0][3] == "coupons"

    def test_sync_unknown_phase_is_rejected(self, client, store, recorded_runs):
        response = client.post("/sync", json={"store_id": store.id, "only": "webhooks"})

        assert response.status_code == 422
        assert recorded_runs == []
