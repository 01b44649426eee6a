"""Tests for timestamp storage

WHAT: Naive UTC timestamps round-trip through the mirror unchanged
WHY: Every window, bucket and recency calculation compares stored values
     against naive UTC; a driver that rejects or shifts them breaks inserts
"""

from datetime import datetime, timedelta, timezone

from sqlmodel import select

from woomirror.core.clock import to_naive_utc, utcnow
from woomirror.models.mirror_models import Order, Store


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_aware_values_are_normalized():
    aware = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    assert to_naive_utc(aware) == datetime(2024, 1, 1, 0, 0)


def test_naive_timestamps_round_trip(session):
    store = Store(name="Shop", woo_base_url="https://shop.example", woo_key="ck", woo_secret="cs")
    session.add(store)
    session.commit()
    session.refresh(store)
    created = datetime(2024, 3, 10, 23, 59, 30)
    session.add(Order(store_id=store.id, woo_id="1", created_at=created, total=10.0))
    session.commit()
    session.expire_all()

    order = session.exec(select(Order)).one()
    assert order.created_at == created
    assert order.created_at.tzinfo is None
    assert session.get(Store, store.id).created_at.tzinfo is None
