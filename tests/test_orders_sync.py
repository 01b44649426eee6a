"""Tests for the orders phase

WHAT: Incremental query window, order upsert, child replacement,
      attribution upsert and remote per-day tracking
WHY: Orders drive every derived table; the request window decides which
     changes a scheduled run can see
"""

from datetime import datetime

import pytest
from sqlmodel import select

from woomirror.models.mirror_models import (
    Coupon,
    Customer,
    Order,
    OrderAttribution,
    OrderCoupon,
    OrderItem,
    Product,
    Refund,
)
from woomirror.sync.orders import build_order_params, sync_orders

from factories import days_ago, iso, woo_line, woo_order

SINCE = datetime(2024, 3, 1, 12, 0)


class TestOrderParams:
    """WHAT: since applies only to incremental runs; full ignores it"""

    def test_incremental(self):
        params = build_order_params(since=SINCE, full=False, per_page=100)

        assert params == {
            "per_page": 100,
            "status": "any",
            "after": "2024-03-01T12:00:00",
            "dates_are_gmt": "true",
        }

    def test_full_ignores_since(self):
        params = build_order_params(since=SINCE, full=True, per_page=100)

        assert "after" not in params
        assert params["status"] == "any"

    def test_no_since(self):
        assert "after" not in build_order_params(per_page=100)

    @pytest.mark.asyncio
    async def test_request_carries_window(self, ctx, fake_woo):
        await sync_orders(ctx, since=SINCE)
        await sync_orders(ctx, since=SINCE, full=True)

        incremental, full = fake_woo.requests_for("orders")
        assert incremental.url.params["after"] == "2024-03-01T12:00:00"
        assert incremental.url.params["dates_are_gmt"] == "true"
        assert "after" not in full.url.params
        assert "dates_are_gmt" not in full.url.params
        assert full.url.params["status"] == "any"


class TestOrderUpsert:
    @pytest.mark.asyncio
    async def test_order_and_children(self, ctx, fake_woo, session, store):
        session.add(Product(store_id=store.id, woo_id="9", name="Widget", sku="W-9"))
        session.commit()
        fake_woo.collections["orders"] = [
            woo_order(
                100,
                total="42.50",
                customer_id=5,
                line_items=[woo_line(1, 9, quantity=2, total="42.50")],
                coupon_lines=[{"code": "SAVE10", "discount": "4.72"}],
                meta_data=[{"key": "utm_source", "value": "google"}],
            )
        ]
        fake_woo.refunds["100"] = [{"id": 70, "amount": "5.00", "reason": "damaged"}]

        stats = await sync_orders(ctx)

        assert stats.processed == 1
        assert stats.warnings == []
        order = session.exec(select(Order)).one()
        assert order.total == 42.5
        customer = session.get(Customer, order.customer_id)
        assert customer.woo_id == "5"

        item = session.exec(select(OrderItem)).one()
        assert item.quantity == 2
        assert item.product_id is not None
        assert item.sku == "W-9"

        coupon = session.exec(select(Coupon)).one()
        applied = session.exec(select(OrderCoupon)).one()
        assert coupon.code == "SAVE10"
        assert applied.coupon_id == coupon.id
        assert applied.discount_applied == 4.72

        refund = session.exec(select(Refund)).one()
        assert refund.amount == 5.0
        assert refund.created_at == order.created_at  # no remote date

        attribution = session.exec(select(OrderAttribution)).one()
        assert attribution.utm_source == "google"

    @pytest.mark.asyncio
    async def test_resync_replaces_children(self, ctx, fake_woo, session):
        fake_woo.collections["orders"] = [
            woo_order(100, line_items=[woo_line(1, 9), woo_line(2, 10)], coupon_lines=[{"code": "A"}])
        ]
        await sync_orders(ctx)

        fake_woo.collections["orders"] = [woo_order(100, line_items=[woo_line(2, 10, quantity=4)])]
        await sync_orders(ctx)

        items = session.exec(select(OrderItem)).all()
        assert [(i.woo_line_id, i.quantity) for i in items] == [("2", 4)]
        assert session.exec(select(OrderCoupon)).all() == []
        assert len(session.exec(select(Order)).all()) == 1
        assert len(session.exec(select(OrderAttribution)).all()) == 1

    @pytest.mark.asyncio
    async def test_failed_refund_fetch_keeps_refunds(self, ctx, fake_woo, session):
        fake_woo.collections["orders"] = [woo_order(100)]
        fake_woo.refunds["100"] = [{"id": 70, "amount": "5.00"}]
        await sync_orders(ctx)

        fake_woo.fail("refunds")
        stats = await sync_orders(ctx)

        assert stats.warnings == []
        assert len(session.exec(select(Refund)).all()) == 1

    @pytest.mark.asyncio
    async def test_bad_order_is_labelled_and_skipped(self, ctx, fake_woo, session):
        broken = woo_order(None)
        fake_woo.collections["orders"] = [broken, woo_order(101)]

        stats = await sync_orders(ctx)

        assert stats.processed == 1
        assert stats.warnings == ["Order unknown: Missing Woo order id"]
        assert session.exec(select(Order.woo_id)).all() == ["101"]


class TestRemoteDaily:
    @pytest.mark.asyncio
    async def test_per_day_totals_from_remote_records(self, ctx, fake_woo):
        day = days_ago(3)
        fake_woo.collections["orders"] = [
            woo_order(1, total="60.00", created=day),
            woo_order(2, total="40.00", created=day.replace(hour=20)),
            woo_order(3, total="7.50", created=days_ago(2)),
        ]

        stats = await sync_orders(ctx)

        remote = stats.meta["remote_daily"]
        assert remote[iso(day)[:10]] == {"revenue": 100.0, "orders": 2}
        assert remote[iso(days_ago(2))[:10]] == {"revenue": 7.5, "orders": 1}

    @pytest.mark.asyncio
    async def test_failed_fetch(self, ctx, fake_woo):
        fake_woo.fail("orders")

        stats = await sync_orders(ctx)

        assert stats.processed == 0
        assert stats.meta == {"remote_daily": {}}
        assert stats.warnings[0].startswith("Failed to load orders")
