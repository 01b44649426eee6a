"""Tests for customer identity resolution and the customers phase

WHAT: One buyer maps to one local row across guest checkouts, registered
      orders and the customers collection
WHY: Duplicate customers would split RFM scores and cohorts
"""

import pytest
from sqlmodel import select

from woomirror.connectors.woo.transformer import CustomerFields
from woomirror.models.mirror_models import Customer, Order
from woomirror.sync.customers import backfill_order_customers, resolve_customer, sync_customers

from factories import days_ago, woo_customer


def _customers(session, store):
    return session.exec(select(Customer).where(Customer.store_id == store.id)).all()


class TestResolveCustomer:
    def test_guest_then_registered_converges(self, session, store):
        guest = resolve_customer(session, store.id, CustomerFields(None, "a@example.com"))
        session.commit()

        registered = resolve_customer(session, store.id, CustomerFields("5", "a@example.com"))
        session.commit()

        assert registered.id == guest.id
        assert registered.woo_id == "5"
        assert len(_customers(session, store)) == 1

    def test_remote_id_match_takes_new_email(self, session, store):
        resolve_customer(session, store.id, CustomerFields("5", "old@example.com"))
        customer = resolve_customer(session, store.id, CustomerFields("5", "new@example.com"))
        session.commit()

        assert customer.email == "new@example.com"

    def test_email_change_skipped_when_owned_by_another_customer(self, session, store):
        resolve_customer(session, store.id, CustomerFields(None, "taken@example.com"))
        customer = resolve_customer(session, store.id, CustomerFields("5", "mine@example.com"))
        session.commit()

        customer = resolve_customer(
            session, store.id, CustomerFields("5", "taken@example.com", {"first_name": "Bo"})
        )
        session.commit()

        assert customer.email == "mine@example.com"
        assert customer.first_name == "Bo"
        assert len(_customers(session, store)) == 2

    def test_email_match_keeps_existing_remote_id(self, session, store):
        resolve_customer(session, store.id, CustomerFields("5", "a@example.com"))
        customer = resolve_customer(session, store.id, CustomerFields("6", "a@example.com"))

        assert customer.woo_id == "5"

    def test_last_active_only_moves_forward(self, session, store):
        newer, older = days_ago(1), days_ago(30)
        resolve_customer(session, store.id, CustomerFields("5", "a@x.io", {"last_active_at": newer}))
        customer = resolve_customer(
            session, store.id, CustomerFields("5", "a@x.io", {"last_active_at": older})
        )

        assert customer.last_active_at == newer


class TestSyncCustomers:
    @pytest.mark.asyncio
    async def test_mirrors_collection(self, ctx, fake_woo, session, store):
        fake_woo.collections["customers"] = [
            woo_customer(5, "A@Example.com"),
            woo_customer(6, ""),
        ]

        stats = await sync_customers(ctx)

        assert stats.entity == "customers"
        assert stats.processed == 2
        emails = sorted(c.email for c in _customers(session, store))
        assert emails == ["a@example.com", f"guest-{store.id}-6@wooanalytics.local"]

    @pytest.mark.asyncio
    async def test_failed_fetch_is_one_warning(self, ctx, fake_woo):
        fake_woo.fail("customers")

        stats = await sync_customers(ctx)

        assert stats.processed == 0
        assert len(stats.warnings) == 1
        assert stats.warnings[0].startswith("Failed to load customers: HTTP 500")

    @pytest.mark.asyncio
    async def test_anonymous_records_do_not_merge(self, ctx, fake_woo, session, store):
        fake_woo.collections["customers"] = [{"first_name": "Ada"}, {"first_name": "Bo"}]

        stats = await sync_customers(ctx)

        assert stats.processed == 2
        assert sorted(c.first_name for c in _customers(session, store)) == ["Ada", "Bo"]


class TestBackfill:
    def test_links_orders_by_billing_email(self, session, store):
        customer = resolve_customer(session, store.id, CustomerFields("5", "a@example.com"))
        session.add_all(
            [
                Order(store_id=store.id, woo_id="1", created_at=days_ago(1), billing_email="A@example.com"),
                Order(store_id=store.id, woo_id="2", created_at=days_ago(1), billing_email="z@example.com"),
                Order(store_id=store.id, woo_id="3", created_at=days_ago(1)),
            ]
        )
        session.commit()

        report = backfill_order_customers(session, store.id)

        assert report == {"scanned": 3, "matched": 1, "updated": 1, "skipped": 2}
        linked = session.exec(select(Order).where(Order.woo_id == "1")).one()
        assert linked.customer_id == customer.id
