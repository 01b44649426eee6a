"""WooMirror: Customer Synchronizer.

Customers arrive from three places: the customers collection, order
buyers and subscription owners. All three resolve through
``resolve_customer`` so one buyer ends up as one local row.
"""

from typing import Any, Callable, Optional

from sqlmodel import Session, select

from woomirror.connectors.woo.transformer import CustomerFields, map_customer
from woomirror.models.mirror_models import Customer, Order
from woomirror.models.sync_models import SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.identity import BY_EMAIL, BY_WOO_ID, customer_plan, first_match
from woomirror.sync.outcomes import attempt, failed_phase, summarize


def _customer_lookup(session: Session, store_id: int) -> Callable[[str, Any], Optional[Customer]]:
    def lookup(strategy: str, key: Any) -> Optional[Customer]:
        column = Customer.woo_id if strategy == BY_WOO_ID else Customer.email
        return session.exec(
            select(Customer).where(Customer.store_id == store_id, column == key)
        ).first()

    return lookup


def _email_owner(session: Session, store_id: int, email: str) -> Optional[Customer]:
    return session.exec(
        select(Customer).where(Customer.store_id == store_id, Customer.email == email)
    ).first()


def _apply_profile(customer: Customer, profile: dict) -> None:
    for column, value in profile.items():
        if column == "last_active_at":
            # Records arrive in no particular order; keep the latest activity.
            if customer.last_active_at is None or value > customer.last_active_at:
                customer.last_active_at = value
            continue
        setattr(customer, column, value)


def resolve_customer(session: Session, store_id: int, fields: CustomerFields) -> Customer:
    """Find or create the local customer for ``fields`` and apply its profile.

    Precedence is remote id, then email. A remote-id match takes the new
    email unless another customer of the store already owns it. An email
    match adopts the remote id when the row has none yet.
    """
    strategy, customer = first_match(
        customer_plan(fields.woo_id, fields.email),
        _customer_lookup(session, store_id),
    )

    if customer is None:
        customer = Customer(store_id=store_id, woo_id=fields.woo_id, email=fields.email)
    elif strategy == BY_WOO_ID and customer.email != fields.email:
        owner = _email_owner(session, store_id, fields.email)
        if owner is None or owner.id == customer.id:
            customer.email = fields.email
    elif strategy == BY_EMAIL and fields.woo_id and not customer.woo_id:
        customer.woo_id = fields.woo_id

    _apply_profile(customer, fields.profile)
    session.add(customer)
    session.flush()
    return customer


def upsert_customer(session: Session, store_id: int, raw: dict) -> Customer:
    customer = resolve_customer(session, store_id, map_customer(raw, store_id))
    session.commit()
    return customer


async def sync_customers(ctx: SyncContext) -> SyncStats:
    """Mirror the remote customers collection."""
    res = await ctx.client.fetch_all("customers")
    if not res.success:
        ctx.logger.warning(
            f"Customers fetch failed: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "customers"},
        )
        return failed_phase("customers", f"Failed to load customers: {res.error}")

    outcomes = [
        attempt(ctx.session, lambda raw=raw: upsert_customer(ctx.session, ctx.store_id, raw))
        for raw in res.data
    ]
    stats = summarize("customers", outcomes)
    ctx.log(
        "Customers synced",
        entity="customers",
        processed=stats.processed,
        warnings=len(stats.warnings),
    )
    return stats


# ── Backfill ──


def backfill_order_customers(session: Session, store_id: int | None = None) -> dict:
    """Link orders that have no customer to the customer owning their billing email.

    Orders without a billing email, or whose email matches no customer of
    the same store, are counted as skipped.
    """
    query = select(Order).where(Order.customer_id.is_(None))
    if store_id is not None:
        query = query.where(Order.store_id == store_id)
    orders = session.exec(query).all()

    report = {"scanned": len(orders), "matched": 0, "updated": 0, "skipped": 0}
    for order in orders:
        if not order.billing_email:
            report["skipped"] += 1
            continue
        customer = _email_owner(session, order.store_id, order.billing_email.lower())
        if customer is None:
            report["skipped"] += 1
            continue
        report["matched"] += 1
        order.customer_id = customer.id
        session.add(order)
        report["updated"] += 1

    session.commit()
    return report
