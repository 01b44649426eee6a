"""WooMirror: Customer Acquisition Engine.

First-touch attribution: each customer keeps the UTM triple of their
chronologically first order, re-derived from full history on every pass.
"""

from sqlmodel import Session, select

from woomirror.core.logging import get_logger
from woomirror.models.derived_models import CustomerAcquisition
from woomirror.models.mirror_models import Order, OrderAttribution

logger = get_logger("analyzer.acquisition")


def compute_customer_acquisitions(session: Session, store_id: int) -> int:
    rows = session.exec(
        select(Order, OrderAttribution)
        .join(OrderAttribution, OrderAttribution.order_id == Order.id, isouter=True)
        .where(Order.store_id == store_id, Order.customer_id.is_not(None))
        .order_by(Order.created_at, Order.id)
    ).all()

    first_orders = {}
    for order, attribution in rows:
        first_orders.setdefault(order.customer_id, (order, attribution))

    existing = {
        row.customer_id: row
        for row in session.exec(
            select(CustomerAcquisition).where(CustomerAcquisition.store_id == store_id)
        ).all()
    }

    for customer_id, (order, attribution) in first_orders.items():
        row = existing.pop(customer_id, None) or CustomerAcquisition(
            customer_id=customer_id, store_id=store_id
        )
        row.first_order_id = order.id
        row.first_order_date = order.created_at
        row.first_utm_source = attribution.utm_source if attribution else None
        row.first_utm_medium = attribution.utm_medium if attribution else None
        row.first_utm_campaign = attribution.utm_campaign if attribution else None
        session.add(row)

    for stale in existing.values():
        session.delete(stale)

    session.commit()
    logger.info(
        f"Derived acquisition for {len(first_orders)} customers",
        extra={"store_id": store_id},
    )
    return len(first_orders)
