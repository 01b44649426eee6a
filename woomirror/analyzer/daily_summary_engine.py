"""WooMirror: Daily Summary Engine.

Groups local orders and refunds of a trailing window by UTC calendar day
and rewrites the store's ``DailySummary`` rows inside that window.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Optional, Set

from sqlalchemy import func
from sqlmodel import Session, select

from woomirror.config import settings
from woomirror.core.clock import utcnow
from woomirror.core.logging import get_logger
from woomirror.models.derived_models import DailySummary
from woomirror.models.mirror_models import Order, OrderItem, Refund

logger = get_logger("analyzer.daily")


@dataclass
class DayBucket:
    revenue: float = 0.0
    orders: int = 0
    units: int = 0
    refunds: float = 0.0
    customers: Set[int] = field(default_factory=set)


def window_start(now: datetime, window_days: int) -> date:
    return (now - timedelta(days=window_days)).date()


def _bucket_days(session: Session, store_id: int, since: datetime) -> Dict[date, DayBucket]:
    units_by_order = dict(
        session.exec(
            select(OrderItem.order_id, func.sum(OrderItem.quantity))
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.store_id == store_id, Order.created_at >= since)
            .group_by(OrderItem.order_id)
        ).all()
    )

    days: Dict[date, DayBucket] = defaultdict(DayBucket)
    orders = session.exec(
        select(Order).where(Order.store_id == store_id, Order.created_at >= since)
    ).all()
    for order in orders:
        bucket = days[order.created_at.date()]
        bucket.revenue += order.total or 0.0
        bucket.orders += 1
        bucket.units += int(units_by_order.get(order.id) or 0)
        if order.customer_id is not None:
            bucket.customers.add(order.customer_id)

    refunds = session.exec(
        select(Refund).where(Refund.store_id == store_id, Refund.created_at >= since)
    ).all()
    for refund in refunds:
        days[refund.created_at.date()].refunds += refund.amount or 0.0

    return days


def compute_daily_summaries(
    session: Session,
    store_id: int,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """Recompute summaries for every day in the window with orders or refunds."""
    now = now or utcnow()
    first_day = window_start(now, window_days or settings.daily_summary_window_days)
    days = _bucket_days(session, store_id, datetime.combine(first_day, time.min))

    existing = {
        summary.date: summary
        for summary in session.exec(
            select(DailySummary).where(
                DailySummary.store_id == store_id, DailySummary.date >= first_day
            )
        ).all()
    }

    for day, bucket in days.items():
        revenue = round(bucket.revenue, 2)
        refunds = round(bucket.refunds, 2)
        summary = existing.pop(day, None) or DailySummary(store_id=store_id, date=day)
        summary.orders_count = bucket.orders
        summary.revenue = revenue
        summary.units = bucket.units
        summary.unique_customers = len(bucket.customers)
        summary.aov = round(revenue / bucket.orders, 2) if bucket.orders else 0.0
        summary.refunds_amount = refunds
        summary.net_revenue = round(revenue - refunds, 2)
        summary.computed_at = now
        session.add(summary)

    # Days in the window that no longer have activity
    for stale in existing.values():
        session.delete(stale)

    session.commit()
    logger.info(f"Summarized {len(days)} days", extra={"store_id": store_id})
    return len(days)
