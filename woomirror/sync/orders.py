"""WooMirror: Order Synchronizer.

For every remote order: resolve the buyer, upsert and commit the order
row, then write its children. While iterating, the remote side's own
per-day totals are collected into ``remote_daily`` for reconciliation.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import select

from woomirror.config import settings
from woomirror.connectors.woo.transformer import (
    map_order,
    order_customer,
    remote_order_day,
    safe_number,
)
from woomirror.core.clock import utcnow
from woomirror.models.mirror_models import Order
from woomirror.models.sync_models import RemoteDay, SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.customers import resolve_customer
from woomirror.sync.order_children import (
    replace_coupons,
    replace_items,
    replace_refunds,
    upsert_attribution,
)
from woomirror.sync.outcomes import attempt_async, failed_phase, summarize


def build_order_params(
    since: Optional[datetime] = None,
    full: bool = False,
    per_page: Optional[int] = None,
) -> Dict[str, Any]:
    """Query for the orders collection. ``full`` ignores ``since``."""
    params: Dict[str, Any] = {
        "per_page": per_page or settings.woo_per_page,
        "status": "any",
    }
    if since is not None and not full:
        params["after"] = since.isoformat()
        # Naive UTC timestamp; without this flag Woo reads it in site time
        params["dates_are_gmt"] = "true"
    return params


def track_remote(remote_daily: Dict[str, RemoteDay], raw: Dict[str, Any]) -> None:
    day = remote_order_day(raw) or utcnow().date().isoformat()
    bucket = remote_daily.setdefault(day, RemoteDay())
    bucket.revenue = round(bucket.revenue + (safe_number(raw.get("total")) or 0.0), 2)
    bucket.orders += 1


async def upsert_order(ctx: SyncContext, raw: Dict[str, Any]) -> Order:
    session = ctx.session
    fields = map_order(raw)
    customer = resolve_customer(session, ctx.store_id, order_customer(raw, ctx.store_id))

    order = session.exec(
        select(Order).where(Order.store_id == ctx.store_id, Order.woo_id == fields["woo_id"])
    ).first()
    if fields["created_at"] is None:
        fields["created_at"] = order.created_at if order else utcnow()
    fields["customer_id"] = customer.id

    if order is None:
        order = Order(store_id=ctx.store_id, **fields)
    else:
        for column, value in fields.items():
            setattr(order, column, value)
        order.updated_at = utcnow()
    session.add(order)
    session.commit()
    session.refresh(order)

    replace_items(ctx, order, raw.get("line_items") or [])
    replace_coupons(ctx, order, raw.get("coupon_lines") or [])
    await replace_refunds(ctx, order)
    upsert_attribution(ctx, order, raw)
    return order


async def sync_orders(
    ctx: SyncContext,
    since: Optional[datetime] = None,
    full: bool = False,
) -> SyncStats:
    """Mirror remote orders, incrementally after ``since`` unless ``full``."""
    res = await ctx.client.fetch_all("orders", build_order_params(since, full))
    if not res.success:
        ctx.logger.warning(
            f"Orders fetch failed: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "orders"},
        )
        return failed_phase(
            "orders", f"Failed to load orders: {res.error}", {"remote_daily": {}}
        )

    remote_daily: Dict[str, RemoteDay] = {}
    outcomes = []
    for raw in res.data:
        track_remote(remote_daily, raw)
        order_id = raw.get("id") or "unknown"
        outcomes.append(
            await attempt_async(
                ctx.session,
                lambda raw=raw: upsert_order(ctx, raw),
                label=lambda message, order_id=order_id: f"Order {order_id}: {message}",
            )
        )

    stats = summarize(
        "orders",
        outcomes,
        {"remote_daily": {day: bucket.model_dump() for day, bucket in remote_daily.items()}},
    )
    ctx.log(
        "Orders synced",
        entity="orders",
        processed=stats.processed,
        warnings=len(stats.warnings),
    )
    return stats
