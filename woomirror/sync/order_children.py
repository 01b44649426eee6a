"""WooMirror: Order Sub-Upserters.

Runs after the parent order row is committed. Line items, applied coupons
and refunds are replace-sets; attribution is a single upserted row.
"""

from typing import Any, Dict, List, Mapping

from sqlmodel import select

from woomirror.connectors.woo.transformer import (
    extract_utm,
    map_coupon_line,
    map_line_item,
    map_refund,
)
from woomirror.models.mirror_models import (
    Order,
    OrderAttribution,
    OrderCoupon,
    OrderItem,
    Refund,
)
from woomirror.sync.context import SyncContext
from woomirror.sync.coupons import ensure_coupon
from woomirror.sync.products import find_product
from woomirror.sync.replace_set import ReplaceStats, replace_set, unkeyed


def replace_items(ctx: SyncContext, order: Order, lines: List[Dict[str, Any]]) -> ReplaceStats:
    session = ctx.session
    desired = {}
    for index, raw in enumerate(lines):
        fields = map_line_item(raw)
        product = find_product(session, ctx.store_id, fields.pop("product_woo_id"))
        fields["product_id"] = product.id if product else None
        if not fields["sku"] and product:
            fields["sku"] = product.sku
        desired[fields["woo_line_id"] or unkeyed(index)] = fields

    existing = session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all()
    stats = replace_set(
        session,
        existing,
        desired,
        row_key=lambda item: item.woo_line_id,
        build=lambda values: OrderItem(order_id=order.id, **values),
    )
    session.commit()
    return stats


def replace_coupons(ctx: SyncContext, order: Order, lines: List[Dict[str, Any]]) -> ReplaceStats:
    session = ctx.session
    desired: Dict[int, Dict[str, Any]] = {}
    for raw in lines:
        line = map_coupon_line(raw)
        coupon = ensure_coupon(session, ctx.store_id, line)
        applied = desired.setdefault(
            coupon.id,
            {"coupon_id": coupon.id, "discount_applied": 0.0, "revenue_impact": 0.0},
        )
        # Same code listed twice on one order: one row with the summed discount.
        applied["discount_applied"] += line["amount"]
        applied["revenue_impact"] += line["amount"]

    existing = session.exec(select(OrderCoupon).where(OrderCoupon.order_id == order.id)).all()
    stats = replace_set(
        session,
        existing,
        desired,
        row_key=lambda applied: applied.coupon_id,
        build=lambda values: OrderCoupon(order_id=order.id, **values),
    )
    session.commit()
    return stats


async def replace_refunds(ctx: SyncContext, order: Order) -> ReplaceStats | None:
    """Mirror the order's refunds. A failed fetch leaves stored refunds as they are."""
    res = await ctx.client.fetch_refunds(order.woo_id)
    if not res.success:
        ctx.logger.warning(
            f"Refund fetch failed for order {order.woo_id}: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "refunds"},
        )
        return None

    session = ctx.session
    desired = {}
    for index, raw in enumerate(res.data):
        fields = map_refund(raw)
        if fields["created_at"] is None:
            fields["created_at"] = order.created_at
        desired[fields["woo_id"] or unkeyed(index)] = fields

    existing = session.exec(select(Refund).where(Refund.order_id == order.id)).all()
    stats = replace_set(
        session,
        existing,
        desired,
        row_key=lambda refund: refund.woo_id,
        build=lambda values: Refund(store_id=ctx.store_id, order_id=order.id, **values),
    )
    session.commit()
    return stats


def upsert_attribution(ctx: SyncContext, order: Order, raw: Mapping[str, Any]) -> OrderAttribution:
    session = ctx.session
    meta = raw.get("meta_data")
    utm = extract_utm(meta if isinstance(meta, list) else [])

    attribution = session.exec(
        select(OrderAttribution).where(OrderAttribution.order_id == order.id)
    ).first()
    if attribution is None:
        attribution = OrderAttribution(order_id=order.id, **utm)
    else:
        for column, value in utm.items():
            setattr(attribution, column, value)
    session.add(attribution)
    session.commit()
    return attribution
