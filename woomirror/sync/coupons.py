"""WooMirror: Coupon Synchronizer.

Coupons are keyed by ``(store_id, code)``. Codes seen only on orders get a
master row too, see ``ensure_coupon``.
"""

from typing import Any, Dict, Optional

from sqlmodel import Session, select

from woomirror.connectors.woo.transformer import map_coupon
from woomirror.models.mirror_models import Coupon
from woomirror.models.sync_models import SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.outcomes import attempt, failed_phase, summarize


def find_coupon(session: Session, store_id: int, code: str) -> Optional[Coupon]:
    return session.exec(
        select(Coupon).where(Coupon.store_id == store_id, Coupon.code == code)
    ).first()


def upsert_coupon(session: Session, store_id: int, raw: Dict[str, Any]) -> Coupon:
    fields = map_coupon(raw)
    coupon = find_coupon(session, store_id, fields["code"])
    if coupon is None:
        coupon = Coupon(store_id=store_id, **fields)
    else:
        for column, value in fields.items():
            setattr(coupon, column, value)
    session.add(coupon)
    session.commit()
    return coupon


def ensure_coupon(session: Session, store_id: int, line: Dict[str, Any]) -> Coupon:
    """Master row for a code applied on an order.

    Rows already filled from the coupons collection keep their configured
    amount; only order-only codes take the applied discount.
    """
    coupon = find_coupon(session, store_id, line["code"])
    if coupon is None:
        coupon = Coupon(
            store_id=store_id,
            code=line["code"],
            amount=line["amount"],
            discount_type=line["discount_type"],
        )
    elif coupon.woo_id is None:
        coupon.amount = line["amount"]
        coupon.discount_type = line["discount_type"]
    session.add(coupon)
    session.flush()
    return coupon


async def sync_coupons(ctx: SyncContext) -> SyncStats:
    res = await ctx.client.fetch_all("coupons")
    if not res.success:
        ctx.logger.warning(
            f"Coupons fetch failed: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "coupons"},
        )
        return failed_phase("coupons", f"Failed to load coupons: {res.error}")

    outcomes = [
        attempt(ctx.session, lambda raw=raw: upsert_coupon(ctx.session, ctx.store_id, raw))
        for raw in res.data
    ]
    stats = summarize("coupons", outcomes)
    ctx.log(
        "Coupons synced",
        entity="coupons",
        processed=stats.processed,
        warnings=len(stats.warnings),
    )
    return stats
