"""WooMirror: Subscription Synchronizer.

Stores without the subscriptions extension answer the collection request
with an error; that is reported as one warning, never raised.
"""

from typing import Any, Dict

from sqlmodel import Session, select

from woomirror.connectors.woo.transformer import map_subscription, subscription_customer
from woomirror.core.clock import utcnow
from woomirror.models.mirror_models import Subscription
from woomirror.models.sync_models import SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.customers import resolve_customer
from woomirror.sync.outcomes import attempt, failed_phase, summarize
from woomirror.sync.products import find_product


def upsert_subscription(session: Session, store_id: int, raw: Dict[str, Any]) -> Subscription:
    customer = resolve_customer(session, store_id, subscription_customer(raw, store_id))

    fields = map_subscription(raw, store_id)
    product = find_product(session, store_id, fields.pop("product_woo_id"))
    fields["customer_id"] = customer.id
    fields["product_id"] = product.id if product else None
    if fields["started_at"] is None:
        fields["started_at"] = utcnow()

    subscription = session.exec(
        select(Subscription).where(
            Subscription.store_id == store_id,
            Subscription.woo_id == fields["woo_id"],
        )
    ).first()
    if subscription is None:
        subscription = Subscription(store_id=store_id, **fields)
    else:
        for column, value in fields.items():
            setattr(subscription, column, value)
    session.add(subscription)
    session.commit()
    return subscription


async def sync_subscriptions(ctx: SyncContext) -> SyncStats:
    res = await ctx.client.fetch_all("subscriptions")
    if not res.success:
        ctx.logger.warning(
            f"Subscriptions sync skipped: {res.error}",
            extra={"store_id": ctx.store_id, "entity": "subscriptions"},
        )
        return failed_phase("subscriptions", res.error or "Subscriptions unavailable")

    outcomes = [
        attempt(
            ctx.session,
            lambda raw=raw: upsert_subscription(ctx.session, ctx.store_id, raw),
        )
        for raw in res.data
    ]
    stats = summarize("subscriptions", outcomes)
    ctx.log(
        "Subscriptions synced",
        entity="subscriptions",
        processed=stats.processed,
        warnings=len(stats.warnings),
    )
    return stats
