"""WooMirror: Store Sync Orchestrator.

Runs one store end to end, phases strictly in order:
  products → customers → coupons → subscriptions → orders → analytics

Products and customers go first because orders reference both. Only a
configuration problem aborts the run; everything else is reported in the
returned ``SyncResult``. ``only`` narrows the run to a single phase; an
analytics-only run has no remote per-day map, so reconciliation is skipped.
"""

import time
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from woomirror.analyzer.pipeline import run_analytics
from woomirror.connectors.woo.client import WooClient
from woomirror.models.mirror_models import Store
from woomirror.models.sync_models import SYNC_PHASES, SyncResult
from woomirror.sync.context import ConfigurationError, create_sync_context
from woomirror.sync.coupons import sync_coupons
from woomirror.sync.customers import sync_customers
from woomirror.sync.orders import sync_orders
from woomirror.sync.outcomes import failed_phase
from woomirror.sync.products import sync_products
from woomirror.sync.subscriptions import sync_subscriptions


async def run_store_sync(
    session: Session,
    store: Store,
    full: bool = False,
    since: Optional[datetime] = None,
    client: Optional[WooClient] = None,
    only: Optional[str] = None,
) -> SyncResult:
    if only is not None and only not in SYNC_PHASES:
        raise ConfigurationError(f"Unknown sync phase: {only}")
    ctx = create_sync_context(session, store, client=client)
    started = time.monotonic()
    ctx.log(f"Sync starting (full={full}, since={since}, only={only or 'all'})")

    def wanted(phase: str) -> bool:
        return only is None or only == phase

    result = SyncResult(store_id=store.id)
    order_stats = None
    try:
        if wanted("products"):
            result.summaries.append(await sync_products(ctx))
        if wanted("customers"):
            result.summaries.append(await sync_customers(ctx))
        if wanted("coupons"):
            result.summaries.append(await sync_coupons(ctx))

        if wanted("subscriptions"):
            try:
                result.summaries.append(await sync_subscriptions(ctx))
            except Exception as e:
                session.rollback()
                ctx.logger.warning(
                    f"Subscriptions sync skipped: {e}",
                    extra={"store_id": ctx.store_id, "entity": "subscriptions"},
                )
                result.summaries.append(failed_phase("subscriptions", str(e)))

        if wanted("orders"):
            order_stats = await sync_orders(ctx, since=since, full=full)
            result.summaries.append(order_stats)

        if wanted("analytics"):
            remote_daily = order_stats.meta.get("remote_daily") if order_stats else None
            result.summaries.extend(run_analytics(ctx, remote_daily))
    finally:
        if client is None:
            await ctx.client.close()

    duration_ms = round((time.monotonic() - started) * 1000)
    ctx.log(
        "Sync complete",
        processed=sum(s.processed for s in result.summaries),
        warnings=sum(len(s.warnings) for s in result.summaries),
        duration_ms=duration_ms,
    )
    return result
