"""WooMirror: Reconciliation Engine.

Compares per-day revenue and order counts observed on the remote during
order sync against the same aggregate recomputed from the mirror. A
mismatch is recorded for review, never raised.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, Mapping, Union

from sqlmodel import Session, select

from woomirror.core.clock import utcnow
from woomirror.core.logging import get_logger
from woomirror.models.derived_models import Reconciliation
from woomirror.models.mirror_models import Order
from woomirror.models.sync_models import RemoteDay

logger = get_logger("analyzer.reconciliation")

TOLERANCE = 0.01
MISMATCH_NOTE = "Amounts differ"


def _as_remote_day(value: Union[RemoteDay, Mapping]) -> RemoteDay:
    return value if isinstance(value, RemoteDay) else RemoteDay(**value)


def _local_days(session: Session, store_id: int, first: date, last: date) -> Dict[date, RemoteDay]:
    orders = session.exec(
        select(Order).where(
            Order.store_id == store_id,
            Order.created_at >= datetime.combine(first, time.min),
            Order.created_at < datetime.combine(last + timedelta(days=1), time.min),
        )
    ).all()
    days: Dict[date, RemoteDay] = defaultdict(RemoteDay)
    for order in orders:
        bucket = days[order.created_at.date()]
        bucket.revenue += order.total or 0.0
        bucket.orders += 1
    return days


def compute_reconciliation(
    session: Session,
    store_id: int,
    remote_daily: Mapping[str, Union[RemoteDay, Mapping]],
) -> int:
    """Upsert one ``Reconciliation`` per remote day. Returns days checked."""
    if not remote_daily:
        return 0

    remote = {
        date.fromisoformat(day): _as_remote_day(values)
        for day, values in remote_daily.items()
    }
    local = _local_days(session, store_id, min(remote), max(remote))
    existing = {
        row.date: row
        for row in session.exec(
            select(Reconciliation).where(
                Reconciliation.store_id == store_id,
                Reconciliation.date.in_(list(remote)),
            )
        ).all()
    }

    mismatches = 0
    now = utcnow()
    for day, woo in remote.items():
        db = local.get(day) or RemoteDay()
        woo_revenue = round(woo.revenue, 2)
        db_revenue = round(db.revenue, 2)
        diff = round(woo_revenue - db_revenue, 2)
        ok = abs(diff) < TOLERANCE

        row = existing.get(day) or Reconciliation(store_id=store_id, date=day)
        row.woo_orders = woo.orders
        row.woo_revenue = woo_revenue
        row.db_orders = db.orders
        row.db_revenue = db_revenue
        row.diff_revenue = diff
        row.status = "ok" if ok else "mismatch"
        row.note = None if ok else MISMATCH_NOTE
        row.checked_at = now
        session.add(row)
        if not ok:
            mismatches += 1

    session.commit()
    if mismatches:
        logger.warning(
            f"Reconciliation found {mismatches} mismatched days",
            extra={"store_id": store_id},
        )
    return len(remote)
