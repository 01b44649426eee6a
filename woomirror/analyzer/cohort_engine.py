"""WooMirror: Cohort Retention Engine.

A customer's cohort is the month of their first order. Each later order
marks the customer active in the cell ``(cohort, months since cohort)``.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Set, Tuple

from sqlmodel import Session, select

from woomirror.core.clock import month_diff, start_of_month
from woomirror.core.logging import get_logger
from woomirror.models.derived_models import CohortMonthly
from woomirror.models.mirror_models import Order

logger = get_logger("analyzer.cohorts")

Cell = Tuple[date, int]


def build_cohorts(rows) -> Tuple[Dict[date, Set[int]], Dict[Cell, Set[int]]]:
    """Cohort members and active sets from ``(customer_id, created_at)`` rows in time order."""
    first_month: Dict[int, date] = {}
    members: Dict[date, Set[int]] = defaultdict(set)
    active: Dict[Cell, Set[int]] = defaultdict(set)

    for customer_id, created_at in rows:
        cohort = first_month.get(customer_id)
        if cohort is None:
            cohort = start_of_month(created_at)
            first_month[customer_id] = cohort
            members[cohort].add(customer_id)
        active[(cohort, month_diff(cohort, created_at))].add(customer_id)

    return members, active


def retention_rate(active: int, cohort_size: int) -> float:
    return round(active / cohort_size * 100, 2) if cohort_size else 0.0


def compute_cohorts(session: Session, store_id: int) -> int:
    """Rewrite the store's retention grid. Returns the number of cells."""
    rows = session.exec(
        select(Order.customer_id, Order.created_at)
        .where(Order.store_id == store_id, Order.customer_id.is_not(None))
        .order_by(Order.created_at, Order.id)
    ).all()
    members, active = build_cohorts(rows)

    existing = {
        (cell.cohort_month, cell.period_month): cell
        for cell in session.exec(
            select(CohortMonthly).where(CohortMonthly.store_id == store_id)
        ).all()
    }

    for (cohort, period), customers in active.items():
        cell = existing.pop((cohort, period), None) or CohortMonthly(
            store_id=store_id, cohort_month=cohort, period_month=period
        )
        cell.customers_in_cohort = len(members[cohort])
        cell.active_customers = len(customers)
        cell.retention_rate = retention_rate(len(customers), len(members[cohort]))
        session.add(cell)

    for stale in existing.values():
        session.delete(stale)

    session.commit()
    logger.info(f"Computed {len(active)} cohort cells", extra={"store_id": store_id})
    return len(active)
