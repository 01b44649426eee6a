"""WooMirror: Derived Analytics Models.

Written only by the analyzer passes, always fully recomputed from the mirror.
"""

import datetime as dt
from typing import Optional

from sqlmodel import Field, SQLModel, UniqueConstraint

from woomirror.core.clock import utcnow


# ─────────────────────────────────────────────
# DAILY ACTIVITY
# ─────────────────────────────────────────────


class DailySummary(SQLModel, table=True):
    """One UTC calendar day of commerce activity."""

    __tablename__ = "daily_summaries"
    __table_args__ = (UniqueConstraint("store_id", "date", name="uq_daily_summary"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    date: dt.date = Field(index=True)
    orders_count: int = 0
    revenue: float = 0.0
    units: int = 0
    unique_customers: int = 0
    aov: float = 0.0
    refunds_amount: float = 0.0
    net_revenue: float = 0.0
    computed_at: dt.datetime = Field(default_factory=utcnow)


class Reconciliation(SQLModel, table=True):
    """Per-day drift check between remote aggregates and the mirror."""

    __tablename__ = "reconciliations"
    __table_args__ = (UniqueConstraint("store_id", "date", name="uq_reconciliation"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    date: dt.date = Field(index=True)
    woo_orders: int = 0
    woo_revenue: float = 0.0
    db_orders: int = 0
    db_revenue: float = 0.0
    diff_revenue: float = 0.0
    status: str = Field(default="ok", description="ok | mismatch")
    note: Optional[str] = None
    checked_at: dt.datetime = Field(default_factory=utcnow)


# ─────────────────────────────────────────────
# CUSTOMER LEVEL
# ─────────────────────────────────────────────


class CustomerScore(SQLModel, table=True):
    """RFM state per customer, overwritten on every analytics pass."""

    __tablename__ = "customer_scores"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customers.id", unique=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    last_order_at: dt.datetime
    recency_days: int
    frequency: int
    monetary: float
    recency_score: int
    frequency_score: int
    monetary_score: int
    rfm_score: int = Field(description="R, F and M digits concatenated, e.g. 432")
    segment: str = Field(index=True)


class CustomerAcquisition(SQLModel, table=True):
    """First-order snapshot with first-touch UTM attribution."""

    __tablename__ = "customer_acquisitions"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customers.id", unique=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    first_order_id: int = Field(foreign_key="orders.id")
    first_order_date: dt.datetime
    first_utm_source: Optional[str] = None
    first_utm_medium: Optional[str] = None
    first_utm_campaign: Optional[str] = None


class CohortMonthly(SQLModel, table=True):
    """Retention cell: cohort month x month offset."""

    __tablename__ = "cohort_monthly"
    __table_args__ = (
        UniqueConstraint(
            "store_id", "cohort_month", "period_month", name="uq_cohort_cell"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    store_id: int = Field(foreign_key="stores.id", index=True)
    cohort_month: dt.date = Field(description="First day of the cohort's month")
    period_month: int = Field(description="0 is the cohort's own first month")
    customers_in_cohort: int = 0
    active_customers: int = 0
    retention_rate: float = Field(default=0.0, description="Percent, 0-100")
