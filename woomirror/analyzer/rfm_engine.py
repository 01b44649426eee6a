"""WooMirror: Customer RFM Engine.

Groups every order of the store by customer (all time) and rewrites one
``CustomerScore`` per customer.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from woomirror.analyzer.scoring import (
    rfm_score,
    score_frequency,
    score_monetary,
    score_recency,
    segment_label,
)
from woomirror.core.clock import utcnow
from woomirror.core.logging import get_logger
from woomirror.models.derived_models import CustomerScore
from woomirror.models.mirror_models import Order

logger = get_logger("analyzer.rfm")


def compute_customer_scores(
    session: Session, store_id: int, now: Optional[datetime] = None
) -> int:
    """Recompute RFM rows for the store. Returns the number of customers scored."""
    now = now or utcnow()
    groups = session.exec(
        select(
            Order.customer_id,
            func.count(Order.id),
            func.sum(Order.total),
            func.max(Order.created_at),
        )
        .where(Order.store_id == store_id, Order.customer_id.is_not(None))
        .group_by(Order.customer_id)
    ).all()

    existing = {
        score.customer_id: score
        for score in session.exec(
            select(CustomerScore).where(CustomerScore.store_id == store_id)
        ).all()
    }

    scored = set()
    for customer_id, frequency, monetary, last_order_at in groups:
        if last_order_at is None:
            continue
        monetary = round(monetary or 0.0, 2)
        recency_days = (now - last_order_at).days  # floors partial days
        r = score_recency(recency_days)
        f = score_frequency(frequency)
        m = score_monetary(monetary)

        score = existing.get(customer_id) or CustomerScore(
            customer_id=customer_id, store_id=store_id
        )
        score.last_order_at = last_order_at
        score.recency_days = recency_days
        score.frequency = frequency
        score.monetary = monetary
        score.recency_score = r
        score.frequency_score = f
        score.monetary_score = m
        score.rfm_score = rfm_score(r, f, m)
        score.segment = segment_label(r, f, m)
        session.add(score)
        scored.add(customer_id)

    for customer_id, score in existing.items():
        if customer_id not in scored:
            session.delete(score)

    session.commit()
    logger.info(f"Scored {len(scored)} customers", extra={"store_id": store_id})
    return len(scored)
