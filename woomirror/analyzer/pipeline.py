"""WooMirror: Analytics Pipeline.

Runs the derived passes in order after the mirror is written:
  daily summaries → customer scores → acquisition → cohorts → reconciliation

Each pass reads only the mirror (reconciliation also reads the remote
per-day map from the same run) and reports one ``SyncStats``. A pass that
fails becomes a warning; later passes still run.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from woomirror.analyzer.acquisition_engine import compute_customer_acquisitions
from woomirror.analyzer.cohort_engine import compute_cohorts
from woomirror.analyzer.daily_summary_engine import compute_daily_summaries
from woomirror.analyzer.reconciliation_engine import compute_reconciliation
from woomirror.analyzer.rfm_engine import compute_customer_scores
from woomirror.models.sync_models import SyncStats
from woomirror.sync.context import SyncContext
from woomirror.sync.outcomes import failed_phase

DAILY_SUMMARY = "daily_summary"
CUSTOMER_SCORES = "customer_scores"
CUSTOMER_ACQUISITION = "customer_acquisition"
COHORTS = "cohorts"
RECONCILIATION = "reconciliation"


def _run_pass(ctx: SyncContext, pass_type: str, compute: Callable[[], int]) -> SyncStats:
    try:
        processed = compute()
    except Exception as e:
        ctx.session.rollback()
        ctx.logger.error(
            f"Analytics pass {pass_type} failed: {e}",
            extra={"store_id": ctx.store_id, "entity": "analytics"},
        )
        return failed_phase("analytics", f"{pass_type}: {e}", {"type": pass_type})
    return SyncStats(entity="analytics", processed=processed, meta={"type": pass_type})


def run_analytics(
    ctx: SyncContext,
    remote_daily: Optional[Mapping[str, Any]] = None,
) -> List[SyncStats]:
    """Recompute every derived table for the context's store.

    Reconciliation runs only when a remote per-day map is given.
    """
    session, store_id = ctx.session, ctx.store_id
    passes: Dict[str, Callable[[], int]] = {
        DAILY_SUMMARY: lambda: compute_daily_summaries(session, store_id),
        CUSTOMER_SCORES: lambda: compute_customer_scores(session, store_id),
        CUSTOMER_ACQUISITION: lambda: compute_customer_acquisitions(session, store_id),
        COHORTS: lambda: compute_cohorts(session, store_id),
    }
    if remote_daily is not None:
        passes[RECONCILIATION] = lambda: compute_reconciliation(
            session, store_id, remote_daily
        )

    stats = [_run_pass(ctx, pass_type, compute) for pass_type, compute in passes.items()]
    ctx.log(
        "Analytics complete",
        entity="analytics",
        processed=sum(s.processed for s in stats),
        warnings=sum(len(s.warnings) for s in stats),
    )
    return stats
