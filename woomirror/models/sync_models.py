"""WooMirror: Sync Contract Schemas.

Pydantic shapes exchanged between the client, the synchronizers, the
orchestrator and the scheduling adapter. None of these are persisted.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, Field


class FetchResult(BaseModel):
    """Tagged outcome of a remote read. The client never raises past this."""

    success: bool
    data: List[Dict[str, Any]] = []
    error: Optional[str] = None


class RemoteDay(BaseModel):
    """Remote-side aggregate for one calendar day, observed during order sync."""

    revenue: float = 0.0
    orders: int = 0


class SyncStats(BaseModel):
    """Summary of one phase: an entity synchronizer or an analytics pass."""

    entity: str  # products | customers | coupons | subscriptions | orders | analytics
    processed: int = 0
    warnings: List[str] = []
    meta: Dict[str, Any] = {}


class SyncResult(BaseModel):
    """Everything one store run produced, one summary per phase."""

    store_id: int
    summaries: List[SyncStats] = []

    def summary_for(self, entity: str, type_: Optional[str] = None) -> Optional[SyncStats]:
        for summary in self.summaries:
            if summary.entity != entity:
                continue
            if type_ is None or summary.meta.get("type") == type_:
                return summary
        return None


SyncPhase = Literal["products", "customers", "coupons", "subscriptions", "orders", "analytics"]
SYNC_PHASES = get_args(SyncPhase)


class SyncEvent(BaseModel):
    """Inbound trigger for one store run."""

    store_id: int
    full: bool = False
    since: Optional[datetime] = None
    reason: Optional[str] = None
    # Run a single phase instead of the whole pipeline
    only: Optional[SyncPhase] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"store_id": 1, "full": True, "reason": "manual"},
                {"store_id": 1, "since": "2024-01-01T00:00:00Z"},
                {"store_id": 1, "only": "coupons", "reason": "manual"},
            ]
        }
    }


class FanOutResult(BaseModel):
    """What the cron trigger dispatched."""

    triggered: int = 0
    events: List[SyncEvent] = Field(default_factory=list)
