"""WooMirror: Sync Trigger API Routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from woomirror.connectors.woo.client import WooClient
from woomirror.core.logging import get_logger
from woomirror.database import get_session
from woomirror.models.sync_models import FanOutResult, SyncEvent, SyncResult
from woomirror.scheduler.jobs import handle_sync_event, scheduled_sync_job
from woomirror.sync.context import (
    ConfigurationError,
    StoreNotFoundError,
    load_store,
    validate_store,
)

logger = get_logger("api.sync")

router = APIRouter(tags=["Sync"])


def _config_error(e: ConfigurationError) -> HTTPException:
    status = 404 if isinstance(e, StoreNotFoundError) else 400
    return HTTPException(status_code=status, detail=str(e))


@router.post("/sync", response_model=SyncResult)
async def trigger_sync(event: SyncEvent, session: Session = Depends(get_session)):
    """Run one store sync and return its per-phase summaries."""
    try:
        return await handle_sync_event(event, session)
    except ConfigurationError as e:
        logger.error(f"Sync rejected: {e}", extra={"store_id": event.store_id})
        raise _config_error(e)


@router.post("/sync/scheduled", response_model=FanOutResult)
async def trigger_scheduled_sync():
    """Run the cron fan-out now: one event per known store."""
    return await scheduled_sync_job()


@router.get("/stores/{store_id}/test-connection")
async def test_store_connection(store_id: int, session: Session = Depends(get_session)):
    """Check the store's remote API with its stored credentials."""
    try:
        store = load_store(session, store_id)
        validate_store(store)
    except ConfigurationError as e:
        raise _config_error(e)

    client = WooClient(store.woo_base_url, store.woo_key, store.woo_secret)
    try:
        result = await client.test_connection()
    finally:
        await client.close()

    if not result.success:
        raise HTTPException(status_code=502, detail=f"Connection failed: {result.error}")
    status = result.data[0] if result.data else {}
    return {
        "status": "success",
        "store_id": store.id,
        "environment": status.get("environment", {}),
    }
