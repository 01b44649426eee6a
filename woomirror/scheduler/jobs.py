"""WooMirror: Scheduler Jobs.

The daily cron job carries no payload: it enumerates every store, emits
one ``SyncEvent`` per store and runs them one after another, each in its
own session.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from woomirror.config import settings
from woomirror.core.clock import to_naive_utc, utcnow
from woomirror.core.logging import get_logger
from woomirror.database import engine
from woomirror.models.sync_models import FanOutResult, SyncEvent, SyncResult
from woomirror.sync.context import ConfigurationError, load_store, validate_store
from woomirror.sync.pipeline import run_store_sync
from woomirror.sync.stores import list_store_ids

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


def resolve_since(event: SyncEvent, now: Optional[datetime] = None) -> Optional[datetime]:
    """Explicit ``since`` wins; ``full`` means unbounded; otherwise the default lookback."""
    if event.since is not None:
        return to_naive_utc(event.since)
    if event.full:
        return None
    return (now or utcnow()) - timedelta(days=settings.default_since_days)


async def handle_sync_event(event: SyncEvent, session: Session, client=None) -> SyncResult:
    """Run one store. Configuration errors propagate to the caller."""
    store = load_store(session, event.store_id)
    validate_store(store)
    since = resolve_since(event)
    logger.info(
        f"Sync event received (reason={event.reason or 'unspecified'}, full={event.full}, only={event.only or 'all'})",
        extra={"store_id": store.id},
    )
    return await run_store_sync(
        session, store, full=event.full, since=since, client=client, only=event.only
    )


def fan_out_events(session: Session, reason: str = "scheduled") -> FanOutResult:
    events = [SyncEvent(store_id=store_id, reason=reason) for store_id in list_store_ids(session)]
    return FanOutResult(triggered=len(events), events=events)


async def run_events(
    events: List[SyncEvent], session_factory: Callable[[], Session]
) -> List[SyncResult]:
    """Run events sequentially. A store that cannot run is logged and skipped."""
    results = []
    for event in events:
        with session_factory() as session:
            try:
                results.append(await handle_sync_event(event, session))
            except ConfigurationError as e:
                logger.error(f"Sync skipped: {e}", extra={"store_id": event.store_id})
            except Exception as e:
                session.rollback()
                logger.error(
                    f"Sync failed: {e}",
                    exc_info=True,
                    extra={"store_id": event.store_id},
                )
    return results


def _default_session() -> Session:
    return Session(engine)


async def scheduled_sync_job(session_factory: Callable[[], Session] = _default_session) -> FanOutResult:
    """Fan out one event per store and run them."""
    with session_factory() as session:
        fan_out = fan_out_events(session)

    if not fan_out.triggered:
        logger.info("No stores to sync")
        return fan_out

    logger.info(
        f"Scheduled sync dispatched for {fan_out.triggered} stores",
        extra={"processed": fan_out.triggered},
    )
    await run_events(fan_out.events, session_factory)
    return fan_out


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        scheduled_sync_job,
        "cron",
        hour=settings.sync_hour,
        minute=settings.sync_minute,
        id="scheduled_store_sync",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started. Store sync at {settings.sync_hour:02d}:{settings.sync_minute:02d} UTC"
    )


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
