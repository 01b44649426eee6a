"""WooMirror: FastAPI Application Entry Point.

Hosts the scheduling adapter: the daily cron fan-out and HTTP triggers.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from woomirror.api.sync_routes import router as sync_router
from woomirror.core.logging import get_logger
from woomirror.database import _mask_url, db_url, init_db, test_connection
from woomirror.scheduler.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("WooMirror starting up")
    if test_connection():
        init_db()
    else:
        logger.error("Database not connected; sync endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("WooMirror shut down")


app = FastAPI(
    title="WooMirror",
    description="Mirror a WooCommerce store into a relational database and derive sales analytics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(sync_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "woomirror",
        "version": "1.0.0",
        "database": "postgresql" if db_url.startswith("postgresql") else "sqlite",
        "url": _mask_url(db_url),
    }
