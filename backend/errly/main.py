"""
Errly API.

  POST /errors       SDK ingestion; schedules the SMS alert after the response
  GET  /logs/volume  per-level event counts for the dashboard chart
  GET  /health       liveness check

Run locally:
    uvicorn errly.main:app --reload      (from backend/)
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from errly.core.config import settings
from errly.core.database import engine
from errly.core.errors import register_error_handlers
from errly.routers.analytics import router as analytics_router
from errly.routers.ingest import router as ingest_router
from errly.services.sms_gateway import get_sms_gateway

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # A missing database or gateway is reported, not fatal: ingestion
    # returns 500 until the store is back, and alerts are skipped until
    # Twilio is configured.
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database reachable")
    except Exception:
        logger.warning("Database unreachable at startup; requests will fail until it is available")

    if get_sms_gateway() is None:
        logger.warning("Twilio credentials not set; SMS alerts are disabled")

    yield

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    description="Error ingestion, SMS alerting with a per-project cooldown, and log volume analytics.",
    lifespan=lifespan,
)

# The dashboard is served from a different origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_error_handlers(app)

app.include_router(ingest_router, prefix="/errors")
app.include_router(analytics_router, prefix="/logs")


@app.get("/health", tags=["System"], summary="Liveness check")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "environment": settings.ENVIRONMENT}
