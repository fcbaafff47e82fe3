"""
Ingestion router: the single entry point for SDK error events.

POST /errors
  1. Validates the payload (Pydantic; malformed input → 400).
  2. Authenticates via the project API key in the body (unknown → 401).
  3. Persists the event scoped to that project (store failure → 500).
  4. Returns the stored record with 201 Created.
  5. Schedules the SMS notification dispatcher to run after the response.
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from errly.core.database import get_db_session, get_session_factory
from errly.core.errors import APIError
from errly.models.error_event import ErrorEvent
from errly.schemas.error_event import ErrorEventCreate, ErrorEventResponse
from errly.services.ingestion import record_error_event, resolve_project_by_api_key
from errly.services.notifier import notify_in_background
from errly.services.sms_gateway import SMSGateway, get_sms_gateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ingestion"])

# Type aliases for cleaner signatures
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Gateway = Annotated[SMSGateway | None, Depends(get_sms_gateway)]


@router.post(
    "",
    response_model=ErrorEventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest a single error event",
    description=(
        "Accepts an SDK event, authenticates it by project API key, "
        "persists it and triggers the SMS notification dispatcher "
        "asynchronously. Not idempotent: every call stores a new row."
    ),
)
async def ingest_error_event(
    payload: ErrorEventCreate,
    session: DbSession,
    session_factory: SessionFactory,
    gateway: Gateway,
    background_tasks: BackgroundTasks,
) -> ErrorEvent:
    """
    Core ingestion endpoint.

    "Bad key" and "no such project" are indistinguishable to the caller.
    Everything after the commit (SMS, live broadcast) is soft: it can
    fail without affecting this response.
    """

    # ── 1. Authenticate ─────────────────────────────────────
    try:
        project = await resolve_project_by_api_key(session, payload.api_key)
    except SQLAlchemyError as exc:
        logger.exception("API key lookup failed")
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to validate API key",
            details=str(exc),
        ) from exc

    if project is None:
        raise APIError(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error="Invalid or unknown API key",
        )

    # ── 2. Persist ──────────────────────────────────────────
    try:
        event = await record_error_event(session, project, payload)
    except asyncio.TimeoutError as exc:
        logger.error("Timed out storing error event for project %s", project.id)
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to record error",
            details="Database write timed out. Please try again.",
        ) from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist error event for project %s", project.id)
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to record error",
            details=str(exc),
        ) from exc

    # ── 3. Fan out (after the response) ─────────────────────
    background_tasks.add_task(
        notify_in_background,
        session_factory,
        gateway,
        project.id,
        event.message,
    )

    return event
