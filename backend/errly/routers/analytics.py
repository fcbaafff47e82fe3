"""
Analytics router: time-bucketed log volume for the dashboard chart.

GET /logs/volume?projectId=<uuid>&startDate=<ISO8601>&endDate=<ISO8601>

Order of checks: AUTH → PARAMS → OWNERSHIP → QUERY.
A project the caller does not own is reported as 404, exactly like a
project that does not exist.
"""

import datetime
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errly.auth.dependencies import AuthContext, get_current_user
from errly.core.database import get_db_session
from errly.core.errors import APIError
from errly.schemas.volume import VolumeResponse
from errly.services.volume import get_log_volume, get_owned_project

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    """Query strings without an offset are interpreted as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


@router.get(
    "/volume",
    response_model=VolumeResponse,
    summary="Event counts per level over time",
    description=(
        "Groups the project's events into minute/hour/day buckets "
        "(chosen from the range span) and returns one row per bucket "
        "with a count for each level, ordered by timestamp ascending."
    ),
)
async def get_volume(
    session: DbSession,
    auth: CurrentUser,
    project_id: uuid.UUID = Query(..., alias="projectId"),
    start_date: datetime.datetime = Query(..., alias="startDate"),
    end_date: datetime.datetime = Query(..., alias="endDate"),
) -> VolumeResponse:
    start = _as_utc(start_date)
    end = _as_utc(end_date)

    if start > end:
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid query parameters",
            details={"startDate": ["startDate must not be after endDate"]},
        )

    # ── Ownership (before any aggregate query) ──────────────
    try:
        project = await get_owned_project(session, project_id, auth.user_id)
    except SQLAlchemyError as exc:
        logger.exception("Ownership check failed for project %s", project_id)
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to validate project ownership",
            details=str(exc),
        ) from exc

    if project is None:
        raise APIError(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Project not found or access denied",
        )

    # ── Aggregate ───────────────────────────────────────────
    try:
        return await get_log_volume(session, project.id, start, end)
    except SQLAlchemyError as exc:
        logger.exception("Log volume query failed for project %s", project_id)
        raise APIError(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Failed to fetch log volume",
            details=str(exc),
        ) from exc
