"""
Ingestion service: authenticate an SDK event and persist it.

The router owns the HTTP mapping; this module owns the store access:
  • resolve_project_by_api_key  hash lookup, None when unknown
  • record_error_event          insert + commit, bounded by a timeout

Ingestion is intentionally NOT idempotent: two identical payloads produce
two rows. SDKs send each event at most once, so there is nothing to dedupe.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from errly.auth.hashing import hash_api_key
from errly.core.config import settings
from errly.models.error_event import ErrorEvent
from errly.models.project import Project
from errly.schemas.error_event import ErrorEventCreate

logger = logging.getLogger(__name__)


async def resolve_project_by_api_key(
    session: AsyncSession,
    raw_key: str,
) -> Project | None:
    """Return the project owning raw_key, or None. Never logs the key."""
    stmt = select(Project).where(Project.api_key_hash == hash_api_key(raw_key))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def record_error_event(
    session: AsyncSession,
    project: Project,
    payload: ErrorEventCreate,
    timeout: float | None = None,
) -> ErrorEvent:
    """
    Insert one ErrorEvent scoped to `project` and return the stored row.

    received_at and state come from the database defaults; the refresh
    loads them so the caller (and the live-update channel) sees the full
    row.

    Raises:
        asyncio.TimeoutError: the write did not finish within `timeout` seconds.
        sqlalchemy.exc.SQLAlchemyError: the store rejected the write.
    """
    event = ErrorEvent(
        project_id=project.id,
        level=payload.level,
        message=payload.message,
        stack_trace=payload.stack_trace,
        metadata_=payload.metadata,
    )

    async def _write() -> None:
        session.add(event)
        await session.commit()
        await session.refresh(event)

    try:
        await asyncio.wait_for(
            _write(),
            timeout=timeout if timeout is not None else settings.DB_WRITE_TIMEOUT_SECONDS,
        )
    except Exception:
        await session.rollback()
        raise

    logger.debug("Stored %s event %s for project %s", event.level, event.id, project.id)
    return event
