"""
Notification dispatcher: SMS alert for a newly stored error event.

Runs once per inserted event, after the ingestion response has been sent
(FastAPI BackgroundTasks). Notification is a best-effort side channel:
nothing here may fail the ingestion request that triggered it.

Decision chain (each "stop" is an expected outcome, not an error):
  1. project missing            → stop
  2. owner opted out / missing  → stop
  3. owner has no primary phone → stop
  4. project notified < COOLDOWN ago → stop (alert-storm guard)
  5. send SMS (gateway failure is raised to the runner)
  6. stamp projects.last_notified_at

COOLDOWN IS PER PROJECT:
  Unrelated errors in the same project inside the window are suppressed
  too; the first error after the window reopens triggers the next SMS.

CONCURRENCY:
  The cooldown is read-then-write without compare-and-set. Two events
  landing in the same instant can both pass step 4, producing at most one
  extra SMS. The window can never be skipped entirely, because the stamp
  is only written after a successful send.
"""

from __future__ import annotations

import asyncio
import datetime
import enum
import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from errly.core.config import settings
from errly.models.phone_number import PhoneNumber
from errly.models.project import Project
from errly.models.user import User
from errly.services.sms_gateway import SMSGateway, SMSGatewayError

logger = logging.getLogger(__name__)

SMS_MESSAGE_LIMIT = 100


class NotificationOutcome(str, enum.Enum):
    """Why a dispatch did or did not send an SMS."""

    SENT = "sent"
    PROJECT_NOT_FOUND = "project_not_found"
    NOTIFICATIONS_DISABLED = "notifications_disabled"
    NO_PHONE_NUMBER = "no_phone_number"
    COOLDOWN = "cooldown"
    GATEWAY_NOT_CONFIGURED = "gateway_not_configured"


def _as_utc(ts: datetime.datetime) -> datetime.datetime:
    # Some drivers hand back naive timestamps for timestamptz columns.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=datetime.timezone.utc)
    return ts


def is_within_cooldown(
    last_notified_at: datetime.datetime | None,
    now: datetime.datetime,
    cooldown: datetime.timedelta,
) -> bool:
    """True while the project's previous alert is younger than `cooldown`."""
    if last_notified_at is None:
        return False
    return _as_utc(now) - _as_utc(last_notified_at) < cooldown


def format_alert(project_name: str, message: str) -> str:
    """Fixed-format SMS body; the error message is capped at 100 chars."""
    truncated = message[:SMS_MESSAGE_LIMIT]
    ellipsis = "..." if len(message) > SMS_MESSAGE_LIMIT else ""
    return (
        f'Errly Alert: New error received for project "{project_name}". '
        f"Message: {truncated}{ellipsis}"
    )


async def dispatch_error_notification(
    session: AsyncSession,
    gateway: SMSGateway | None,
    project_id: uuid.UUID,
    message: str,
    now: datetime.datetime | None = None,
    cooldown: datetime.timedelta | None = None,
) -> NotificationOutcome:
    """
    Decide whether the event warrants an SMS and send it.

    Args:
        session:    Async DB session (caller manages lifecycle).
        gateway:    SMS gateway, or None when Twilio is not configured.
        project_id: Project the event was stored under.
        message:    The event message (truncated into the SMS body).
        now:        Clock override for tests.
        cooldown:   Window override; defaults to NOTIFICATION_COOLDOWN_SECONDS.

    Raises:
        SMSGatewayError: the gateway rejected the message. The project's
            last_notified_at is left untouched so the next event retries.
    """
    if cooldown is None:
        cooldown = datetime.timedelta(seconds=settings.NOTIFICATION_COOLDOWN_SECONDS)

    # ── 1. Project ──────────────────────────────────────────
    project = await session.get(Project, project_id)
    if project is None:
        logger.info("Project %s not found, skipping notification", project_id)
        return NotificationOutcome.PROJECT_NOT_FOUND

    # ── 2. Owner preference ─────────────────────────────────
    owner = await session.get(User, project.owner_user_id)
    if owner is None or not owner.notifications_enabled:
        return NotificationOutcome.NOTIFICATIONS_DISABLED

    # ── 3. Primary phone number ─────────────────────────────
    stmt = select(PhoneNumber.phone_number).where(
        PhoneNumber.user_id == owner.id,
        PhoneNumber.is_primary.is_(True),
    )
    recipient = (await session.execute(stmt)).scalar_one_or_none()
    if recipient is None:
        return NotificationOutcome.NO_PHONE_NUMBER

    # ── 4. Cooldown ─────────────────────────────────────────
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    if is_within_cooldown(project.last_notified_at, now, cooldown):
        logger.debug(
            "Cooldown active for project %s (last notified %s)",
            project_id,
            project.last_notified_at,
        )
        return NotificationOutcome.COOLDOWN

    if gateway is None:
        logger.error("SMS gateway is not configured; cannot alert for project %s", project_id)
        return NotificationOutcome.GATEWAY_NOT_CONFIGURED

    # ── 5. Send ─────────────────────────────────────────────
    await gateway.send(to=recipient, body=format_alert(project.name, message))

    # ── 6. Stamp the cooldown gate (last write wins) ────────
    await session.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(last_notified_at=now)
    )
    await session.commit()

    return NotificationOutcome.SENT


async def notify_in_background(
    session_factory: async_sessionmaker[AsyncSession],
    gateway: SMSGateway | None,
    project_id: uuid.UUID,
    message: str,
    timeout: float | None = None,
) -> NotificationOutcome | None:
    """
    Background-task entry point: never raises.

    Opens its own session (the request session is closed by now), bounds
    the whole dispatch with NOTIFICATION_TIMEOUT_SECONDS and logs every
    failure. Returns the outcome, or None when the dispatch failed.
    """
    if timeout is None:
        timeout = settings.NOTIFICATION_TIMEOUT_SECONDS

    try:
        async with session_factory() as session:
            outcome = await asyncio.wait_for(
                dispatch_error_notification(session, gateway, project_id, message),
                timeout=timeout,
            )
    except SMSGatewayError as exc:
        logger.error("SMS gateway rejected alert for project %s: %s", project_id, exc)
        return None
    except asyncio.TimeoutError:
        logger.error("Notification for project %s timed out after %.1fs", project_id, timeout)
        return None
    except Exception:
        logger.exception("Notification dispatch failed for project %s", project_id)
        return None

    logger.info("Notification for project %s: %s", project_id, outcome.value)
    return outcome
