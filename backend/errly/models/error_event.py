"""
SQLAlchemy model for the `errors` table.

Each row is one event reported by an SDK. Rows are immutable after insert
except `state` / `muted_until`, which the dashboard changes (resolve/mute).

Design notes:
  • received_at is assigned by the database, never by the client.
  • metadata_ is JSONB on Postgres for the opaque SDK payload.
  • Every column is populated on insert so the live-update channel can
    broadcast the row as-is.
"""

import uuid
import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from errly.core.database import Base

EVENT_LEVELS = ("error", "warn", "info", "log")
EVENT_STATES = ("active", "resolved", "muted")


class ErrorEvent(Base):
    """One reported log/error occurrence, scoped to a project."""

    __tablename__ = "errors"

    # ── Primary key ─────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Ownership ───────────────────────────────────────────
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Payload ─────────────────────────────────────────────
    level: Mapped[str] = mapped_column(
        String(10), nullable=False, default="error", server_default="error",
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    stack_trace: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Column named `metadata_` because `metadata` is reserved on
    # declarative classes; maps to DB column `metadata`.
    metadata_: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )

    # ── Server-assigned ─────────────────────────────────────
    received_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Triage state (mutated by the dashboard) ─────────────
    state: Mapped[str] = mapped_column(
        String(10), nullable=False, default="active", server_default="active",
    )
    muted_until: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Table-level constraints ─────────────────────────────
    __table_args__ = (
        CheckConstraint(
            "level IN ('error', 'warn', 'info', 'log')",
            name="ck_errors_level_valid",
        ),
        CheckConstraint(
            "state IN ('active', 'resolved', 'muted')",
            name="ck_errors_state_valid",
        ),
        Index("ix_errors_project_id_received_at", "project_id", "received_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ErrorEvent id={self.id!s:.8} project={self.project_id!s:.8} "
            f"level={self.level}>"
        )
