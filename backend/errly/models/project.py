"""
Project model: one monitored application.

A project owns its error events. It is authenticated by an API key of
which only the SHA-256 hash is stored (see auth/hashing.py).

last_notified_at is the per-project cooldown gate for SMS alerts and is
written only by the notification dispatcher.
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from errly.core.database import Base


class Project(Base):
    """One monitored application: the top-level isolation boundary."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        Text, nullable=False,
    )
    api_key_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )
    api_key_prefix: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    last_notified_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Project id={self.id!s:.8} name={self.name!r}>"
