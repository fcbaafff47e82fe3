"""
Phone number model: SMS recipients belonging to a user.

Invariant: at most one is_primary row per user. The dispatcher reads only
the primary row. The partial unique index below makes a second primary
impossible at the storage level; services/phone_numbers.py performs the
demote + promote inside a single transaction so readers never observe
zero or two primaries.
"""

import uuid
import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from errly.core.database import Base


class PhoneNumber(Base):
    """One E.164 number a user can be alerted on."""

    __tablename__ = "phone_numbers"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )
    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index(
            "uq_phone_numbers_one_primary_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PhoneNumber id={self.id} user={self.user_id!s:.8} "
            f"primary={self.is_primary}>"
        )
