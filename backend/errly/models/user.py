"""
User model: the owner of projects and phone numbers.

The id is the opaque subject issued by the external identity provider,
so no mapping table is needed between "auth user" and "app user".
"""

import uuid
import datetime

from sqlalchemy import Boolean, DateTime, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from errly.core.database import Base


class User(Base):
    """Account that receives SMS alerts for the projects it owns."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<User id={self.id!s:.8} "
            f"notifications={self.notifications_enabled}>"
        )
