"""
Database plumbing shared by every Errly component.

  engine                 one async engine per process (asyncpg in production)
  async_session_factory  sessions for request handlers and background work
  Base                   declarative base; Alembic diffs against Base.metadata

Request handlers receive a session through Depends(get_db_session).
The SMS notification runs after the response has been sent, when the
request session is already closed, so it asks for the factory instead
(Depends(get_session_factory)) and opens a session of its own.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from errly.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Stored events are returned in the 201 body after commit, so attributes
# must stay loaded.
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for users, phone_numbers, projects and errors."""


# ── Dependencies ────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; services decide when to commit."""
    async with async_session_factory() as session:
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory
