# tests/conftest.py
"""
Shared fixtures.

The server tests run against an on-disk SQLite database (aiosqlite) created
fresh per test from Base.metadata. NullPool gives every session its own
connection, so the same engine can be driven from asyncio.run() in the test
body and from TestClient's event loop.
"""

import asyncio
import datetime
import os
import uuid
from dataclasses import dataclass

# Must be set before anything imports errly.core.config
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "errly-test-secret-0123456789abcdef")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from errly.auth.hashing import generate_api_key
from errly.core.config import settings
from errly.core.database import Base, get_db_session, get_session_factory
from errly.main import app
from errly.models.error_event import ErrorEvent
from errly.models.phone_number import PhoneNumber
from errly.models.project import Project
from errly.models.user import User
from errly.services.sms_gateway import SMSGatewayError, get_sms_gateway


class FakeSMSGateway:
    """Records messages instead of calling Twilio."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send(self, to: str, body: str) -> str:
        if self.fail:
            raise SMSGatewayError("The 'To' number is not a valid phone number.", status=400, code=21211)
        self.sent.append((to, body))
        return f"SM{len(self.sent):032d}"


@dataclass
class SeededProject:
    user_id: uuid.UUID
    project_id: uuid.UUID
    api_key: str


class Store:
    """Synchronous helpers around the async test database."""

    def __init__(self, factory: async_sessionmaker[AsyncSession]):
        self.factory = factory

    def run(self, fn):
        async def _go():
            async with self.factory() as session:
                return await fn(session)

        return asyncio.run(_go())

    def create_project(
        self,
        *,
        name: str = "checkout-service",
        notifications_enabled: bool = True,
        phone: str | None = "+15550001111",
        last_notified_at: datetime.datetime | None = None,
        user_id: uuid.UUID | None = None,
    ) -> SeededProject:
        raw_key, key_hash, prefix = generate_api_key()
        owner_id = user_id or uuid.uuid4()

        async def _seed(session):
            if await session.get(User, owner_id) is None:
                session.add(User(id=owner_id, notifications_enabled=notifications_enabled))
            project = Project(
                owner_user_id=owner_id,
                name=name,
                api_key_hash=key_hash,
                api_key_prefix=prefix,
                last_notified_at=last_notified_at,
            )
            session.add(project)
            if phone:
                session.add(PhoneNumber(user_id=owner_id, phone_number=phone, is_primary=True))
            await session.commit()
            return project.id

        project_id = self.run(_seed)
        return SeededProject(user_id=owner_id, project_id=project_id, api_key=raw_key)

    def events(self, project_id: uuid.UUID) -> list[ErrorEvent]:
        async def _fetch(session):
            stmt = select(ErrorEvent).where(ErrorEvent.project_id == project_id)
            return list((await session.execute(stmt)).scalars())

        return self.run(_fetch)

    def project(self, project_id: uuid.UUID) -> Project:
        return self.run(lambda session: session.get(Project, project_id))

    def phone_numbers(self, user_id: uuid.UUID) -> list[PhoneNumber]:
        async def _fetch(session):
            stmt = select(PhoneNumber).where(PhoneNumber.user_id == user_id).order_by(PhoneNumber.id)
            return list((await session.execute(stmt)).scalars())

        return self.run(_fetch)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'errly.db'}",
        poolclass=NullPool,
    )

    async def _create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def store(session_factory):
    return Store(session_factory)


@pytest.fixture
def gateway():
    return FakeSMSGateway()


@pytest.fixture
def client(session_factory, gateway):
    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_sms_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_token(user_id: uuid.UUID, expires_in: int = 3600) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return jwt.encode(
        {
            "sub": str(user_id),
            "aud": "authenticated",
            "exp": now + datetime.timedelta(seconds=expires_in),
        },
        settings.AUTH_JWT_SECRET,
        algorithm="HS256",
    )


@pytest.fixture
def auth_header():
    def _header(user_id: uuid.UUID, expires_in: int = 3600) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, expires_in)}"}

    return _header


@pytest.fixture
def failing_gateway():
    return FakeSMSGateway(fail=True)


@pytest.fixture
def session_token():
    return make_token
