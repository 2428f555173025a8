# tests/conftest.py
import os

os.environ["MODE"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ADMIN_CLIENT_URL"] = "http://admin.test"

import smtplib
from typing import Dict, List

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from carmarket_admin.core.db import get_session
from carmarket_admin.core.redis_cache import RateLimiter
from carmarket_admin.core.security import create_access_token
from carmarket_admin.crud.admin import create_admin, get_admin_by_email
from carmarket_admin.main import app
from carmarket_admin.models.admin import Admin, AdminRole
from carmarket_admin.models.login_event import LoginEvent  # noqa: F401
from carmarket_admin.service.email import Mailer


class RecordingMailer(Mailer):
    """Keeps outgoing mail in memory; set ``fail`` to simulate an SMTP outage."""

    def __init__(self):
        super().__init__(host="smtp.test", port=587, user="noreply@test.com", password="secret")
        self.sent: List[Dict[str, str]] = []
        self.fail = False

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if self.fail:
            raise smtplib.SMTPException("connection refused")
        self.build_message(to, subject, html_body, text_body)
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.aclose()


@pytest.fixture
async def client(session_factory, mailer, redis):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.state.mailer = mailer
    app.state.rate_limiter = RateLimiter(redis)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_admin(session_factory):
    async def _make(
        email: str = "admin@test.com",
        password: str = "password123",
        name: str = "Test Admin",
        role: AdminRole = AdminRole.ADMIN,
        **fields,
    ) -> Admin:
        async with session_factory() as session:
            admin = await create_admin(session, email=email, password=password, name=name, role=role)
            if fields:
                for key, value in fields.items():
                    setattr(admin, key, value)
                session.add(admin)
                await session.commit()
            return admin

    return _make


@pytest.fixture
def load_admin(session_factory):
    async def _load(email: str):
        async with session_factory() as session:
            return await get_admin_by_email(session, email)

    return _load


@pytest.fixture
async def super_admin(make_admin):
    return await make_admin("root@test.com", "superpassword1", "Root Admin", AdminRole.SUPER_ADMIN)


@pytest.fixture
def auth_headers():
    def _headers(admin: Admin) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(admin.id, admin.email)}"}

    return _headers
