"""
Pytest configuration and fixtures for Truk backend tests.

Provides fixtures for:
- In-memory database engine and session
- User factory and bearer tokens
- Fake Redis client
- HTTP client with dependency overrides
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from truk.core.database import get_db  # noqa: E402
from truk.core.dependencies import get_redis  # noqa: E402
from truk.core.security import create_access_token  # noqa: E402
from truk.main import app  # noqa: E402
from truk.models import Base  # noqa: E402
from truk.models.user import User, UserRole  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db: AsyncSession):
    """Factory creating verified users; pass overrides for any column."""
    counter = {"n": 0}

    async def _make_user(**overrides) -> User:
        counter["n"] += 1
        values = {
            "email": f"user{counter['n']}@example.com",
            "name": f"User {counter['n']}",
            "password_hash": None,
            "email_verified": True,
            "role": UserRole.user,
        }
        values.update(overrides)
        user = User(**values)
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        token = create_access_token(str(user.id), role=user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def fake_redis() -> AsyncMock:
    """Redis stand-in: nothing is blacklisted and no keys exist."""
    redis = AsyncMock()
    redis.exists.return_value = 0
    redis.get.return_value = None
    return redis


@pytest.fixture(autouse=True)
def queued_emails(monkeypatch) -> MagicMock:
    """Capture emails instead of sending them to the broker."""
    queue = MagicMock()
    monkeypatch.setattr("truk.workers.email_tasks.queue_email", queue)
    return queue


@pytest_asyncio.fixture
async def client(db: AsyncSession, fake_redis: AsyncMock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session and fake Redis."""

    async def override_get_db():
        yield db

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
