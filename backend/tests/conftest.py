"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time: configure the environment BEFORE importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-suite-0123456789abcdef")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("METRICS_ENABLED", "false")

from typing import AsyncGenerator
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import create_session_token
from app.main import app
from app.services.identity.registry import reset_registry
from app.store.document_store import DocumentStore
from app.store.paths import account_path
from app.workers.tasks.achievement_tasks import notify_achievement_unlocked
from app.workers.tasks.story_tasks import prune_account_stories

# Test database URL: StaticPool so in-memory SQLite shares one connection
# (NullPool creates a new connection per call, losing all tables each time)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    # Register models with Base.metadata
    from app.models import document  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def store(db_session: AsyncSession) -> DocumentStore:
    """Document store without trigger routing."""
    return DocumentStore(db_session)


@pytest.fixture(autouse=True)
def mock_task_dispatch():
    """
    Replace Celery ``.delay`` for the reactive tasks.

    No broker runs in the suite; tests assert on the recorded calls instead.
    """
    with patch.object(prune_account_stories, "delay", MagicMock()) as prune_delay, patch.object(
        notify_achievement_unlocked, "delay", MagicMock()
    ) as notify_delay:
        yield {"prune": prune_delay, "notify": notify_delay}


@pytest.fixture(autouse=True)
def fresh_registry():
    """Rebuild the provider registry from settings for every test."""
    reset_registry()
    yield
    reset_registry()


@pytest.fixture(scope="function")
def override_get_db(db_session: AsyncSession):
    """Override the get_db dependency."""

    async def _override_get_db():
        yield db_session

    return _override_get_db


@pytest_asyncio.fixture(scope="function")
async def async_client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_account(store: DocumentStore) -> dict:
    """Create an account document as the bridge would on first VK login."""
    data = {
        "localId": "vk:42",
        "provider": "vk",
        "providerUserId": "42",
        "email": "42@vk.local",
        "displayName": "Anna",
        "photoURL": "https://vk.example/anna.jpg",
        "createdAt": "2024-01-01T00:00:00Z",
        "lastLoginAt": "2024-01-01T00:00:00Z",
    }
    await store.create(account_path("vk:42"), data)
    return data


@pytest.fixture
def auth_headers(test_account: dict) -> dict:
    """Authorization header carrying a session credential for ``test_account``."""
    token, _ = create_session_token(test_account["localId"])
    return {"Authorization": f"Bearer {token}"}
