"""
ChatSphere Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite on a
       static pool, so all sessions share one connection). The API client
       overrides the get_db_session dependency to use it.

Fixture Hierarchy (all function-scoped):
    ├── db_engine → db_session_factory → db_session
    ├── test_client: HTTPX AsyncClient over ASGITransport
    ├── register_user: coroutine creating an account, returns (token, user)
    ├── make_contacts: coroutine linking two users via request + accept
    ├── mock_db_session: AsyncMock session for pure unit tests
    └── sample_image_bytes: minimal JPEG bytes
"""

import os
import tempfile

# Environment must be in place before any chatsphere module is imported:
# settings, the engine and the service singletons read it at import time.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["UPLOAD_TMP_DIR"] = tempfile.mkdtemp(prefix="chatsphere_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["CLOUDINARY_CLOUD_NAME"] = ""
os.environ["CLOUDINARY_API_KEY"] = ""
os.environ["CLOUDINARY_API_SECRET"] = ""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chatsphere.database import Base, get_db_session
import chatsphere.models  # noqa: F401


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(db_session_factory):
    """A session on the same database the API client writes to."""
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession in service unit tests.

    Usage:
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await user_service.get_user(mock_db_session, uuid4())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_session_factory):
    """
    Async HTTP client wired to the FastAPI app and the per-test database.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from chatsphere.main import app

    async def override_get_db_session():
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def register_user(test_client):
    """
    Returns a coroutine that registers an account.

    Usage:
        token, user = await register_user("Ada Lovelace", "ada@example.com")
    """

    async def _register(name: str, email: str, password: str = "secret123"):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["token"], data["user"]

    return _register


@pytest_asyncio.fixture
async def make_contacts(test_client):
    """Returns a coroutine: sender requests, receiver accepts."""

    async def _link(sender_token: str, receiver_token: str, receiver_id: str):
        sent = await test_client.post(
            "/api/contacts/request",
            json={"userId": receiver_id},
            headers=auth_header(sender_token),
        )
        assert sent.status_code == 201, sent.text
        request_id = sent.json()["data"]["request"]["id"]
        accepted = await test_client.put(
            f"/api/contacts/requests/{request_id}/accept",
            headers=auth_header(receiver_token),
        )
        assert accepted.status_code == 200, accepted.text
        return request_id

    return _link


@pytest.fixture
def sample_image_bytes():
    """Smallest JPEG that passes type checks (SOI + JFIF header + EOI)."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )
