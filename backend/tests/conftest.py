"""
Circles Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment overrides are applied before any `app` import, so the
       settings singleton and the engine are built for testing.

Fixtures:
    ├── mock_db_session: AsyncMock standing in for AsyncSession
    ├── make_result:     builds mock query results (scalar/scalars/rows)
    ├── make_user:       transient User instances
    ├── current_user:    the authenticated caller for service/route tests
    ├── test_client:     HTTPX client with real auth, mocked database
    └── api_client:      HTTPX client authenticated as current_user
"""

import os
import tempfile
import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock

# Must run before anything imports app.config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-not-real-0123456789abcdef"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="circles_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import get_db_session
from app.models.user import User
from app.security import get_current_user


@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value = make_result(scalar=user_data)
        result = await profile_service.get_profile(mock_db_session, user)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_result():
    """Factory for the object returned by `await session.execute(...)`."""

    def _make(scalar=None, scalars=None, rows=None):
        result = MagicMock()
        result.scalar_one_or_none.return_value = scalar
        result.scalars.return_value.all.return_value = list(scalars or [])
        result.scalars.return_value.unique.return_value.all.return_value = list(scalars or [])
        result.all.return_value = list(rows or [])
        return result

    return _make


@pytest.fixture
def make_user():
    """Factory for transient (never persisted) User instances."""

    def _make(**overrides):
        fields = {
            "id": uuid.uuid4(),
            "name": "Test User",
            "email": f"user-{uuid.uuid4().hex[:8]}@example.com",
            "registration_complete": True,
        }
        fields.update(overrides)
        return User(**fields)

    return _make


@pytest.fixture
def current_user(make_user):
    return make_user(
        name="Ada Lovelace",
        email="ada@example.com",
        user_id="ada",
        date_of_birth=date(1995, 12, 10),
    )


@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX client against the app with the real auth dependency.

    raise_app_exceptions=False: the 500 handler's response is returned
    instead of the re-raised exception.
    """
    from app.main import app

    async def _session():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = _session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(test_client, current_user):
    """test_client with get_current_user resolved to `current_user`."""
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: current_user
    yield test_client
