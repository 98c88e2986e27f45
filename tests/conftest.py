"""
Pytest configuration and fixtures for testing
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")
os.environ.setdefault("JWT_EXPIRES_IN", "1d")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "0")

from datetime import datetime, timedelta  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from config.settings import Settings, get_settings  # noqa: E402
from database import Base, build_session_factory, get_session_factory  # noqa: E402
from database_models import utcnow  # noqa: E402


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        JWT_SECRET_KEY="test-secret-key-with-at-least-32-bytes!",
        JWT_EXPIRES_IN="1h",
        ENV="development",
        RATE_LIMIT_PER_MINUTE=0,
    )


@pytest.fixture
async def test_engine(tmp_path):
    """
    Engine bound to a fresh SQLite file per test.

    A file (not :memory:) gives every session its own connection, so
    concurrent transactions behave as they would against a server database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        # Import models to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory):
    """Session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory, settings):
    """
    Async HTTP client fixture with test database override.
    """
    from main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Cleanup: remove dependency override
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    return datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture
def past():
    """A start date safely in the past relative to the wall clock."""
    return utcnow().replace(microsecond=0) - timedelta(days=3)
