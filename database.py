import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config.settings import Settings, settings

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()


def build_engine(app_settings: Settings) -> AsyncEngine:
    """
    Create the async engine from the configured connection string.

    A missing DATABASE_URL is a fatal startup condition.
    """
    database_url = app_settings.database_url
    if not database_url:
        raise RuntimeError(f"DATABASE_URL is not configured (ENV={app_settings.env}).")

    # Route plain PostgreSQL URLs through the async driver
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return create_async_engine(database_url, echo=False, future=True)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None):
    """
    Initialize the database by creating all tables.
    This should be called on application startup.
    """
    async with (bind or engine).begin() as conn:
        # Import models here to ensure they're registered with Base
        import database_models  # noqa: F401
        # Create all tables
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def transaction(session_factory: Optional[async_sessionmaker] = None) -> AsyncIterator[AsyncSession]:
    """
    Unit of work scoped to one session.

    Commits when the block exits cleanly, rolls back on any exception and
    always closes the session.
    """
    factory = session_factory or AsyncSessionLocal
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        logger.info("Transaction rolled back")
        raise
    finally:
        await session.close()


def get_session_factory() -> async_sessionmaker:
    """Dependency returning the session factory; overridden in tests."""
    return AsyncSessionLocal


async def get_db(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields a database session.
    Use this in FastAPI route dependencies to get a database session.

    Example:
        @router.get("/users")
        async def get_users(db: AsyncSession = Depends(get_db)):
            # Use db here
            pass
    """
    async with transaction(session_factory) as session:
        yield session
