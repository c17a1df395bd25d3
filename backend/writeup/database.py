"""
WriteUp Backend: Database Session Management
============================================

What:  Async SQLAlchemy engine, session factory, declarative base, and the
       FastAPI session dependency.
Why:   Centralizes all database connection logic in one place.
How:   The engine is created at import from settings.database_url. Route
       handlers get a session per request via get_db_session(), which commits
       on success and rolls back on error. The provider config store opens its
       own short-lived sessions from the same factory.

Storage choice:
    The backend runs next to a desktop shell, so the default URL is a local
    SQLite file through the aiosqlite driver. Any async SQLAlchemy URL works.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from writeup.config import settings


engine = create_async_engine(
    settings.database_url,
    # Echo SQL only when debugging; it is very noisy otherwise
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False: objects stay readable after commit, outside the session
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata is what Alembic tracks."""

    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables() -> None:
    """
    Create any missing tables.

    Called from the lifespan so a fresh install works without running Alembic.
    Existing tables are left alone; schema changes still go through migrations.
    """
    # Import models so they register with Base.metadata
    from writeup.models import app_setting, history, provider  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Closes all pooled connections; called on application shutdown."""
    await engine.dispose()
