"""Async database engine and session management.

Configures the SQLAlchemy async engine and provides dependency injection
for request-scoped database sessions. DATABASE_URL selects the driver:
aiosqlite for local development, asyncpg for Postgres.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from weather_auth.core.config import settings


def _engine_options(database_url: str) -> dict[str, Any]:
    """Driver-specific engine options."""
    if make_url(database_url).get_backend_name() == "sqlite":
        # One file, many coroutines: aiosqlite hands the connection between threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=False,
    **_engine_options(settings.database_url),
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    Commits when the request handler returns normally and rolls back when
    it raises. Use cases that must persist before a side effect (sending
    email) commit explicitly.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
