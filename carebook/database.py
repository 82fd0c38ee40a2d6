"""Database configuration and connection management."""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from carebook.config import settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_engine_lock = threading.Lock()


def _engine_options(url: str) -> dict[str, Any]:
    """Driver-specific pool and timeout options."""
    if url.startswith("postgresql+asyncpg://"):
        return {
            "pool_pre_ping": True,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_recycle": 3600,
            "pool_timeout": settings.database_timeout_seconds,
            "connect_args": {
                "timeout": settings.database_timeout_seconds,
                "command_timeout": settings.database_timeout_seconds,
                "server_settings": {
                    "application_name": settings.app_name,
                },
            },
        }
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": settings.database_timeout_seconds}}
    return {"pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    """
    Get or lazily create the process-wide async engine.

    Initialization happens once under a lock, so concurrent first callers
    share a single engine and connection pool.
    """
    global _engine, _session_factory

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                url = settings.async_database_url
                _engine = create_async_engine(url, echo=settings.debug, **_engine_options(url))
                _session_factory = async_sessionmaker(
                    _engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the shared engine."""
    get_engine()
    if _session_factory is None:
        raise RuntimeError("Database engine is not initialized")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Dispose the shared engine, if one was created."""
    global _engine, _session_factory

    with _engine_lock:
        engine, _engine, _session_factory = _engine, None, None

    if engine is not None:
        await engine.dispose()


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
