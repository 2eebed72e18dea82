"""Async engine, session factory and session scopes."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from agentchat.config import settings

logger = structlog.get_logger()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

AFTER_COMMIT_KEY = "after_commit"


def _engine_options() -> dict[str, Any]:
    # Tests and local runs open short-lived connections per session
    if settings.is_testing or settings.is_development:
        return {"echo": settings.app_debug, "poolclass": NullPool}
    return {
        "echo": settings.app_debug,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }


def get_engine() -> AsyncEngine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, **_engine_options())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[Any]]) -> None:
    """Defer ``callback`` until the session's transaction has been committed.

    Callbacks are dropped when the transaction rolls back.
    """
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)


async def run_after_commit(session: AsyncSession) -> None:
    for callback in session.info.pop(AFTER_COMMIT_KEY, []):
        await callback()


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commits when the block exits cleanly, rolls back otherwise.

    Used directly by work that outlives a request, such as saving the
    result of a chat stream after the response has started.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.warning("session_rolled_back", error_type=type(e).__name__)
            session.info.pop(AFTER_COMMIT_KEY, None)
            await session.rollback()
            raise
        await run_after_commit(session)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping one request in a unit of work."""
    async with get_session_context() as session:
        yield session


async def check_db_connection() -> bool:
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("database_check_failed", error=str(e))
        return False


async def dispose_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
