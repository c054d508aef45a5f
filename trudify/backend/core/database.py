"""
Async database access.

The engine is built on first use, so importing the app (tests, CLI --help)
never needs DB_PASSWORD. HTTP requests and Telegram updates each get one
session through session_scope: everything a request changed is committed
together, or rolled back together if the handler raised.
"""

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from trudify.backend.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options() -> dict[str, Any]:
    """Pool settings from database.yaml, as create_async_engine keywords."""
    from trudify.backend.core.config import get_app_config

    db = get_app_config().database
    return {
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
        "pool_pre_ping": True,
        "echo": db.echo,
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        from trudify.backend.core.config import get_app_config, get_database_url

        _engine = create_async_engine(get_database_url(), **engine_options())
        db = get_app_config().database
        logger.debug("Database engine created", extra={"host": db.host, "db": db.name})
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Rows stay readable after commit; lifecycle services return them
        _session_factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def session_scope(factory: Callable[[], Any] | None = None) -> AsyncIterator[AsyncSession]:
    """One unit of work: commit on normal exit, roll back and re-raise on error."""
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping the request in session_scope."""
    async with session_scope() as session:
        yield session


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.debug("Database engine disposed")
    _engine = None
    _session_factory = None
