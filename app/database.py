"""Async database engine and session management.

Uses SQLAlchemy 2.0 async with asyncpg driver (aiosqlite for local/test URLs).
Repositories receive the session factory and open one session per operation.
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool options for the given URL: SQLite shares one connection."""
    if database_url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False, **engine_options(database_url))


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session_factory = build_session_factory(engine)


async def init_db(bind: AsyncEngine | None = None) -> bool:
    """Create tables if they don't exist. Returns True on success."""
    from app.models import Base

    try:
        async with (bind or engine).begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
        return True
    except Exception as e:
        logger.warning("Database unavailable, continuing without persistence: %s", str(e)[:200])
        return False


async def check_db_health(bind: AsyncEngine | None = None) -> dict:
    """Run a trivial query. Returns {connected, message}."""
    try:
        async with (bind or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"connected": True, "message": "Database connection is healthy"}
    except Exception as e:
        logger.debug("Database health check failed: %s", str(e)[:200])
        return {"connected": False, "message": f"Database connection failed: {str(e)[:200]}"}


async def close_db():
    """Dispose engine connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
