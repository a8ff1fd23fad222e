"""Async engine, session factory and connectivity probe.

One engine per process, created on first use.  ``SqlSessionStore`` takes
the factory from :func:`get_session_factory`; the server's ``/health``
endpoint calls :func:`ping`; shutdown paths call :func:`dispose_engine`.
"""

import logging
import os

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from progressive_dx_db.config import get_async_url

logger = logging.getLogger(__name__)

POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))
# Log every statement; only useful when debugging the store
ECHO_SQL = os.getenv("PG_ECHO", "").lower() in ("1", "true", "yes")

_engine: AsyncEngine | None = None
_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            get_async_url(),
            echo=ECHO_SQL,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            # Sessions sit idle between patient answers; drop stale connections
            pool_pre_ping=True,
        )
        logger.info("Database engine created: pool_size=%d max_overflow=%d", POOL_SIZE, MAX_OVERFLOW)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory handed to ``SqlSessionStore``; one ``AsyncSession`` per store call."""
    global _factory
    if _factory is None:
        _factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _factory


async def ping() -> bool:
    """True when the database answers ``SELECT 1``."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Database ping failed: %s", exc)
        return False
    return True


async def dispose_engine() -> None:
    global _engine, _factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _factory = None
