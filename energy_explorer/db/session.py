"""
Async engine lifecycle and request-scoped sessions for the measurement store.

One engine per process, opened by the application lifespan (or lazily by
the first request) and disposed on shutdown. Each request gets its own
AsyncSession; closing it rolls back any transaction left open, such as
one whose marker claim was followed by a failed insert.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-09: Add dispose_engine for application shutdown (STORY-010)
- 2026-10-20: Single engine holder, pre-ping pooled connections (STORY-012)
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from energy_explorer.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_engine(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Open the process-wide engine if needed and return the session factory.

    Args:
        database_url: Overrides DATABASE_URL from the settings.

    Returns:
        async_sessionmaker: Factory bound to the engine.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if _session_factory is None:
        url = database_url or get_settings().DATABASE_URL
        _engine = create_async_engine(url, pool_pre_ping=True)
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
        logger.info("Database engine created for %s", _engine.url.render_as_string())
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session (FastAPI dependency)."""
    async with init_engine()() as session:
        yield session
