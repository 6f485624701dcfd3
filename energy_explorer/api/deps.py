"""
FastAPI dependency injection providers.

Provides database sessions, the measurement store, the upstream record
source and settings for use with FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)
- 2026-10-05: Add Store and RecordSource dependencies (STORY-005)
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from energy_explorer.config import Settings, get_settings
from energy_explorer.db.session import get_async_session
from energy_explorer.db.store import MeasurementStore, SqlMeasurementStore
from energy_explorer.services.importer import RecordSource
from energy_explorer.services.sources import DumpFetcher

# Type alias for injecting an async DB session via FastAPI Depends().
DbSession = Annotated[AsyncSession, Depends(get_async_session)]

AppSettings = Annotated[Settings, Depends(get_settings)]


def get_store(db: DbSession) -> MeasurementStore:
    """Wrap the request's session in the SQL measurement store."""
    return SqlMeasurementStore(db)


def get_record_source(settings: AppSettings) -> RecordSource:
    """Build the dump fetcher for the configured upstream URLs."""
    return DumpFetcher(settings.source_urls, timeout_s=settings.IMPORT_TIMEOUT_S)


# Annotated dependencies for route signatures:
#   async def my_endpoint(store: Store): ...
Store = Annotated[MeasurementStore, Depends(get_store)]
Source = Annotated[RecordSource, Depends(get_record_source)]
