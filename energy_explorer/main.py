"""
FastAPI application entry point for the Energy Explorer API.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)
- 2026-10-05: Register import router (STORY-005)
- 2026-10-06: Register measurements router (STORY-007)
- 2026-10-09: Register health router, JSON logging at startup (STORY-010)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from energy_explorer import __version__
from energy_explorer.api.health import router as health_router
from energy_explorer.api.importer import router as import_router
from energy_explorer.api.measurements import router as measurements_router
from energy_explorer.config import get_settings
from energy_explorer.db.session import dispose_engine, init_engine
from energy_explorer.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: logging, settings validation and DB engine."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    init_engine(settings.DATABASE_URL)
    logger.info("Energy Explorer API ready (overflow policy: %s)", settings.PAGINATION_OVERFLOW)
    yield
    await dispose_engine()
    logger.info("Energy Explorer API shut down")


app = FastAPI(
    title="Energy Explorer API",
    description="Import and explore per-device energy measurements.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(import_router)
app.include_router(measurements_router)


@app.get("/")
async def root() -> dict:
    """Liveness endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}
