"""
Health check endpoint that probes DB and Redis connectivity.

Returns a JSON response with the overall status, the status of each
dependency and the import state of the store. HTTP 200 when all
components are healthy, HTTP 503 when any component is degraded.

CHANGELOG:
- 2026-10-09: Initial creation (STORY-010)
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from energy_explorer.cache.redis_client import get_redis
from energy_explorer.db.session import get_async_session
from energy_explorer.db.store import SqlMeasurementStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_db() -> tuple[str, str | None]:
    """Probe the database and read the import state.

    Returns:
        ("ok", import state) if the probe succeeds, ("error", None) otherwise.
    """
    try:
        async for session in get_async_session():
            await session.execute(text("SELECT 1"))
            state = await SqlMeasurementStore(session).import_state()
            return "ok", state.value
    except Exception:
        logger.warning("Health check: DB probe failed", exc_info=True)
        return "error", None
    return "error", None  # pragma: no cover


async def _check_redis() -> str:
    """Probe Redis with a PING command."""
    try:
        client = await get_redis()
        try:
            await client.ping()
            return "ok"
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Health check: Redis probe failed", exc_info=True)
        return "error"


@router.get("/health")
async def health_check() -> JSONResponse:
    """Health check probing DB and Redis.

    Returns:
        JSONResponse: status, db, redis and import_state fields.
    """
    db_status, import_state = await _check_db()
    redis_status = await _check_redis()

    all_ok = db_status == "ok" and redis_status == "ok"
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ok" if all_ok else "degraded",
            "db": db_status,
            "redis": redis_status,
            "import_state": import_state,
        },
    )
