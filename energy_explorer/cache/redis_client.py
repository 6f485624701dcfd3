"""
Redis client for cache operations.

Provides helpers for creating Redis connections and for reading, writing
and invalidating the cached latest measurement. All cache operations are
best-effort: failures are logged but never propagate.

CHANGELOG:
- 2026-10-09: Initial creation (STORY-010)
"""

import json
import logging

import redis.asyncio as redis

from energy_explorer.config import get_settings

logger = logging.getLogger(__name__)

LATEST_CACHE_KEY = "latest_measurement"


async def get_redis() -> redis.Redis:
    """Create and return an async Redis client from application settings.

    Returns:
        redis.Redis: Async Redis client.
    """
    settings = get_settings()
    return redis.from_url(settings.REDIS_URL)


async def read_latest_cache() -> dict | None:
    """Return the cached latest measurement, or None on miss or failure."""
    try:
        client = await get_redis()
        try:
            raw = await client.get(LATEST_CACHE_KEY)
            if raw is not None:
                return json.loads(raw)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis cache read failed", exc_info=True)
    return None


async def write_latest_cache(data: dict) -> None:
    """Cache the latest measurement for CACHE_TTL_S seconds."""
    try:
        settings = get_settings()
        client = await get_redis()
        try:
            await client.set(LATEST_CACHE_KEY, json.dumps(data), ex=settings.CACHE_TTL_S)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis cache write failed", exc_info=True)


async def invalidate_latest_cache() -> None:
    """Delete the cached latest measurement after new data was stored."""
    try:
        client = await get_redis()
        try:
            await client.delete(LATEST_CACHE_KEY)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Failed to invalidate latest measurement cache", exc_info=True)
