"""
Import API endpoint.

POST /v1/import seeds the store from the upstream dumps exactly once and
invalidates the latest-measurement cache.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-005)
"""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from energy_explorer.api.deps import AppSettings, Source, Store
from energy_explorer.api.measurements import MeasurementResponse
from energy_explorer.cache.redis_client import invalidate_latest_cache
from energy_explorer.errors import (
    AlreadyImportedError,
    RecordValidationError,
    UpstreamFetchError,
)
from energy_explorer.services.importer import import_data
from energy_explorer.services.validation import RegisterCodePolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["import"])


class ImportResponse(BaseModel):
    """Schema for the import response.

    Attributes:
        inserted_count: Number of inserted measurements.
        latest_measurement: Latest stored measurement after the import.
    """

    inserted_count: int
    latest_measurement: MeasurementResponse | None


@router.post("/import", response_model=ImportResponse)
async def run_import(store: Store, source: Source, settings: AppSettings) -> ImportResponse:
    """Import the upstream dumps into an empty store.

    Raises:
        HTTPException: 409 if data was already imported.
        HTTPException: 422 if a raw record is invalid.
        HTTPException: 502 if a dump is unreachable or malformed.
    """
    try:
        result = await import_data(
            store, source, RegisterCodePolicy(settings.REGISTER_CODE_POLICY),
        )
    except AlreadyImportedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except RecordValidationError as exc:
        logger.warning("Import aborted: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except UpstreamFetchError as exc:
        logger.warning("Import aborted: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    await invalidate_latest_cache()

    latest = result.latest_measurement
    return ImportResponse(
        inserted_count=result.inserted_count,
        latest_measurement=MeasurementResponse.from_row(latest) if latest else None,
    )
