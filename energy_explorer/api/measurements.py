"""
Measurement query API endpoints.

- GET /v1/measurements: keyset-paginated chart data for one device,
  optionally resampled to fixed-width buckets or aggregated per calendar
  unit.
- GET /v1/measurements/interval: earliest and latest stored timestamps.
- GET /v1/measurements/latest: latest stored row (Redis read-through cache).

CHANGELOG:
- 2026-10-06: Initial creation (STORY-007)
- 2026-10-08: Add resampling and calendar aggregation parameters (STORY-009)
- 2026-10-09: Cache the latest measurement in Redis (STORY-010)
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from energy_explorer.api.deps import AppSettings, Store
from energy_explorer.cache.redis_client import read_latest_cache, write_latest_cache
from energy_explorer.db.models import EnergyMeasurement
from energy_explorer.errors import EmptyStoreError, InvalidCursorError, InvalidQueryError
from energy_explorer.services.aggregation import CalendarGranularity
from energy_explorer.services.measurements import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    MIN_LIMIT,
    OverflowPolicy,
    QueryWindow,
    get_all_measurements,
    get_latest,
    get_time_interval,
)
from energy_explorer.services.resampling import (
    DEFAULT_BUCKET_WIDTH_MINUTES,
    MAX_BUCKET_WIDTH_MINUTES,
    MIN_BUCKET_WIDTH_MINUTES,
    to_epoch_millis,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["measurements"])


# ---------------------------------------------------------------------------
# Pydantic response schemas
# ---------------------------------------------------------------------------


class ChartPointResponse(BaseModel):
    """One chart point.

    Attributes:
        time: Point time in epoch milliseconds.
        value: Plotted value.
        device_id: Device the point belongs to.
        count: Rows in the bucket (calendar aggregation only).
    """

    time: int
    value: float
    device_id: str
    count: int | None = None


class MeasurementsPageResponse(BaseModel):
    """A page of chart data; next_cursor is null on the last page."""

    chart_data: list[ChartPointResponse]
    next_cursor: int | None = None


class MeasurementResponse(BaseModel):
    """A stored measurement row. ``value`` keeps the exact decimal text."""

    id: int
    timestamp: str
    device_id: str
    register_code: str
    value: str

    @classmethod
    def from_row(cls, row: EnergyMeasurement) -> "MeasurementResponse":
        return cls(
            id=row.id,
            timestamp=row.timestamp.isoformat(),
            device_id=row.device_id,
            register_code=row.register_code,
            value=str(row.value),
        )


class TimeIntervalResponse(BaseModel):
    """Earliest and latest stored timestamps in epoch milliseconds."""

    min: int
    max: int


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/measurements", response_model=MeasurementsPageResponse)
async def list_measurements(
    store: Store,
    settings: AppSettings,
    device_id: str = Query(..., min_length=1, description="Device identifier (MUID)"),
    limit: int = Query(DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT),
    cursor: int | None = Query(None, description="next_cursor of the previous page"),
    start_interval: datetime | None = Query(None),
    end_interval: datetime | None = Query(None),
    resample: bool = Query(False, description="Resample to fixed-width buckets"),
    bucket_width_minutes: int | None = Query(
        None, ge=MIN_BUCKET_WIDTH_MINUTES, le=MAX_BUCKET_WIDTH_MINUTES,
    ),
    calendar_granularity: CalendarGranularity | None = Query(None),
    with_average: bool = Query(False),
) -> MeasurementsPageResponse:
    """Return one page of chart data for a device.

    Pages follow (timestamp, id) order. Pass ``next_cursor`` back as
    ``cursor`` to read the next page; a null ``next_cursor`` marks the
    last page. ``bucket_width_minutes`` implies ``resample``.

    Raises:
        HTTPException: 400 for an unknown cursor or contradictory
            parameters (e.g. a bucket width combined with a calendar
            granularity).
    """
    if resample and bucket_width_minutes is None:
        bucket_width_minutes = DEFAULT_BUCKET_WIDTH_MINUTES

    try:
        window = QueryWindow(
            device_id=device_id,
            limit=limit,
            cursor=cursor,
            start_interval=_as_utc(start_interval),
            end_interval=_as_utc(end_interval),
            bucket_width_minutes=bucket_width_minutes,
            calendar_granularity=calendar_granularity,
            with_average=with_average,
        )
        page = await get_all_measurements(
            store, window, OverflowPolicy(settings.PAGINATION_OVERFLOW),
        )
    except (InvalidQueryError, InvalidCursorError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return MeasurementsPageResponse(
        chart_data=[
            ChartPointResponse(
                time=to_epoch_millis(point.time),
                value=point.value,
                device_id=point.device_id,
                count=point.count,
            )
            for point in page.chart_data
        ],
        next_cursor=page.next_cursor.encode() if page.next_cursor else None,
    )


@router.get("/measurements/interval", response_model=TimeIntervalResponse)
async def measurements_interval(store: Store) -> TimeIntervalResponse:
    """Return the stored time range.

    Raises:
        HTTPException: 404 if no measurements are stored.
    """
    try:
        low, high = await get_time_interval(store)
    except EmptyStoreError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TimeIntervalResponse(min=to_epoch_millis(low), max=to_epoch_millis(high))


@router.get("/measurements/latest", response_model=MeasurementResponse | None)
async def latest_measurement(store: Store) -> MeasurementResponse | None:
    """Return the latest stored measurement, or null when none exist.

    Checks the Redis cache first; on a miss reads the store and caches a
    found row.
    """
    cached = await read_latest_cache()
    if cached is not None:
        return MeasurementResponse(**cached)

    row = await get_latest(store)
    if row is None:
        return None

    data = MeasurementResponse.from_row(row)
    await write_latest_cache(data.model_dump())
    return data
