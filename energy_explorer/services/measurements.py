"""
Query orchestration for paginated, optionally collapsed measurement reads.

Builds the device / time-range / keyset filter, reads ``limit + 1`` rows in
(timestamp, id) order, optionally routes them through the resampler or the
calendar aggregator, and derives the next cursor from the overflow row.

Two overflow policies exist for collapsed queries:

- ``raw``: collapse the pre-truncation fetch, slice to ``limit`` and take
  the cursor from the raw overflow row. A page can then hold fewer than
  ``limit`` points, and the overflow row's bucket can show up again on the
  next page.
- ``bucket``: keep reading until the first row of bucket ``limit + 1`` is
  seen, emit exactly ``limit`` complete buckets and point the cursor at
  that row. Buckets never repeat across pages.

CHANGELOG:
- 2026-10-06: Initial creation (STORY-007)
- 2026-10-08: Route collapsed queries through resampler / aggregator (STORY-009)
- 2026-10-10: Add bucket overflow policy (STORY-011)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from energy_explorer.db.models import EnergyMeasurement
from energy_explorer.db.store import MeasurementStore
from energy_explorer.errors import (
    EmptyStoreError,
    InternalInvariantError,
    InvalidCursorError,
    InvalidQueryError,
)
from energy_explorer.services.aggregation import CalendarGranularity, aggregate, truncate
from energy_explorer.services.pagination import (
    Cursor,
    KeysetPosition,
    PaginationState,
    split_overflow,
)
from energy_explorer.services.resampling import (
    MAX_BUCKET_WIDTH_MINUTES,
    MIN_BUCKET_WIDTH_MINUTES,
    SampleRow,
    bucket_start,
    resample,
)

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_LIMIT = 50

# Minimum rows per read while filling a page under the bucket policy.
_FILL_BATCH_SIZE = 500


class OverflowPolicy(str, Enum):
    RAW = "raw"
    BUCKET = "bucket"


@dataclass(frozen=True)
class QueryWindow:
    """Filter and shape of one paginated read.

    At most one collapse mode may be set: ``bucket_width_minutes`` or
    ``calendar_granularity``.

    Raises:
        InvalidQueryError: On out-of-range or contradictory parameters.
    """

    device_id: str
    limit: int = DEFAULT_LIMIT
    cursor: int | None = None
    start_interval: datetime | None = None
    end_interval: datetime | None = None
    bucket_width_minutes: int | None = None
    calendar_granularity: CalendarGranularity | None = None
    with_average: bool = False

    def __post_init__(self) -> None:
        if not MIN_LIMIT <= self.limit <= MAX_LIMIT:
            raise InvalidQueryError(f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}")
        if self.bucket_width_minutes is not None and not (
            MIN_BUCKET_WIDTH_MINUTES <= self.bucket_width_minutes <= MAX_BUCKET_WIDTH_MINUTES
        ):
            raise InvalidQueryError(
                f"bucket_width_minutes must be between {MIN_BUCKET_WIDTH_MINUTES} "
                f"and {MAX_BUCKET_WIDTH_MINUTES}"
            )
        if self.bucket_width_minutes is not None and self.calendar_granularity is not None:
            raise InvalidQueryError(
                "bucket_width_minutes and calendar_granularity are mutually exclusive"
            )
        if (
            self.start_interval is not None
            and self.end_interval is not None
            and self.start_interval > self.end_interval
        ):
            raise InvalidQueryError("start_interval must not be after end_interval")


@dataclass(frozen=True)
class ChartPoint:
    """One plotted point; ``count`` is only set for calendar buckets."""

    time: datetime
    value: float
    device_id: str
    count: int | None = None


@dataclass(frozen=True)
class ResultPage:
    chart_data: list[ChartPoint]
    next_cursor: Cursor | None = None

    @property
    def state(self) -> PaginationState:
        return PaginationState.after_page(self.next_cursor)


class _Collapser(Protocol):
    def bucket_of(self, row: SampleRow) -> datetime: ...

    def collapse(self, rows: Sequence[SampleRow]) -> list[ChartPoint]: ...


@dataclass(frozen=True)
class _Resample:
    width_minutes: int

    def bucket_of(self, row: SampleRow) -> datetime:
        return bucket_start(row.timestamp, self.width_minutes)

    def collapse(self, rows: Sequence[SampleRow]) -> list[ChartPoint]:
        return [
            ChartPoint(time=p.timestamp, value=float(p.value), device_id=p.device_id)
            for p in resample(rows, self.width_minutes)
        ]


@dataclass(frozen=True)
class _Aggregate:
    granularity: CalendarGranularity
    with_average: bool

    def bucket_of(self, row: SampleRow) -> datetime:
        return truncate(row.timestamp, self.granularity)

    def collapse(self, rows: Sequence[SampleRow]) -> list[ChartPoint]:
        return [
            ChartPoint(
                time=p.timestamp,
                value=p.avg_value if self.with_average else float(p.latest_value),
                device_id=p.device_id,
                count=p.count,
            )
            for p in aggregate(rows, self.granularity)
        ]


def _collapser_for(window: QueryWindow) -> _Collapser | None:
    if window.calendar_granularity is not None:
        return _Aggregate(window.calendar_granularity, window.with_average)
    if window.bucket_width_minutes is not None:
        return _Resample(window.bucket_width_minutes)
    return None


def _raw_point(row: EnergyMeasurement) -> ChartPoint:
    return ChartPoint(time=row.timestamp, value=float(row.value), device_id=row.device_id)


async def _resolve_cursor(store: MeasurementStore, window: QueryWindow) -> KeysetPosition | None:
    if window.cursor is None:
        return None
    position = await store.position_of(window.cursor, window.device_id)
    if position is None:
        raise InvalidCursorError(window.cursor)
    return position


async def _fetch(
    store: MeasurementStore,
    window: QueryWindow,
    after: KeysetPosition | None,
    *,
    inclusive: bool,
    limit: int,
) -> list[EnergyMeasurement]:
    rows = await store.fetch_window(
        device_id=window.device_id,
        start=window.start_interval,
        end=window.end_interval,
        after=after,
        inclusive=inclusive,
        limit=limit,
    )
    if len(rows) > limit:
        raise InternalInvariantError(f"Store returned {len(rows)} rows for a limit of {limit}")
    return rows


def _bucket_boundary(rows: Sequence[SampleRow], collapser: _Collapser, limit: int) -> int | None:
    """Index of the first row of bucket number ``limit + 1``, if read yet."""
    seen = 0
    previous: datetime | None = None
    for index, row in enumerate(rows):
        bucket = collapser.bucket_of(row)
        if bucket != previous:
            seen += 1
            previous = bucket
            if seen > limit:
                return index
    return None


async def _fill_bucket_page(
    store: MeasurementStore,
    window: QueryWindow,
    collapser: _Collapser,
    after: KeysetPosition | None,
) -> tuple[list[ChartPoint], Cursor | None]:
    batch_size = max(window.limit + 1, _FILL_BATCH_SIZE)
    rows: list[EnergyMeasurement] = []
    position, inclusive = after, True
    while True:
        batch = await _fetch(store, window, position, inclusive=inclusive, limit=batch_size)
        rows.extend(batch)
        boundary = _bucket_boundary(rows, collapser, window.limit)
        if boundary is not None:
            return collapser.collapse(rows[:boundary]), Cursor.from_row(rows[boundary])
        if len(batch) < batch_size:
            return collapser.collapse(rows), None
        position, inclusive = KeysetPosition.of(batch[-1]), False


async def get_all_measurements(
    store: MeasurementStore,
    window: QueryWindow,
    overflow_policy: OverflowPolicy = OverflowPolicy.RAW,
) -> ResultPage:
    """Serve one page of a device's measurements.

    Args:
        store: Measurement store to read from.
        window: Filter, page size, cursor and collapse mode.
        overflow_policy: Page boundary rule for collapsed queries.

    Returns:
        ResultPage: Points sorted by time ascending plus the next cursor,
            which is None on the last page. No matching rows yield an
            empty page.

    Raises:
        InvalidCursorError: If the cursor does not resolve to a row of
            the requested device.
    """
    after = await _resolve_cursor(store, window)
    collapser = _collapser_for(window)

    if collapser is not None and overflow_policy is OverflowPolicy.BUCKET:
        points, next_cursor = await _fill_bucket_page(store, window, collapser, after)
    else:
        rows = await _fetch(store, window, after, inclusive=True, limit=window.limit + 1)
        page_rows, next_cursor = split_overflow(rows, window.limit)
        if collapser is None:
            points = [_raw_point(row) for row in page_rows]
        else:
            points = collapser.collapse(rows)[: window.limit]

    page = ResultPage(
        chart_data=sorted(points, key=lambda p: p.time),
        next_cursor=next_cursor,
    )
    logger.debug(
        "Served %d points for device %s (%s -> %s)",
        len(page.chart_data),
        window.device_id,
        PaginationState.before_request(window.cursor).value,
        page.state.value,
    )
    return page


async def get_time_interval(store: MeasurementStore) -> tuple[datetime, datetime]:
    """Return the earliest and latest stored timestamps.

    Raises:
        EmptyStoreError: If the store holds no measurements.
    """
    interval = await store.time_interval()
    if interval is None:
        raise EmptyStoreError()
    return interval


async def get_latest(store: MeasurementStore) -> EnergyMeasurement | None:
    return await store.latest()
