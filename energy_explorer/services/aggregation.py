"""
Calendar-interval aggregation of measurements.

Truncates each row's timestamp (in UTC) to the start of its hour, day,
ISO week (Monday) or month and summarises each (bucket, device) group with
its mean, its size and its latest value.

CHANGELOG:
- 2026-10-08: Initial creation (STORY-009)
- 2026-10-10: Keep the latest value per bucket for non-averaged charts (STORY-011)
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum

from energy_explorer.services.resampling import SampleRow


class CalendarGranularity(str, Enum):
    """Calendar units a query can aggregate by."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class AggregatedPoint:
    """Summary of one calendar bucket of one device.

    Attributes:
        id: Smallest row id in the bucket (ordering tie-break).
        timestamp: Start of the calendar bucket (UTC).
        device_id: Device of the bucket.
        avg_value: Arithmetic mean of the bucket's values, as a float.
        count: Number of rows in the bucket.
        latest_value: Value of the bucket's latest row.
    """

    id: int
    timestamp: datetime
    device_id: str
    avg_value: float
    count: int
    latest_value: Decimal


def truncate(ts: datetime, granularity: CalendarGranularity) -> datetime:
    """Round *ts* down to the start of its calendar unit, in UTC."""
    ts = ts.astimezone(UTC)
    hour_start = ts.replace(minute=0, second=0, microsecond=0)
    if granularity is CalendarGranularity.HOURLY:
        return hour_start
    day_start = hour_start.replace(hour=0)
    if granularity is CalendarGranularity.DAILY:
        return day_start
    if granularity is CalendarGranularity.WEEKLY:
        return day_start - timedelta(days=day_start.weekday())
    return day_start.replace(day=1)


@dataclass
class _Bucket:
    first_id: int
    total: Decimal
    count: int
    latest: SampleRow


def aggregate(
    rows: Iterable[SampleRow],
    granularity: CalendarGranularity,
) -> list[AggregatedPoint]:
    """Group rows by (calendar bucket, device) and summarise each group.

    Returns:
        Points ordered by bucket start, tie-broken by smallest row id.
    """
    buckets: dict[tuple[datetime, str], _Bucket] = {}
    for row in rows:
        key = (truncate(row.timestamp, granularity), row.device_id)
        bucket = buckets.get(key)
        if bucket is None:
            buckets[key] = _Bucket(first_id=row.id, total=row.value, count=1, latest=row)
            continue
        bucket.first_id = min(bucket.first_id, row.id)
        bucket.total += row.value
        bucket.count += 1
        if (row.timestamp, row.id) > (bucket.latest.timestamp, bucket.latest.id):
            bucket.latest = row

    points = [
        AggregatedPoint(
            id=bucket.first_id,
            timestamp=start,
            device_id=device_id,
            avg_value=float(bucket.total) / bucket.count,
            count=bucket.count,
            latest_value=bucket.latest.value,
        )
        for (start, device_id), bucket in buckets.items()
    ]
    points.sort(key=lambda p: (p.timestamp, p.id))
    return points
