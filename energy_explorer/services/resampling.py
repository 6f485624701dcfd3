"""
Fixed-width time-bucket resampler.

Snaps each row to the nearest multiple of the bucket width (round half up
on epoch milliseconds) and keeps one row per bucket: the one with the latest
original timestamp. Equal timestamps fall back to the greater id, i.e. the
row that comes last in keyset order.

Resampling its own output with the same width reproduces it unchanged.

CHANGELOG:
- 2026-10-08: Initial creation (STORY-009)
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Protocol

MIN_BUCKET_WIDTH_MINUTES = 15
MAX_BUCKET_WIDTH_MINUTES = 180
DEFAULT_BUCKET_WIDTH_MINUTES = 15

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


class SampleRow(Protocol):
    id: int
    timestamp: datetime
    device_id: str
    value: Decimal


@dataclass(frozen=True)
class ResampledPoint:
    """One bucket of resampled output.

    ``timestamp`` is the bucket start; ``id`` and ``value`` come from the
    row that won the bucket.
    """

    id: int
    timestamp: datetime
    device_id: str
    value: Decimal


def to_epoch_millis(ts: datetime) -> int:
    """Milliseconds since the Unix epoch, floored."""
    return (ts - _EPOCH) // _ONE_MS


def from_epoch_millis(ms: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


def bucket_start(ts: datetime, bucket_width_minutes: int) -> datetime:
    """Nearest bucket boundary to *ts*, ties rounding up."""
    width_ms = bucket_width_minutes * 60_000
    # floor(ms / width + 1/2) in integer arithmetic
    index = (2 * to_epoch_millis(ts) + width_ms) // (2 * width_ms)
    return from_epoch_millis(index * width_ms)


def resample(rows: Iterable[SampleRow], bucket_width_minutes: int) -> list[ResampledPoint]:
    """Collapse rows into fixed-width buckets, latest row wins.

    Args:
        rows: Rows of one or more devices, in any order.
        bucket_width_minutes: Bucket width in minutes.

    Returns:
        One point per (bucket start, device), ordered by bucket start.

    Raises:
        ValueError: If the width is not positive.
    """
    if bucket_width_minutes <= 0:
        raise ValueError("bucket_width_minutes must be positive")

    winners: dict[tuple[datetime, str], SampleRow] = {}
    for row in rows:
        key = (bucket_start(row.timestamp, bucket_width_minutes), row.device_id)
        current = winners.get(key)
        if current is None or (row.timestamp, row.id) > (current.timestamp, current.id):
            winners[key] = row

    points = [
        ResampledPoint(id=row.id, timestamp=start, device_id=device_id, value=row.value)
        for (start, device_id), row in winners.items()
    ]
    points.sort(key=lambda p: (p.timestamp, p.id))
    return points
