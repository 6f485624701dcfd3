"""
Unit tests for the fixed-width time-bucket resampler (STORY-009).

CHANGELOG:
- 2026-10-08: Initial creation (STORY-009)
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from energy_explorer.services.resampling import (
    bucket_start,
    from_epoch_millis,
    resample,
    to_epoch_millis,
)
from tests.conftest import BASE_TS, OTHER_DEVICE_ID, make_row


class TestBucketStart:
    """Rounding to the nearest bucket boundary, half up."""

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [(0, 0), (5, 0), (7, 0), (7.5, 15), (8, 15), (20, 15), (22.5, 30), (44, 45)],
    )
    def test_rounds_to_nearest_quarter_hour(self, minutes: float, expected: int) -> None:
        ts = BASE_TS + timedelta(minutes=minutes)
        assert bucket_start(ts, 15) == BASE_TS + timedelta(minutes=expected)

    def test_wider_bucket(self) -> None:
        ts = BASE_TS + timedelta(minutes=89)
        assert bucket_start(ts, 60) == BASE_TS + timedelta(minutes=60)

    def test_epoch_millis_round_trip(self) -> None:
        ts = datetime(2023, 2, 1, 12, 30, tzinfo=UTC)
        assert to_epoch_millis(ts) == 1675254600000
        assert from_epoch_millis(1675254600000) == ts


class TestResample:
    """Grouping and latest-wins conflict resolution."""

    def test_worked_example(self) -> None:
        """Rows at 00:00, 00:05, 00:20 with 15 minute buckets."""
        rows = [make_row(1, 0, "1.0"), make_row(2, 5, "2.0"), make_row(3, 20, "3.0")]
        points = resample(rows, 15)
        assert [(p.timestamp, p.value) for p in points] == [
            (BASE_TS, Decimal("2.0")),
            (BASE_TS + timedelta(minutes=15), Decimal("3.0")),
        ]

    def test_latest_original_timestamp_wins_regardless_of_input_order(self) -> None:
        later = make_row(1, 6, "9.0")
        earlier = make_row(2, 1, "4.0")
        points = resample([later, earlier], 15)
        assert len(points) == 1
        assert points[0].value == Decimal("9.0")
        assert points[0].id == 1

    def test_equal_timestamps_fall_back_to_greater_id(self) -> None:
        rows = [make_row(5, 3, "1.0"), make_row(9, 3, "2.0")]
        assert resample(rows, 15)[0].value == Decimal("2.0")

    def test_output_is_ordered_by_bucket(self) -> None:
        rows = [make_row(3, 61), make_row(1, 0), make_row(2, 31)]
        points = resample(rows, 30)
        assert [p.timestamp for p in points] == [
            BASE_TS,
            BASE_TS + timedelta(minutes=30),
            BASE_TS + timedelta(minutes=60),
        ]

    def test_devices_are_bucketed_separately(self) -> None:
        rows = [make_row(1, 0, "1"), make_row(2, 1, "2", device_id=OTHER_DEVICE_ID)]
        points = resample(rows, 15)
        assert len(points) == 2
        assert {p.device_id for p in points} == {rows[0].device_id, OTHER_DEVICE_ID}

    def test_resampling_is_idempotent(self) -> None:
        rows = [make_row(i, minutes, str(i)) for i, minutes in enumerate(
            [0, 4, 9, 14, 16, 29, 31, 44, 58, 61, 75, 89], start=1,
        )]
        once = resample(rows, 15)
        assert resample(once, 15) == once

    def test_empty_input(self) -> None:
        assert resample([], 15) == []

    def test_non_positive_width_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            resample([make_row(1, 0)], 0)
