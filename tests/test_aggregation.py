"""
Unit tests for calendar-interval aggregation (STORY-009).

CHANGELOG:
- 2026-10-08: Initial creation (STORY-009)
"""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from energy_explorer.services.aggregation import CalendarGranularity, aggregate, truncate
from tests.conftest import BASE_TS, OTHER_DEVICE_ID, make_row

# Thursday 2023-03-16 14:47:31.5 UTC
_TS = datetime(2023, 3, 16, 14, 47, 31, 500000, tzinfo=UTC)


class TestTruncate:
    @pytest.mark.parametrize(
        ("granularity", "expected"),
        [
            (CalendarGranularity.HOURLY, datetime(2023, 3, 16, 14, tzinfo=UTC)),
            (CalendarGranularity.DAILY, datetime(2023, 3, 16, tzinfo=UTC)),
            (CalendarGranularity.WEEKLY, datetime(2023, 3, 13, tzinfo=UTC)),
            (CalendarGranularity.MONTHLY, datetime(2023, 3, 1, tzinfo=UTC)),
        ],
    )
    def test_truncates_to_unit_start(
        self, granularity: CalendarGranularity, expected: datetime,
    ) -> None:
        assert truncate(_TS, granularity) == expected

    def test_truncation_happens_in_utc(self) -> None:
        """00:30 at +02:00 is 22:30 UTC on the previous day."""
        local = datetime(2023, 3, 16, 0, 30, tzinfo=timezone(timedelta(hours=2)))
        assert truncate(local, CalendarGranularity.DAILY) == datetime(2023, 3, 15, tzinfo=UTC)

    def test_week_starts_on_monday(self) -> None:
        sunday = datetime(2023, 3, 19, 23, 59, tzinfo=UTC)
        assert truncate(sunday, CalendarGranularity.WEEKLY) == datetime(2023, 3, 13, tzinfo=UTC)


class TestAggregate:
    """Mean, count and latest value per bucket."""

    def test_mean_and_count_per_hour(self) -> None:
        rows = [
            make_row(1, 0, "1.0"),
            make_row(2, 15, "2.0"),
            make_row(3, 45, "4.5"),
            make_row(4, 60, "10"),
        ]
        points = aggregate(rows, CalendarGranularity.HOURLY)

        assert len(points) == 2
        first, second = points
        assert first.timestamp == BASE_TS
        assert first.avg_value == pytest.approx(2.5)
        assert first.count == 3
        assert first.latest_value == Decimal("4.5")
        assert second.timestamp == BASE_TS + timedelta(hours=1)
        assert second.avg_value == pytest.approx(10.0)
        assert second.count == 1

    def test_every_bucket_matches_its_raw_rows(self) -> None:
        rows = [make_row(i, i * 37, str(i * 0.25)) for i in range(1, 60)]
        points = aggregate(rows, CalendarGranularity.HOURLY)

        for point in points:
            members = [
                r for r in rows
                if truncate(r.timestamp, CalendarGranularity.HOURLY) == point.timestamp
            ]
            assert point.count == len(members)
            assert point.avg_value == pytest.approx(
                sum(float(r.value) for r in members) / len(members)
            )
        assert sum(p.count for p in points) == len(rows)

    def test_latest_value_ignores_input_order(self) -> None:
        rows = [make_row(2, 50, "7"), make_row(1, 10, "3")]
        (point,) = aggregate(rows, CalendarGranularity.DAILY)
        assert point.latest_value == Decimal("7")
        assert point.id == 1

    def test_groups_by_device(self) -> None:
        rows = [make_row(1, 0, "1"), make_row(2, 0, "3", device_id=OTHER_DEVICE_ID)]
        points = aggregate(rows, CalendarGranularity.MONTHLY)
        assert len(points) == 2
        assert [p.id for p in points] == [1, 2]

    def test_output_ordered_by_bucket_then_id(self) -> None:
        rows = [
            make_row(5, 60 * 24 * 3, "1"),
            make_row(3, 0, "1", device_id=OTHER_DEVICE_ID),
            make_row(1, 30, "1"),
        ]
        points = aggregate(rows, CalendarGranularity.DAILY)
        assert [p.id for p in points] == [1, 3, 5]

    def test_empty_input(self) -> None:
        assert aggregate([], CalendarGranularity.WEEKLY) == []
