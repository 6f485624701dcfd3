"""
In-memory fake of the measurement store for service and API tests.

Implements the MeasurementStore contract with plain lists so keyset and
import-guard behaviour can be checked without PostgreSQL.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-005)
- 2026-10-06: Keyset fetch with inclusive / exclusive bound (STORY-007)
- 2026-10-20: Empty batches leave the marker unclaimed (STORY-012)
"""

from collections.abc import Sequence
from datetime import datetime

from energy_explorer.db.models import EnergyMeasurement, ImportState
from energy_explorer.errors import AlreadyImportedError
from energy_explorer.services.pagination import KeysetPosition
from energy_explorer.services.validation import MeasurementDraft


class FakeMeasurementStore:
    """List-backed MeasurementStore.

    Attributes:
        rows: Stored measurements, in insertion order.
        marker: Whether the import marker row exists.
        fetch_calls: Keyword arguments of every fetch_window call.
    """

    def __init__(self, rows: Sequence[EnergyMeasurement] = ()) -> None:
        self.rows: list[EnergyMeasurement] = list(rows)
        self.marker = False
        self.fetch_calls: list[dict] = []
        self._next_id = max((row.id for row in self.rows), default=0) + 1

    async def import_state(self) -> ImportState:
        if self.marker or self.rows:
            return ImportState.IMPORTED
        return ImportState.NOT_IMPORTED

    async def insert_batch_if_empty(self, drafts: Sequence[MeasurementDraft]) -> int:
        if not drafts:
            return 0
        if self.marker:
            raise AlreadyImportedError()
        self.marker = True
        for draft in drafts:
            self.rows.append(EnergyMeasurement(id=self._next_id, **draft.as_row()))
            self._next_id += 1
        return len(drafts)

    async def position_of(self, row_id: int, device_id: str) -> KeysetPosition | None:
        for row in self.rows:
            if row.id == row_id and row.device_id == device_id:
                return KeysetPosition.of(row)
        return None

    async def fetch_window(
        self,
        *,
        device_id: str,
        start: datetime | None,
        end: datetime | None,
        after: KeysetPosition | None,
        inclusive: bool,
        limit: int,
    ) -> list[EnergyMeasurement]:
        self.fetch_calls.append(
            {
                "device_id": device_id,
                "start": start,
                "end": end,
                "after": after,
                "inclusive": inclusive,
                "limit": limit,
            }
        )
        selected = []
        for row in sorted(self.rows, key=lambda r: (r.timestamp, r.id)):
            if row.device_id != device_id:
                continue
            if start is not None and row.timestamp < start:
                continue
            if end is not None and row.timestamp > end:
                continue
            if after is not None:
                key = (row.timestamp, row.id)
                bound = (after.timestamp, after.row_id)
                if key < bound or (key == bound and not inclusive):
                    continue
            selected.append(row)
        return selected[:limit]

    async def latest(self) -> EnergyMeasurement | None:
        if not self.rows:
            return None
        return max(self.rows, key=lambda r: (r.timestamp, r.id))

    async def time_interval(self) -> tuple[datetime, datetime] | None:
        if not self.rows:
            return None
        stamps = [row.timestamp for row in self.rows]
        return min(stamps), max(stamps)


class StaticRecordSource:
    """RecordSource returning canned records, counting calls."""

    def __init__(self, records: list, error: Exception | None = None) -> None:
        self.records = records
        self.error = error
        self.calls = 0

    async def fetch_records(self) -> list:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.records)
