"""
Measurement store: the narrow read/insert contract over PostgreSQL.

``MeasurementStore`` is the boundary the import guard and the query engine
depend on; ``SqlMeasurementStore`` implements it on an AsyncSession.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-005)
- 2026-10-06: Compound (timestamp, id) keyset bound (STORY-007)
- 2026-10-20: Empty batches no longer claim the import marker (STORY-012)
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from sqlalchemy import BigInteger, DateTime, func, insert, literal, or_, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from energy_explorer.db.models import EnergyMeasurement, ImportMarker, ImportState
from energy_explorer.errors import AlreadyImportedError
from energy_explorer.services.pagination import KeysetPosition
from energy_explorer.services.validation import MeasurementDraft

logger = logging.getLogger(__name__)

_MARKER_ID = 1


class MeasurementStore(Protocol):
    async def import_state(self) -> ImportState: ...

    async def insert_batch_if_empty(self, drafts: Sequence[MeasurementDraft]) -> int: ...

    async def position_of(self, row_id: int, device_id: str) -> KeysetPosition | None: ...

    async def fetch_window(
        self,
        *,
        device_id: str,
        start: datetime | None,
        end: datetime | None,
        after: KeysetPosition | None,
        inclusive: bool,
        limit: int,
    ) -> list[EnergyMeasurement]: ...

    async def latest(self) -> EnergyMeasurement | None: ...

    async def time_interval(self) -> tuple[datetime, datetime] | None: ...


class SqlMeasurementStore:
    """MeasurementStore backed by the energy_measurements table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def import_state(self) -> ImportState:
        """Report whether the store was already seeded.

        Measurement rows without a marker (seeded by other means) also
        count as imported.
        """
        stmt = select(
            or_(
                select(ImportMarker.id).exists(),
                select(EnergyMeasurement.id).exists(),
            )
        )
        result = await self._session.execute(stmt)
        return ImportState.IMPORTED if result.scalar() else ImportState.NOT_IMPORTED

    async def insert_batch_if_empty(self, drafts: Sequence[MeasurementDraft]) -> int:
        """Claim the import marker and insert all drafts in one transaction.

        An empty batch writes nothing and returns 0.

        The marker's primary key makes concurrent imports mutually
        exclusive: the loser's ``ON CONFLICT DO NOTHING`` affects no row.

        Args:
            drafts: Validated rows of the import batch.

        Returns:
            int: Number of inserted measurements.

        Raises:
            AlreadyImportedError: If another import already claimed the marker.
        """
        if not drafts:
            logger.info("Empty import batch, import marker left unclaimed")
            return 0

        claim = (
            pg_insert(ImportMarker)
            .values(
                id=_MARKER_ID,
                status=ImportState.IMPORTED.value,
                row_count=len(drafts),
            )
            .on_conflict_do_nothing(index_elements=["id"])
        )
        result = await self._session.execute(claim)
        if result.rowcount == 0:
            await self._session.rollback()
            raise AlreadyImportedError()

        try:
            await self._session.execute(
                insert(EnergyMeasurement),
                [draft.as_row() for draft in drafts],
            )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        return len(drafts)

    async def position_of(self, row_id: int, device_id: str) -> KeysetPosition | None:
        """Resolve a cursor id to its (timestamp, id) position."""
        stmt = select(EnergyMeasurement.timestamp).where(
            EnergyMeasurement.id == row_id,
            EnergyMeasurement.device_id == device_id,
        )
        result = await self._session.execute(stmt)
        timestamp = result.scalar_one_or_none()
        if timestamp is None:
            return None
        return KeysetPosition(timestamp=timestamp, row_id=row_id)

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
        """Fetch up to ``limit`` rows of a device in (timestamp, id) order.

        Args:
            device_id: Device to read.
            start: Inclusive lower timestamp bound, if any.
            end: Inclusive upper timestamp bound, if any.
            after: Keyset position to resume from, if any.
            inclusive: Whether the row at ``after`` itself is included.
            limit: Maximum number of rows.
        """
        stmt = select(EnergyMeasurement).where(EnergyMeasurement.device_id == device_id)
        if start is not None:
            stmt = stmt.where(EnergyMeasurement.timestamp >= start)
        if end is not None:
            stmt = stmt.where(EnergyMeasurement.timestamp <= end)
        if after is not None:
            key = tuple_(EnergyMeasurement.timestamp, EnergyMeasurement.id)
            bound = tuple_(
                literal(after.timestamp, DateTime(timezone=True)),
                literal(after.row_id, BigInteger),
            )
            stmt = stmt.where(key >= bound if inclusive else key > bound)
        stmt = stmt.order_by(EnergyMeasurement.timestamp, EnergyMeasurement.id).limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def latest(self) -> EnergyMeasurement | None:
        """Return the row with the greatest (timestamp, id), if any."""
        stmt = (
            select(EnergyMeasurement)
            .order_by(EnergyMeasurement.timestamp.desc(), EnergyMeasurement.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def time_interval(self) -> tuple[datetime, datetime] | None:
        """Return the (min, max) stored timestamps, or None when empty."""
        stmt = select(
            func.min(EnergyMeasurement.timestamp),
            func.max(EnergyMeasurement.timestamp),
        )
        result = await self._session.execute(stmt)
        low, high = result.one()
        if low is None or high is None:
            return None
        return low, high
