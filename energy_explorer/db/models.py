"""
SQLAlchemy ORM models for the measurement store.

Defines the append-only EnergyMeasurement table and the single-row
ImportMarker table that records the one-time bulk import.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-05: Add ImportMarker for single-writer imports (STORY-005)
"""

import datetime
import enum
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Identity,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models."""

    pass


class ImportState(enum.Enum):
    """Lifecycle of the one-time bulk import."""

    NOT_IMPORTED = "not_imported"
    IMPORTED = "imported"


class EnergyMeasurement(Base):
    """One canonical meter reading. Rows are never updated or deleted.

    Attributes:
        id: Store-assigned surrogate key, used for tie-breaks and cursors.
        timestamp: Reading instant in UTC.
        device_id: Meter stream identifier (MUID).
        register_code: OBIS register the value was read from.
        value: Reading as an exact decimal.
        created_at: Insert time.
    """

    __tablename__ = "energy_measurements"
    __table_args__ = (
        Index(
            "ix_energy_measurements_device_ts_id",
            "device_id",
            "timestamp",
            "id",
        ),
    )

    id: Mapped[int] = mapped_column(
        BigInteger, Identity(always=False), primary_key=True,
    )
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    device_id: Mapped[str] = mapped_column(Text, nullable=False)
    register_code: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )

    def __repr__(self) -> str:
        """Return string representation of the EnergyMeasurement."""
        return (
            f"EnergyMeasurement(id={self.id!r}, device_id={self.device_id!r}, "
            f"timestamp={self.timestamp!r}, value={self.value!r})"
        )


class ImportMarker(Base):
    """Marker row written in the same transaction as the bulk import.

    The primary key is pinned to 1, so at most one import can ever commit.

    Attributes:
        id: Always 1.
        status: ImportState value ("imported").
        imported_at: Commit time of the import.
        row_count: Number of measurements inserted by the import.
    """

    __tablename__ = "import_state"
    __table_args__ = (CheckConstraint("id = 1", name="ck_import_state_single_row"),)

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    imported_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )
    row_count: Mapped[int] = mapped_column(Integer, nullable=False)
