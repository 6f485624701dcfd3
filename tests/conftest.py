"""
Shared test fixtures and row builders.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)
- 2026-10-05: Add fake store fixture and row builder (STORY-005)
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from energy_explorer.db.models import EnergyMeasurement
from tests.fakes import FakeMeasurementStore

DEVICE_ID = "95ce3367-cbce-4a4d-bbe3-da082831d7bd"
OTHER_DEVICE_ID = "1db7649e-9342-4e04-97c7-f0ebb88ed1f8"
BASE_TS = datetime(2023, 2, 1, tzinfo=UTC)


def make_row(
    row_id: int,
    minutes: float,
    value: str | int | float = "1.0",
    device_id: str = DEVICE_ID,
    register_code: str = "0100011D00FF",
) -> EnergyMeasurement:
    """Build a stored measurement ``minutes`` after BASE_TS."""
    return EnergyMeasurement(
        id=row_id,
        timestamp=BASE_TS + timedelta(minutes=minutes),
        device_id=device_id,
        register_code=register_code,
        value=Decimal(str(value)),
    )


def raw_record(
    minutes: int = 0,
    value: object = 0.0125,
    device_id: str = DEVICE_ID,
    register_code: str = "0100011D00FF",
) -> dict:
    """Build a valid raw upstream record."""
    ts = BASE_TS + timedelta(minutes=minutes)
    return {
        "measurement": "energy",
        "timestamp": ts.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
        "tags": {"muid": device_id, "quality": "measured"},
        register_code: value,
    }


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure required env vars are set for every test."""
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@localhost/db")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture()
def store() -> FakeMeasurementStore:
    """Empty in-memory measurement store."""
    return FakeMeasurementStore()
