"""
Database package for SQLAlchemy models, session management and the store.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-05: Export the measurement store (STORY-005)
- 2026-10-20: Export only the engine lifecycle functions (STORY-012)
"""

from energy_explorer.db.models import Base, EnergyMeasurement, ImportMarker, ImportState
from energy_explorer.db.session import dispose_engine, get_async_session, init_engine
from energy_explorer.db.store import MeasurementStore, SqlMeasurementStore

__all__ = [
    "Base",
    "EnergyMeasurement",
    "ImportMarker",
    "ImportState",
    "MeasurementStore",
    "SqlMeasurementStore",
    "dispose_engine",
    "get_async_session",
    "init_engine",
]
