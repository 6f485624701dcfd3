"""
Tests for the SQLAlchemy models.

Validates table names, column types, the keyset index and the single-row
import marker constraint.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-05: ImportMarker tests (STORY-005)
"""

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Numeric, Text, inspect

from energy_explorer.db.models import Base, EnergyMeasurement, ImportMarker, ImportState
from tests.conftest import make_row


class TestEnergyMeasurementColumns:
    def test_table_name(self) -> None:
        assert EnergyMeasurement.__tablename__ == "energy_measurements"

    def test_columns(self) -> None:
        mapper = inspect(EnergyMeasurement)
        column_names = {col.key for col in mapper.column_attrs}
        assert column_names == {
            "id",
            "timestamp",
            "device_id",
            "register_code",
            "value",
            "created_at",
        }

    def test_column_types(self) -> None:
        table = EnergyMeasurement.__table__
        assert isinstance(table.c.id.type, BigInteger)
        assert isinstance(table.c.timestamp.type, DateTime)
        assert table.c.timestamp.type.timezone is True
        assert isinstance(table.c.device_id.type, Text)
        assert isinstance(table.c.value.type, Numeric)

    def test_id_is_the_primary_key(self) -> None:
        pk = [col.name for col in EnergyMeasurement.__table__.primary_key.columns]
        assert pk == ["id"]

    def test_keyset_index(self) -> None:
        indexes = {ix.name: ix for ix in EnergyMeasurement.__table__.indexes}
        index = indexes["ix_energy_measurements_device_ts_id"]
        assert [col.name for col in index.columns] == ["device_id", "timestamp", "id"]

    def test_not_nullable(self) -> None:
        table = EnergyMeasurement.__table__
        for name in ("timestamp", "device_id", "register_code", "value"):
            assert table.c[name].nullable is False

    def test_repr(self) -> None:
        assert "id=7" in repr(make_row(7, 0))


class TestImportMarker:
    def test_table_name(self) -> None:
        assert ImportMarker.__tablename__ == "import_state"

    def test_single_row_check(self) -> None:
        checks = [
            c for c in ImportMarker.__table__.constraints if isinstance(c, CheckConstraint)
        ]
        assert [str(c.sqltext) for c in checks] == ["id = 1"]

    def test_import_state_values(self) -> None:
        assert ImportState.IMPORTED.value == "imported"
        assert ImportState.NOT_IMPORTED.value == "not_imported"


def test_metadata_holds_both_tables() -> None:
    assert set(Base.metadata.tables) == {"energy_measurements", "import_state"}
