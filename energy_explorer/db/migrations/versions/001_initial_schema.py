"""
Initial schema: energy_measurements and the import_state marker table.

Creates the append-only energy_measurements table with an identity
surrogate key and the (device_id, timestamp, id) index used by keyset
range scans, plus the single-row import_state table whose primary key
makes the bulk import single-writer.

Revision ID: 001
Revises: None
Create Date: 2026-10-02

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-05: Add import_state (STORY-005)
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create energy_measurements, its keyset index and import_state."""
    op.create_table(
        "energy_measurements",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("device_id", sa.Text(), nullable=False),
        sa.Column("register_code", sa.Text(), nullable=False),
        sa.Column("value", sa.Numeric(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_energy_measurements_device_ts_id",
        "energy_measurements",
        ["device_id", "timestamp", "id"],
    )

    op.create_table(
        "import_state",
        sa.Column("id", sa.SmallInteger(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column(
            "imported_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("id = 1", name="ck_import_state_single_row"),
    )


def downgrade() -> None:
    """Drop import_state and energy_measurements."""
    op.drop_table("import_state")
    op.drop_index("ix_energy_measurements_device_ts_id", table_name="energy_measurements")
    op.drop_table("energy_measurements")
