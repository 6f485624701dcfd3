"""
One-time bulk import of the upstream measurement dumps.

The import is all-or-nothing: the guard refuses to run once the store was
seeded, any fetch or validation failure aborts before the insert, and the
insert itself claims the single-row import marker in the same transaction
so two concurrent imports cannot both commit.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-005)
- 2026-10-07: Pass the register code policy through (STORY-008)
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from energy_explorer.db.models import EnergyMeasurement, ImportState
from energy_explorer.db.store import MeasurementStore
from energy_explorer.errors import AlreadyImportedError
from energy_explorer.services.validation import RegisterCodePolicy, map_records

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    async def fetch_records(self) -> list[Any]: ...


@dataclass(frozen=True)
class ImportResult:
    inserted_count: int
    latest_measurement: EnergyMeasurement | None


async def import_data(
    store: MeasurementStore,
    source: RecordSource,
    policy: RegisterCodePolicy = RegisterCodePolicy.STRICT,
) -> ImportResult:
    """Seed the store from the upstream dumps, at most once.

    Args:
        store: Measurement store to seed.
        source: Provider of the raw records.
        policy: Register code selection rule used while mapping.

    Returns:
        ImportResult: Inserted row count and the latest stored measurement.

    Raises:
        AlreadyImportedError: If the store was already seeded, checked
            before fetching and again atomically at insert time.
        UpstreamFetchError: If any dump is unreachable or malformed.
        RecordValidationError: If any record is invalid.
    """
    if await store.import_state() is ImportState.IMPORTED:
        raise AlreadyImportedError()

    records = await source.fetch_records()
    drafts = map_records(records, policy)
    logger.info("Validated %d records, inserting", len(drafts))

    inserted = await store.insert_batch_if_empty(drafts)
    latest = await store.latest()
    logger.info("Import finished: %d measurements inserted", inserted)
    return ImportResult(inserted_count=inserted, latest_measurement=latest)
