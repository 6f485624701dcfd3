"""
Validation and mapping of raw upstream measurement records.

Each raw record is decoded strictly into either an ``Accepted`` draft row or
a ``Rejected`` reason; there is no best-effort partial result. The mapping
is pure: no side effects, no I/O, no clock access.

Raw record shape::

    {
        "measurement": "energy",
        "timestamp": "2023-02-01T00:15:00.000Z",
        "tags": {"muid": "95ce3367-...", "quality": "measured"},
        "0100011D00FF": 0.0125
    }

CHANGELOG:
- 2026-10-03: Initial creation (STORY-004)
- 2026-10-07: Explicit RegisterCodePolicy instead of implicit first match (STORY-008)
- 2026-10-20: Parse timestamps as ISO-8601 date-times only (STORY-012)
"""

import math
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    AliasChoices,
    AwareDatetime,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
)

from energy_explorer.errors import RecordValidationError

# Closed set of OBIS register codes, in selection priority order:
# active energy import (1.29.0) and active energy export (2.29.0).
REGISTER_CODES: tuple[str, ...] = ("0100011D00FF", "0100021D00FF")


class RegisterCodePolicy(str, Enum):
    """How a record with more than one register value is treated."""

    STRICT = "strict"
    FIRST_MATCH = "first_match"


# Calendar date and clock time, e.g. "2023-02-01T00:15". Rules out epoch
# seconds and week or ordinal dates that fromisoformat would also accept.
_ISO_DATETIME_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def _parse_iso_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not _ISO_DATETIME_PREFIX.match(value):
        raise ValueError("timestamp must be an ISO-8601 date-time string")
    return datetime.fromisoformat(value)


class RawTags(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    muid: StrictStr = Field(validation_alias=AliasChoices("muid", "deviceId"))
    quality: StrictStr


class RawMeasurement(BaseModel):
    model_config = ConfigDict(extra="allow")

    measurement: StrictStr
    timestamp: Annotated[AwareDatetime, BeforeValidator(_parse_iso_timestamp)]
    tags: RawTags


@dataclass(frozen=True)
class MeasurementDraft:
    """A validated row that has not been assigned an id yet."""

    timestamp: datetime
    device_id: str
    register_code: str
    value: Decimal

    def as_row(self) -> dict:
        """Column mapping for a bulk insert."""
        return {
            "timestamp": self.timestamp,
            "device_id": self.device_id,
            "register_code": self.register_code,
            "value": self.value,
        }


@dataclass(frozen=True)
class Accepted:
    draft: MeasurementDraft


@dataclass(frozen=True)
class Rejected:
    reason: str


DecodeResult = Accepted | Rejected


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "record"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def _to_decimal(value: Any) -> Decimal | None:
    """Convert a JSON number to Decimal without going through binary float.

    Returns None for anything that is not a finite number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # Bodies parsed without parse_float=Decimal; repr keeps the shortest text.
        return Decimal(repr(value)) if math.isfinite(value) else None
    return None


def decode_record(
    raw: Any,
    policy: RegisterCodePolicy = RegisterCodePolicy.STRICT,
) -> DecodeResult:
    """Decode one raw record into an accepted draft or a rejection.

    Args:
        raw: Parsed JSON value of one entry of a dump's ``data`` array.
        policy: Register code selection rule for records carrying more
            than one known register value.

    Returns:
        ``Accepted`` with the mapped draft, or ``Rejected`` with a reason.
    """
    if not isinstance(raw, dict):
        return Rejected("record must be a JSON object")

    try:
        parsed = RawMeasurement.model_validate(raw)
    except ValidationError as exc:
        return Rejected(_describe(exc))

    present = [code for code in REGISTER_CODES if raw.get(code) is not None]
    if not present:
        return Rejected(
            f"no register value present (expected one of {', '.join(REGISTER_CODES)})"
        )
    if len(present) > 1 and policy is RegisterCodePolicy.STRICT:
        return Rejected(f"more than one register value present: {', '.join(present)}")

    register_code = present[0]
    value = _to_decimal(raw[register_code])
    if value is None:
        return Rejected(f"{register_code}: value must be a finite number")

    return Accepted(
        MeasurementDraft(
            timestamp=parsed.timestamp.astimezone(UTC),
            device_id=parsed.tags.muid,
            register_code=register_code,
            value=value,
        )
    )


def map_records(
    records: list[Any],
    policy: RegisterCodePolicy = RegisterCodePolicy.STRICT,
) -> list[MeasurementDraft]:
    """Map a whole import batch, all-or-nothing.

    Raises:
        RecordValidationError: For the first record that is rejected.
    """
    drafts: list[MeasurementDraft] = []
    for index, raw in enumerate(records):
        result = decode_record(raw, policy)
        if isinstance(result, Rejected):
            raise RecordValidationError(index, result.reason)
        drafts.append(result.draft)
    return drafts
