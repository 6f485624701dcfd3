"""
Keyset cursor and page-splitting helpers.

A cursor wraps the id of the first row that did not fit on a page (the
"overflow" row). The next request resolves that id to the row's
(timestamp, id) position and resumes at it, so pages follow the same
(timestamp ASC, id ASC) total order the store sorts by.

CHANGELOG:
- 2026-10-06: Initial creation (STORY-007)
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, TypeVar

from energy_explorer.errors import InternalInvariantError


class KeyedRow(Protocol):
    """Anything carrying the (timestamp, id) ordering key."""

    id: int
    timestamp: datetime


RowT = TypeVar("RowT", bound=KeyedRow)


@dataclass(frozen=True)
class KeysetPosition:
    """Position of a stored row in the (timestamp, id) order."""

    timestamp: datetime
    row_id: int

    @classmethod
    def of(cls, row: KeyedRow) -> "KeysetPosition":
        return cls(timestamp=row.timestamp, row_id=row.id)


@dataclass(frozen=True)
class Cursor:
    """Opaque pagination token: the id of the overflow row."""

    row_id: int

    @classmethod
    def from_row(cls, row: KeyedRow) -> "Cursor":
        """Build a cursor from a row that was actually fetched."""
        if row.id is None:
            raise InternalInvariantError("Overflow row has no id")
        return cls(row_id=row.id)

    def encode(self) -> int:
        return self.row_id


class PaginationState(Enum):
    """Where a client is in a paginated read."""

    INITIAL = "initial"
    MID_STREAM = "mid_stream"
    TERMINAL = "terminal"

    @classmethod
    def after_page(cls, next_cursor: Cursor | None) -> "PaginationState":
        """State reached once a page has been served."""
        return cls.TERMINAL if next_cursor is None else cls.MID_STREAM

    @classmethod
    def before_request(cls, cursor: int | None) -> "PaginationState":
        """State a request starts from."""
        return cls.INITIAL if cursor is None else cls.MID_STREAM


def split_overflow(rows: Sequence[RowT], limit: int) -> tuple[list[RowT], Cursor | None]:
    """Split a ``limit + 1`` fetch into the page and the next cursor.

    Args:
        rows: Rows fetched with ``LIMIT limit + 1`` in keyset order.
        limit: Page size requested by the client.

    Returns:
        Tuple of (page rows, cursor of the overflow row or None when the
        fetch did not overflow).

    Raises:
        InternalInvariantError: If the store returned more than
            ``limit + 1`` rows.
    """
    if len(rows) > limit + 1:
        raise InternalInvariantError(
            f"Store returned {len(rows)} rows for a limit of {limit}"
        )
    if len(rows) <= limit:
        return list(rows), None
    return list(rows[:limit]), Cursor.from_row(rows[limit])
