"""
Domain exceptions raised by the import pipeline and the query engine.

Services raise these; the API layer translates them into HTTP responses.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-002)
- 2026-10-06: Add InvalidCursorError and InvalidQueryError (STORY-007)
"""


class EnergyExplorerError(Exception):
    """Base class for all domain errors."""


class RecordValidationError(EnergyExplorerError):
    """A raw upstream record failed validation.

    Attributes:
        index: Position of the offending record in the import batch.
        reason: Human readable description of the first problem found.
    """

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Record {index} is invalid: {reason}")


class UpstreamFetchError(EnergyExplorerError):
    """A measurement dump could not be fetched or has the wrong shape."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class AlreadyImportedError(EnergyExplorerError):
    """The one-time import already happened."""

    def __init__(self) -> None:
        super().__init__("Data already imported")


class EmptyStoreError(EnergyExplorerError):
    """The store holds no measurements."""

    def __init__(self) -> None:
        super().__init__("No measurements stored")


class InvalidCursorError(EnergyExplorerError):
    """The cursor does not point at a stored row of the requested device."""

    def __init__(self, cursor: int) -> None:
        self.cursor = cursor
        super().__init__(f"Unknown cursor: {cursor}")


class InvalidQueryError(EnergyExplorerError):
    """The query window parameters are inconsistent."""


class InternalInvariantError(EnergyExplorerError):
    """An internal state that should be impossible was observed."""
