"""
Row Store Contract

The engine, the service and the tests only ever talk to these ABCs;
Google Sheets and the in-memory list are interchangeable behind them.

The row store speaks the sheet's own vocabulary:
read everything, append, overwrite a range, delete a range. There is no
unique key, no transaction and no compare-and-swap. Anything smarter
(keyed updates, deletes by key) lives in the upsert engine.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.ledger import CompositeKey

DEFAULT_RANGE = "A:E"


class RowStoreInterface(ABC):
    """
    Abstract interface for the ledger row store.

    Row indices are 0-based over the whole table, header included.
    All methods surface transport problems as StorageError; none of
    them retries on behalf of the caller unless the implementation
    says so.
    """

    @abstractmethod
    async def get_all_rows(self, range_spec: str = DEFAULT_RANGE) -> list[list]:
        """
        Read every row in the range.

        Returns:
            Ordered rows; rows[0] is the header
        """
        pass

    @abstractmethod
    async def append_rows(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        """
        Append rows to the end of the table.

        Returns:
            Implementation-specific write summary
        """
        pass

    @abstractmethod
    async def update_range(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        """
        Overwrite a contiguous range, e.g. "A7:E7" for one row.

        Raises:
            InvalidRangeError: If the range does not name a start row
        """
        pass

    @abstractmethod
    async def delete_row_range(self, start_index: int, end_index: int) -> dict:
        """
        Remove rows [start_index, end_index); later rows shift up.

        Raises:
            InvalidRangeError: If the indices are out of bounds
        """
        pass


class AuditStorageInterface(ABC):
    """Append-only sink for audit events, readable by correlation ID."""

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Persist one event. False (or an exception) means it was lost."""
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """A store read or write failed."""


class NotFoundError(StorageError):
    """No row matches the composite key."""

    def __init__(self, key: CompositeKey, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Row not found: {key.period}, {key.category}, {key.name}")


class ConnectionError(StorageError):
    """Credentials or spreadsheet unreachable."""


class InvalidRangeError(StorageError):
    """A range spec or row index the store cannot address."""
    pass
