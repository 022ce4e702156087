"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory store backs tests.
"""

from household_ledger.services.storage.interface import (
    DEFAULT_RANGE,
    AuditStorageInterface,
    ConnectionError,
    InvalidRangeError,
    NotFoundError,
    RowStoreInterface,
    StorageError,
)
from household_ledger.services.storage.memory import (
    LEDGER_HEADER,
    InMemoryAuditStorage,
    InMemoryRowStore,
)
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
)
from household_ledger.services.storage.ranges import range_start_row, row_range

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RowStoreInterface",
    "DEFAULT_RANGE",
    # Exceptions
    "ConnectionError",
    "InvalidRangeError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "LEDGER_HEADER",
    "InMemoryAuditStorage",
    "InMemoryRowStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
    # Range helpers
    "range_start_row",
    "row_range",
]
