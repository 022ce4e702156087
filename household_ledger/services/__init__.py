"""Services package."""

from household_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryAuditStorage,
    InMemoryRowStore,
    InvalidRangeError,
    NotFoundError,
    RowStoreInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStore",
    "InMemoryAuditStorage",
    "InMemoryRowStore",
    "InvalidRangeError",
    "NotFoundError",
    "RowStoreInterface",
    "StorageError",
]
