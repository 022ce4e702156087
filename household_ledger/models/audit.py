"""
Audit Models for Household Ledger

Every mutation of the row log is logged for audit purposes.
This provides:
1. Traceability of every write against the sheet
2. Debugging information when an upsert hits the wrong row
3. A record of partially applied batch deletes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.ledger import CompositeKey


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Reads
    LEDGER_LOADED = "ledger_loaded"

    # Mutations
    ROW_UPDATED = "row_updated"
    ROW_DELETED = "row_deleted"
    UPSERT_FALLBACK_APPEND = "upsert_fallback_append"
    BATCH_DELETE_PARTIAL = "batch_delete_partial"

    # Failures
    ROW_NOT_FOUND = "row_not_found"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every mutation of the ledger creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which logical row this is about, as "period/category/name"
    entity_key: Optional[str] = Field(
        default=None,
        description="Composite key of the affected row"
    )
    row_number: Optional[int] = Field(
        default=None,
        description="1-based sheet row number touched by the write"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one batch delete)"
    )

    description: str = Field(
        ...,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_key": self.entity_key,
            "row_number": self.row_number,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_key, row_number,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_key or "",
            str(self.row_number) if self.row_number is not None else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.row_updated(key, row_number)
        event = AuditEventBuilder.row_not_found(key, operation="delete")
    """

    @staticmethod
    def ledger_loaded(
        row_count: int,
        range_spec: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Ledger loaded: {row_count} rows from {range_spec}",
            details={"row_count": row_count, "range": range_spec},
        )

    @staticmethod
    def upsert_fallback_append(
        key: CompositeKey,
        values: list,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPSERT_FALLBACK_APPEND,
            entity_key=str(key),
            correlation_id=correlation_id,
            description=f"No row for {key}; appended instead of updating",
            details={"values": [str(v) for v in values]},
        )

    @staticmethod
    def row_updated(
        key: CompositeKey,
        row_number: int,
        values: list,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROW_UPDATED,
            entity_key=str(key),
            row_number=row_number,
            correlation_id=correlation_id,
            description=f"Row {row_number} updated: {key}",
            details={"values": [str(v) for v in values]},
        )

    @staticmethod
    def row_deleted(
        key: CompositeKey,
        row_number: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROW_DELETED,
            entity_key=str(key),
            row_number=row_number,
            correlation_id=correlation_id,
            description=f"Row {row_number} deleted: {key}",
        )

    @staticmethod
    def row_not_found(
        key: CompositeKey,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROW_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_key=str(key),
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} failed, row not found: {key}",
            details={"operation": operation},
        )

    @staticmethod
    def batch_delete_partial(
        deleted: list[CompositeKey],
        failed: CompositeKey,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_DELETE_PARTIAL,
            severity=AuditSeverity.ERROR,
            entity_key=str(failed),
            correlation_id=correlation_id,
            description=(
                f"Batch delete stopped at {failed} after {len(deleted)} deletions"
            ),
            details={"committed": [str(k) for k in deleted]},
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        key: Optional[CompositeKey] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_key=str(key) if key else None,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
