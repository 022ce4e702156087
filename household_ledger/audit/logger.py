"""
Audit Logger

DESIGN DECISION: Every write against the ledger sheet is logged.
This provides:
1. Traceability of which row a keyed update actually touched
2. Debugging capability when stale indices hit the wrong row
3. A record of what a failed batch delete already committed

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (a lost audit write never fails a mutation)
- Ties the events of one batch together with a correlation ID
"""

from typing import Optional
from uuid import UUID, uuid4

from pydantic import ValidationError

from household_ledger.logging_setup import get_logger
from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from household_ledger.models.ledger import CompositeKey
from household_ledger.services.storage import AuditStorageInterface

_LOG_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
}


class AuditLogger:
    """
    Records ledger mutations.

    Every event goes to the structured log; it is also appended to an
    AuditStorageInterface when one is given.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = get_logger("household_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit one event.

        Returns False only when persisting it failed; that failure is
        logged, never raised, so a lost audit line cannot fail a write.
        """
        emit = getattr(self._logger, _LOG_METHODS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True
        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    async def _record(self, build, *args) -> bool:
        """Build an event and emit it; a builder failure is logged like a lost write."""
        try:
            event = build(*args)
        except ValidationError as e:
            self._logger.error(
                "audit_event_invalid",
                builder=build.__name__,
                error=str(e),
            )
            return False
        return await self.log(event)

    async def log_ledger_loaded(
        self,
        row_count: int,
        range_spec: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(AuditEventBuilder.ledger_loaded, row_count, range_spec, correlation_id)

    async def log_upsert_fallback_append(
        self,
        key: CompositeKey,
        values: list,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an append made because an upsert found no row to update."""
        await self._record(AuditEventBuilder.upsert_fallback_append, key, values, correlation_id)

    async def log_row_updated(
        self,
        key: CompositeKey,
        row_number: int,
        values: list,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(AuditEventBuilder.row_updated, key, row_number, values, correlation_id)

    async def log_row_deleted(
        self,
        key: CompositeKey,
        row_number: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(AuditEventBuilder.row_deleted, key, row_number, correlation_id)

    async def log_row_not_found(
        self,
        key: CompositeKey,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(AuditEventBuilder.row_not_found, key, operation, correlation_id)

    async def log_batch_delete_partial(
        self,
        deleted: list[CompositeKey],
        failed: CompositeKey,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(
            AuditEventBuilder.batch_delete_partial, deleted, failed, error_message, correlation_id
        )

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        key: Optional[CompositeKey] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._record(
            AuditEventBuilder.storage_error, operation, error_message, key, correlation_id
        )


def create_correlation_id() -> UUID:
    """New ID shared by every event of one multi-step action, e.g. a batch delete."""
    return uuid4()
