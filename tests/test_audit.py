"""Tests for the audit logger."""

import asyncio

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from household_ledger.models.ledger import CompositeKey
from household_ledger.services.storage import InMemoryAuditStorage, StorageError


class BrokenAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise StorageError("sheet is read-only")


KEY = CompositeKey(period="2025.01", category="expense-card", name="card")


class TestAuditLogger:
    """Tests for logging and persisting audit events."""

    def test_events_are_persisted(self):
        """Test that events reach the configured storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        asyncio.run(logger.log_row_updated(KEY, 3, ["2025.01", "expense-card", "card", "1", ""]))

        event = storage.events[0]
        assert event.event_type == AuditEventType.ROW_UPDATED
        assert event.row_number == 3
        assert event.entity_key == "2025.01/expense-card/card"

    def test_storage_failure_is_not_raised(self):
        """Test that a failing audit sink never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        event_logged = asyncio.run(logger.log_row_not_found(KEY, "delete"))
        assert event_logged is None

    def test_log_returns_false_on_storage_failure(self):
        """Test the return value of a lost event."""
        logger = AuditLogger(BrokenAuditStorage())
        assert asyncio.run(logger.log(AuditEventBuilder.row_deleted(KEY, 2))) is False

    def test_local_only_logging(self):
        """Test that a logger without storage reports success."""
        logger = AuditLogger()
        assert asyncio.run(logger.log(AuditEventBuilder.ledger_loaded(0, "A:E"))) is True

    def test_correlation_ids_group_events(self):
        """Test that events can be fetched by correlation ID."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        asyncio.run(logger.log_row_deleted(KEY, 2, correlation_id))
        asyncio.run(logger.log_row_deleted(KEY, 2))

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(events) == 1

    def test_invalid_event_is_not_raised(self, monkeypatch):
        """Test that an event that fails to build is logged and dropped."""
        def broken_builder(*args):
            return AuditEvent(event_type="not-an-event", description="x")

        monkeypatch.setattr(AuditEventBuilder, "row_deleted", staticmethod(broken_builder))
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        assert asyncio.run(logger.log_row_deleted(KEY, 2)) is None
        assert storage.events == []
