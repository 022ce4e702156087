"""
Tests for Household Ledger models

Test strategy:
1. Unit tests for individual components (models, parser, folds)
2. Engine tests against the in-memory row store
3. No network calls in tests
"""

import json
from uuid import uuid4

import pytest
from pydantic import TypeAdapter, ValidationError

from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from household_ledger.models.history import BalanceSnapshot
from household_ledger.models.ledger import (
    BondTerms,
    CompositeKey,
    Expenses,
    FixedExpense,
    LedgerRow,
    RowDetail,
    RowIssue,
    VariableExpense,
)


class TestLedgerModels:
    """Tests for row and key models."""

    def test_row_from_values_pads_missing_cells(self):
        """Test that short positional rows are padded."""
        row = LedgerRow.from_values(["2025.01", "expense-card"])
        assert row.name == ""
        assert row.amount == ""
        assert row.detail == ""

    def test_row_from_values_ignores_extra_cells(self):
        """Test that cells past the fifth are dropped."""
        row = LedgerRow.from_values(["2025.01", "c", "n", "1", "d", "extra"])
        assert row.to_values() == ["2025.01", "c", "n", "1", "d"]

    def test_row_strips_whitespace(self):
        """Test that whitespace is stripped from text cells."""
        row = LedgerRow.from_values([" 2025.01 ", "expense-card ", " card", "1", None])
        assert row.period == "2025.01"
        assert row.category == "expense-card"
        assert row.name == "card"
        assert row.detail == ""

    def test_row_key_normalizes_period(self):
        """Test that the key uses the dotted period."""
        row = LedgerRow(period="2025-03", category="income-fixed", name="salary")
        assert row.key == CompositeKey(period="2025.03", category="income-fixed", name="salary")
        assert str(row.key) == "2025.03/income-fixed/salary"

    def test_composite_key_is_hashable(self):
        """Test that keys can be used in sets."""
        key = CompositeKey(period="2025.01", category="c", name="n")
        assert len({key, CompositeKey(period="2025.01", category="c", name="n")}) == 1

    def test_detail_union_discriminates_on_kind(self):
        """Test that serialized details come back as the right variant."""
        adapter = TypeAdapter(RowDetail)
        detail = adapter.validate_python({"kind": "bond", "yield_rate": 3.1})
        assert isinstance(detail, BondTerms)
        assert detail.yield_rate == 3.1

    def test_expenses_total_skips_unchecked(self):
        """Test that unchecked fixed expenses are not spending."""
        expenses = Expenses(
            fixed=[
                FixedExpense(name="rent", amount=500),
                FixedExpense(name="tax", amount=200, checked=False),
            ],
            variable=[VariableExpense(name="food", amount=30)],
            card=70,
        )
        assert expenses.total == 600

    def test_row_issue_row_number_is_one_based(self):
        """Test that row number 0 is rejected."""
        with pytest.raises(ValidationError):
            RowIssue(row_number=0, reason="missing_key", message="x", row=LedgerRow())

    def test_balance_snapshot_total(self):
        """Test the total of all balance kinds."""
        assert BalanceSnapshot(cash=1, savings=2, bond=3, stocks=4).total == 10


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.UPSERT_FALLBACK_APPEND,
            description="Row appended",
        )
        assert event.event_type == AuditEventType.UPSERT_FALLBACK_APPEND
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.ROW_UPDATED,
            entity_key="2025.01/expense-card/card",
            row_number=7,
            correlation_id=correlation_id,
            description="Row 7 updated",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "row_updated"
        assert log_dict["row_number"] == 7
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.ROW_DELETED,
            description="Row deleted",
            details={"values": ["2025.01", "지출-카드"]},
        )
        row = event.to_sheets_row()
        assert len(row) == 10
        assert row[2] == "row_deleted"
        assert row[5] == ""
        assert json.loads(row[8]) == {"values": ["2025.01", "지출-카드"]}

    def test_audit_event_builder_row_not_found(self):
        """Test builder for a failed keyed mutation."""
        key = CompositeKey(period="2025.01", category="expense-card", name="card")
        event = AuditEventBuilder.row_not_found(key, "delete")
        assert event.event_type == AuditEventType.ROW_NOT_FOUND
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_key == "2025.01/expense-card/card"
        assert event.description.startswith("Delete failed")

    def test_audit_event_builder_batch_delete_partial(self):
        """Test builder for a batch delete that stopped partway."""
        done = CompositeKey(period="2025.01", category="c", name="a")
        failed = CompositeKey(period="2025.01", category="c", name="b")
        event = AuditEventBuilder.batch_delete_partial([done], failed, "quota")
        assert event.severity == AuditSeverity.ERROR
        assert event.details["committed"] == ["2025.01/c/a"]
        assert event.error_message == "quota"

    def test_long_entry_names_build_events(self):
        """Test that every builder accepts a free-text name of any length."""
        key = CompositeKey(period="2025.01", category="expense-variable", name="x" * 600)
        events = [
            AuditEventBuilder.upsert_fallback_append(key, [key.name]),
            AuditEventBuilder.row_updated(key, 2, [key.name]),
            AuditEventBuilder.row_deleted(key, 2),
            AuditEventBuilder.row_not_found(key, "update"),
        ]
        assert all(key.name in event.description for event in events)
