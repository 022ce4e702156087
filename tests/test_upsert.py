"""
Tests for the composite-key upsert engine.

All tests run against InMemoryRowStore, which counts every call so
the one-read/one-write behavior can be checked directly.
"""

import asyncio

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.models.audit import AuditEventType
from household_ledger.models.ledger import CompositeKey, LedgerRow
from household_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryRowStore,
    NotFoundError,
    StorageError,
)
from household_ledger.upsert import (
    LedgerUpsertEngine,
    MutationAction,
    find_row_index,
    make_key,
)


class FailingDeleteStore(InMemoryRowStore):
    """Row store whose deletes start failing after a number of successes."""

    def __init__(self, rows, fail_after: int):
        super().__init__(rows)
        self._fail_after = fail_after

    async def delete_row_range(self, start_index, end_index):
        if self.calls["delete_row_range"] >= self._fail_after:
            self.calls["delete_row_range"] += 1
            raise StorageError("quota exceeded")
        return await super().delete_row_range(start_index, end_index)


class FailingUpdateStore(InMemoryRowStore):
    async def update_range(self, range_spec, rows):
        self.calls["update_range"] += 1
        raise StorageError("connection reset")


class FailingReadStore(InMemoryRowStore):
    async def get_all_rows(self, range_spec="A:E"):
        self.calls["get_all_rows"] += 1
        raise StorageError("connection reset")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def store():
    return InMemoryRowStore([
        ["2025.01", "income-fixed", "salary", "3000000", ""],
        ["2025.01", "expense-card", "card-total", "450000", ""],
        ["2025.02", "expense-fixed", "rent", "500000", "unchecked"],
    ])


@pytest.fixture
def engine(store, audit_storage):
    return LedgerUpsertEngine(store, AuditLogger(audit_storage))


class TestKeyMatching:
    """Tests for key normalization and lookup."""

    def test_make_key_normalizes(self):
        """Test that period spelling and padding are normalized."""
        assert make_key("2025-02", " expense-card ", "card ") == CompositeKey(
            period="2025.02", category="expense-card", name="card"
        )

    def test_find_row_index_skips_header(self):
        """Test that the header is never matched."""
        rows = [["period", "category", "name", "amount", "detail"]]
        assert find_row_index(rows, make_key("period", "category", "name")) is None

    def test_find_first_duplicate(self):
        """Test that the first of several matching rows is returned."""
        rows = [
            ["h"],
            ["2025.01", "expense-card", "card", "1"],
            ["2025.01", "expense-card", "card", "2"],
        ]
        assert find_row_index(rows, make_key("2025.01", "expense-card", "card")) == 1

    def test_web_alias_matches_canonical_row(self):
        """Test that a Korean web tag addresses the canonical row."""
        rows = [["h"], ["2025.01", "expense-card", "card", "1"]]
        assert find_row_index(rows, make_key("2025.01", "지출-카드", "card")) == 1


class TestUpsert:
    """Tests for upsert."""

    def test_upsert_without_match_appends(self, engine, store):
        """Test that a missing key causes one read, one append and no update."""
        row = LedgerRow(period="2025.02", category="expense-card", name="card-total", amount="300000")
        result = asyncio.run(engine.upsert("2025.02", "expense-card", "card-total", row))

        assert result.action == MutationAction.APPENDED
        assert store.calls["get_all_rows"] == 1
        assert store.calls["append_rows"] == 1
        assert store.calls["update_range"] == 0
        assert store.rows[-1] == ["2025.02", "expense-card", "card-total", "300000", ""]

    def test_upsert_with_match_updates_in_place(self, engine, store):
        """Test that an existing key is overwritten at its row."""
        values = ["2025.01", "expense-card", "card-total", "470000", ""]
        result = asyncio.run(engine.upsert("2025.01", "expense-card", "card-total", values))

        assert result.action == MutationAction.UPDATED
        assert result.row_number == 3
        assert store.calls["get_all_rows"] == 1
        assert store.calls["update_range"] == 1
        assert store.calls["append_rows"] == 0
        assert store.rows[2] == values
        assert len(store.rows) == 4

    def test_upsert_is_idempotent(self, engine, store):
        """Test that two upserts of one key leave exactly one row with the second value."""
        first = ["2025.03", "expense-variable", "food", "1000", ""]
        second = ["2025.03", "expense-variable", "food", "2000", ""]
        asyncio.run(engine.upsert("2025.03", "expense-variable", "food", first))
        asyncio.run(engine.upsert("2025.03", "expense-variable", "food", second))

        matching = [r for r in store.rows if r[:3] == ["2025.03", "expense-variable", "food"]]
        assert matching == [second]

    def test_short_values_are_padded(self, engine, store):
        """Test that rows shorter than five cells are padded."""
        asyncio.run(engine.upsert("2025.03", "expense-variable", "taxi", ["2025.03", "expense-variable", "taxi"]))
        assert store.rows[-1] == ["2025.03", "expense-variable", "taxi", "", ""]

    def test_fallback_append_is_audited(self, engine, audit_storage):
        """Test that an append caused by a missing key is logged as such."""
        asyncio.run(engine.upsert("2025.04", "expense-card", "card", ["2025.04", "expense-card", "card", "1", ""]))
        types = [e.event_type for e in audit_storage.events]
        assert types == [AuditEventType.UPSERT_FALLBACK_APPEND]

    def test_update_failure_is_not_turned_into_append(self, audit_storage):
        """Test that a transport error on the update surfaces and nothing is appended."""
        store = FailingUpdateStore([["2025.01", "expense-card", "card", "1", ""]])
        engine = LedgerUpsertEngine(store, AuditLogger(audit_storage))

        with pytest.raises(StorageError):
            asyncio.run(engine.upsert("2025.01", "expense-card", "card", ["2025.01", "expense-card", "card", "2", ""]))

        assert store.calls["update_range"] == 1
        assert store.calls["append_rows"] == 0
        assert store.rows[1:] == [["2025.01", "expense-card", "card", "1", ""]]
        assert audit_storage.events[-1].event_type == AuditEventType.STORAGE_ERROR

    def test_read_failure_is_not_turned_into_append(self):
        """Test that a transport error on the scan surfaces and nothing is written."""
        store = FailingReadStore()
        engine = LedgerUpsertEngine(store)

        with pytest.raises(StorageError):
            asyncio.run(engine.upsert("2025.01", "expense-card", "card", ["2025.01", "expense-card", "card", "2", ""]))

        assert store.calls["append_rows"] == 0
        assert store.calls["update_range"] == 0


class TestUpdateByKey:
    """Tests for update without fallback."""

    def test_update_missing_key_raises(self, engine, store, audit_storage):
        """Test that a missing key raises NotFoundError and writes nothing."""
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(engine.update_by_key("2030.01", "expense-card", "card", ["2030.01", "expense-card", "card", "1", ""]))

        assert exc_info.value.key == make_key("2030.01", "expense-card", "card")
        assert store.calls["update_range"] == 0
        assert store.calls["append_rows"] == 0
        assert audit_storage.events[-1].event_type == AuditEventType.ROW_NOT_FOUND

    def test_update_existing_key(self, engine, store):
        """Test that an existing key is updated."""
        values = ["2025.02", "expense-fixed", "rent", "500000", "checked"]
        result = asyncio.run(engine.update_by_key("2025.02", "expense-fixed", "rent", values))
        assert result.row_number == 4
        assert store.rows[3] == values


class TestDelete:
    """Tests for delete_by_key and delete_many."""

    def test_delete_removes_first_match(self, engine, store):
        """Test that the matching row is gone after a delete."""
        result = asyncio.run(engine.delete_by_key("2025.01", "expense-card", "card-total"))

        assert result.action == MutationAction.DELETED
        assert result.row_number == 3
        assert store.calls["delete_row_range"] == 1
        assert find_row_index(store.rows, make_key("2025.01", "expense-card", "card-total")) is None
        assert len(store.rows) == 3

    def test_append_then_delete_round_trip(self, engine, store):
        """Test that an appended row is visible and then removable."""
        before = store.rows
        values = ["2025.05", "expense-variable", "gift", "50000", "birthday"]
        asyncio.run(engine.upsert("2025.05", "expense-variable", "gift", values))
        assert values in asyncio.run(store.get_all_rows())

        asyncio.run(engine.delete_by_key("2025.05", "expense-variable", "gift"))
        assert store.rows == before

    def test_delete_missing_key_raises(self, engine, store):
        """Test that deleting an absent key raises and deletes nothing."""
        with pytest.raises(NotFoundError):
            asyncio.run(engine.delete_by_key("2025.01", "expense-card", "nope"))
        assert store.calls["delete_row_range"] == 0

    def test_delete_many_in_order(self, engine, store):
        """Test that every key of a batch is deleted."""
        keys = [
            make_key("2025.01", "income-fixed", "salary"),
            make_key("2025.02", "expense-fixed", "rent"),
        ]
        results = asyncio.run(engine.delete_many(keys))
        assert [r.row_number for r in results] == [2, 3]
        assert store.rows == [
            ["period", "category", "name", "amount", "detail"],
            ["2025.01", "expense-card", "card-total", "450000", ""],
        ]

    def test_delete_many_partial_failure_keeps_earlier_deletes(self, audit_storage):
        """Test that a failing delete leaves earlier deletes committed."""
        store = FailingDeleteStore(
            [
                ["2025.01", "income-fixed", "salary", "1", ""],
                ["2025.01", "expense-card", "card", "2", ""],
            ],
            fail_after=1,
        )
        engine = LedgerUpsertEngine(store, AuditLogger(audit_storage))
        keys = [
            make_key("2025.01", "income-fixed", "salary"),
            make_key("2025.01", "expense-card", "card"),
        ]

        with pytest.raises(StorageError):
            asyncio.run(engine.delete_many(keys))

        assert store.rows[1:] == [["2025.01", "expense-card", "card", "2", ""]]
        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.STORAGE_ERROR in types
        assert types[-1] == AuditEventType.BATCH_DELETE_PARTIAL
        assert audit_storage.events[-1].details["committed"] == ["2025.01/income-fixed/salary"]

    def test_delete_many_missing_key_stops_batch(self, engine, store):
        """Test that a missing key in a batch propagates NotFoundError."""
        keys = [
            make_key("2025.01", "income-fixed", "salary"),
            make_key("2099.01", "income-fixed", "ghost"),
        ]
        with pytest.raises(NotFoundError):
            asyncio.run(engine.delete_many(keys))
        assert find_row_index(store.rows, keys[0]) is None
