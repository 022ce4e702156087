"""Tests for the in-memory row store, range helpers and settings."""

import asyncio

import pytest

from household_ledger.config import LedgerSettings, get_settings, validate_all_settings
from household_ledger.services.storage import (
    LEDGER_HEADER,
    InMemoryRowStore,
    InvalidRangeError,
    range_start_row,
    row_range,
)


class TestRanges:
    """Tests for A1 range helpers."""

    def test_row_range(self):
        """Test a single-row range."""
        assert row_range(7) == "A7:E7"

    def test_row_range_rejects_zero(self):
        """Test that row numbers are 1-based."""
        with pytest.raises(InvalidRangeError):
            row_range(0)

    @pytest.mark.parametrize("spec,expected", [
        ("A7:E7", 7),
        ("'시트1'!A3:E4", 3),
        ("Sheet1!A12", 12),
        ("A:E", None),
    ])
    def test_range_start_row(self, spec, expected):
        """Test the first row of a range."""
        assert range_start_row(spec) == expected

    def test_range_start_row_rejects_garbage(self):
        """Test that non-A1 input is rejected."""
        with pytest.raises(InvalidRangeError):
            range_start_row("rows 1 to 4")


class TestInMemoryRowStore:
    """Tests for the list-backed store."""

    def test_header_is_first_row(self):
        """Test that reads start with the header."""
        store = InMemoryRowStore([["2025.01", "c", "n", "1", ""]])
        rows = asyncio.run(store.get_all_rows())
        assert rows[0] == LEDGER_HEADER
        assert len(rows) == 2

    def test_reads_are_copies(self):
        """Test that callers cannot mutate the table through a read."""
        store = InMemoryRowStore([["2025.01", "c", "n", "1", ""]])
        rows = asyncio.run(store.get_all_rows())
        rows[1][3] = "999"
        assert store.rows[1][3] == "1"

    def test_update_range_needs_start_row(self):
        """Test that an open range cannot be updated."""
        store = InMemoryRowStore()
        with pytest.raises(InvalidRangeError):
            asyncio.run(store.update_range("A:E", [["x"]]))

    def test_delete_shifts_later_rows_up(self):
        """Test that deleting a row moves the following rows up."""
        store = InMemoryRowStore([["a"], ["b"], ["c"]])
        asyncio.run(store.delete_row_range(1, 2))
        assert store.rows[1:] == [["b"], ["c"]]

    @pytest.mark.parametrize("start,end", [(-1, 1), (2, 2), (1, 9)])
    def test_delete_rejects_bad_bounds(self, start, end):
        """Test that out-of-range deletes raise."""
        store = InMemoryRowStore([["a"], ["b"]])
        with pytest.raises(InvalidRangeError):
            asyncio.run(store.delete_row_range(start, end))


class TestLedgerSettings:
    """Tests for ledger configuration."""

    def test_holders_list(self):
        """Test that the comma list is split and trimmed."""
        settings = LedgerSettings(account_holders=" Sam , Alex ,")
        assert settings.holders_list == ["Sam", "Alex"]

    def test_legacy_cutoff_must_be_a_period(self):
        """Test that a malformed cutoff is rejected."""
        with pytest.raises(ValueError):
            LedgerSettings(legacy_cutoff="2025-9")

    def test_rollup_top_n_bounds(self):
        """Test the rollup size limits."""
        with pytest.raises(ValueError):
            LedgerSettings(rollup_top_n=0)

    def test_validate_all_settings_reports_missing_sheets(self, monkeypatch):
        """Test that missing Google Sheets settings are reported, not raised."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
        assert results["ledger"] is True
