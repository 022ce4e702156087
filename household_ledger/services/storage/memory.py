"""
In-Memory Storage Implementation

Behaves like a single sheet: a list of rows with a header at index 0.
Used by the test suite and for local runs without credentials.

It also counts every call so callers can check how many reads and
writes an operation really issued.
"""

import copy
from collections import Counter
from typing import Optional, Sequence
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.services.storage.interface import (
    DEFAULT_RANGE,
    AuditStorageInterface,
    InvalidRangeError,
    RowStoreInterface,
)
from household_ledger.services.storage.ranges import range_start_row

LEDGER_HEADER = ["period", "category", "name", "amount", "detail"]


class InMemoryRowStore(RowStoreInterface):
    """List-backed row store with the same indexing rules as the sheet."""

    def __init__(
        self,
        rows: Optional[Sequence[Sequence]] = None,
        header: Optional[Sequence] = None,
    ):
        self._rows: list[list] = [list(header or LEDGER_HEADER)]
        self._rows.extend(list(row) for row in rows or [])
        self.calls: Counter = Counter()

    @property
    def rows(self) -> list[list]:
        """Current table contents, header included (a copy)."""
        return copy.deepcopy(self._rows)

    async def get_all_rows(self, range_spec: str = DEFAULT_RANGE) -> list[list]:
        self.calls["get_all_rows"] += 1
        return copy.deepcopy(self._rows)

    async def append_rows(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        self.calls["append_rows"] += 1
        first = len(self._rows) + 1
        self._rows.extend(list(row) for row in rows)
        return {"updatedRange": f"{first}:{len(self._rows)}", "updatedRows": len(rows)}

    async def update_range(self, range_spec: str, rows: Sequence[Sequence]) -> dict:
        self.calls["update_range"] += 1
        start = range_start_row(range_spec)
        if start is None:
            raise InvalidRangeError(f"Update range needs a start row: {range_spec!r}")
        index = start - 1
        if index >= len(self._rows):
            self._rows.extend([] for _ in range(index - len(self._rows)))
        for offset, row in enumerate(rows):
            position = index + offset
            if position < len(self._rows):
                self._rows[position] = list(row)
            else:
                self._rows.append(list(row))
        return {"updatedRange": range_spec, "updatedRows": len(rows)}

    async def delete_row_range(self, start_index: int, end_index: int) -> dict:
        self.calls["delete_row_range"] += 1
        if start_index < 0 or end_index <= start_index or end_index > len(self._rows):
            raise InvalidRangeError(
                f"Cannot delete rows [{start_index}, {end_index}) of {len(self._rows)}"
            )
        del self._rows[start_index:end_index]
        return {"deleted": f"rows {start_index + 1}-{end_index}"}


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit log kept in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
