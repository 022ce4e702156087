"""
Upsert Engine

Composite-key mutations on top of a row store that has no keys.

The logical primary key of a row is (period, category, name). The store
cannot enforce it, so every mutation scans the full table first and
addresses the first matching row by position:

    upsert         read all -> update that row, or append when none matches
    update_by_key  read all -> update that row, NotFoundError when none matches
    delete_by_key  read all -> delete that row, NotFoundError when none matches

Each call issues at most one read and one write.

KNOWN RACE: find-then-write is not atomic. If another writer inserts or
deletes rows between the read and the write, the computed row number is
stale and the write lands on the wrong row. The engine assumes a single
writer at a time.
"""

from enum import Enum
from typing import Iterable, Optional, Sequence, Union
from uuid import UUID

from pydantic import BaseModel, Field

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.logging_setup import get_logger
from household_ledger.models.ledger import ROW_WIDTH, CompositeKey, LedgerRow
from household_ledger.periods import normalize_period
from household_ledger.services.storage import (
    DEFAULT_RANGE,
    NotFoundError,
    RowStoreInterface,
    StorageError,
    row_range,
)
from household_ledger.taxonomy import same_category

logger = get_logger(__name__)


class MutationAction(str, Enum):
    UPDATED = "updated"
    APPENDED = "appended"
    DELETED = "deleted"


class MutationResult(BaseModel):
    """Outcome of one keyed mutation."""

    action: MutationAction
    key: CompositeKey
    row_number: Optional[int] = Field(
        default=None,
        description="1-based sheet row touched; None for appends"
    )
    response: dict = Field(default_factory=dict)


def make_key(period: str, category: str, name: str) -> CompositeKey:
    return CompositeKey(
        period=normalize_period(period),
        category=(category or "").strip(),
        name=(name or "").strip(),
    )


def row_matches(row: Sequence, key: CompositeKey) -> bool:
    """Whether a raw store row carries the given composite key."""
    cells = list(row) + [""] * (3 - len(row))
    period, category, name = ("" if c is None else str(c) for c in cells[:3])
    return (
        normalize_period(period) == key.period
        and name.strip() == key.name
        and same_category(category, key.category)
    )


def find_row_index(rows: Sequence[Sequence], key: CompositeKey) -> Optional[int]:
    """
    Index of the first row matching key, skipping the header.

    Later duplicates are never looked at.
    """
    for index in range(1, len(rows)):
        if row_matches(rows[index], key):
            return index
    return None


def _to_cells(values: Union[LedgerRow, Sequence]) -> list:
    """Normalize a full row to exactly five cells."""
    if isinstance(values, LedgerRow):
        return values.to_values()
    cells = ["" if v is None else v for v in list(values)[:ROW_WIDTH]]
    return cells + [""] * (ROW_WIDTH - len(cells))


class LedgerUpsertEngine:
    """
    Keyed update/append/delete against a RowStoreInterface.

    Transport errors from the store always propagate unchanged; they are
    logged to the audit trail first when an audit logger is configured.
    """

    def __init__(
        self,
        store: RowStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        range_spec: str = DEFAULT_RANGE,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._range_spec = range_spec

    async def _guard(self, operation: str, key: Optional[CompositeKey], call, correlation_id=None):
        try:
            return await call
        except NotFoundError:
            raise
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation=operation,
                    error_message=str(e),
                    key=key,
                    correlation_id=correlation_id,
                )
            raise

    def _check_values(self, key: CompositeKey, cells: list) -> None:
        if not row_matches(cells, key):
            logger.warning(
                "mutation_key_mismatch",
                key=str(key),
                values=[str(c) for c in cells[:3]],
            )

    async def _update(
        self,
        key: CompositeKey,
        cells: list,
        correlation_id: Optional[UUID],
    ) -> MutationResult:
        rows = await self._guard(
            "read", key, self._store.get_all_rows(self._range_spec), correlation_id
        )
        index = find_row_index(rows, key)
        if index is None:
            raise NotFoundError(key)

        row_number = index + 1
        response = await self._guard(
            "update", key, self._store.update_range(row_range(row_number), [cells]), correlation_id
        )
        if self._audit_logger:
            await self._audit_logger.log_row_updated(key, row_number, cells, correlation_id)
        return MutationResult(
            action=MutationAction.UPDATED,
            key=key,
            row_number=row_number,
            response=response or {},
        )

    async def update_by_key(
        self,
        period: str,
        category: str,
        name: str,
        values: Union[LedgerRow, Sequence],
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """
        Replace the first row matching the key with values.

        Raises:
            NotFoundError: If no row carries the key
            StorageError: If the store fails
        """
        key = make_key(period, category, name)
        cells = _to_cells(values)
        self._check_values(key, cells)
        try:
            return await self._update(key, cells, correlation_id)
        except NotFoundError:
            if self._audit_logger:
                await self._audit_logger.log_row_not_found(key, "update", correlation_id)
            raise

    async def upsert(
        self,
        period: str,
        category: str,
        name: str,
        values: Union[LedgerRow, Sequence],
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """
        Update the row with this key, or append values when none exists.

        A missing row is the trigger for the append, not an error; the
        caller never sees NotFoundError from here.
        """
        key = make_key(period, category, name)
        cells = _to_cells(values)
        self._check_values(key, cells)
        try:
            return await self._update(key, cells, correlation_id)
        except NotFoundError:
            pass

        response = await self._guard(
            "append", key, self._store.append_rows(self._range_spec, [cells]), correlation_id
        )
        if self._audit_logger:
            await self._audit_logger.log_upsert_fallback_append(key, cells, correlation_id)
        return MutationResult(
            action=MutationAction.APPENDED,
            key=key,
            response=response or {},
        )

    async def delete_by_key(
        self,
        period: str,
        category: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """
        Delete the first row matching the key.

        Raises:
            NotFoundError: If no row carries the key
            StorageError: If the store fails
        """
        key = make_key(period, category, name)
        rows = await self._guard(
            "read", key, self._store.get_all_rows(self._range_spec), correlation_id
        )
        index = find_row_index(rows, key)
        if index is None:
            if self._audit_logger:
                await self._audit_logger.log_row_not_found(key, "delete", correlation_id)
            raise NotFoundError(key)

        response = await self._guard(
            "delete", key, self._store.delete_row_range(index, index + 1), correlation_id
        )
        if self._audit_logger:
            await self._audit_logger.log_row_deleted(key, index + 1, correlation_id)
        return MutationResult(
            action=MutationAction.DELETED,
            key=key,
            row_number=index + 1,
            response=response or {},
        )

    async def delete_many(
        self,
        keys: Iterable[CompositeKey],
        correlation_id: Optional[UUID] = None,
    ) -> list[MutationResult]:
        """
        Delete several rows, one delete_by_key each, in order.

        There is no rollback: when one delete fails, the earlier ones stay
        committed and the error propagates.
        """
        correlation_id = correlation_id or create_correlation_id()
        results: list[MutationResult] = []
        for key in keys:
            try:
                results.append(
                    await self.delete_by_key(key.period, key.category, key.name, correlation_id)
                )
            except StorageError as e:
                if results and self._audit_logger:
                    await self._audit_logger.log_batch_delete_partial(
                        deleted=[r.key for r in results],
                        failed=key,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                raise
        return results
