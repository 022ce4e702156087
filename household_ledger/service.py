"""
Ledger Service

Ties the row store, the upsert engine and the folds together.

DESIGN DECISION: the service keeps one in-memory copy of the whole row
log. Every successful mutation is followed by a full reload, and all
views are recomputed from that fresh copy. Nothing is patched in place,
so the derived views can never drift from the store.
"""

from typing import Iterable, Optional, Sequence, Union
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from household_ledger import aggregation
from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import get_settings
from household_ledger.logging_setup import configure_logging, get_logger
from household_ledger.models.history import (
    BalanceDelta,
    BalanceSnapshot,
    CategoryRollupEntry,
    InvestmentHistoryPoint,
    MonthlyHistoryPoint,
)
from household_ledger.models.ledger import CompositeKey, LedgerRow, PeriodSnapshot
from household_ledger.parsing import parse_ledger
from household_ledger.periods import DEFAULT_LEGACY_CUTOFF
from household_ledger.services.storage import (
    DEFAULT_RANGE,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStore,
    InMemoryAuditStorage,
    InMemoryRowStore,
    RowStoreInterface,
    StorageError,
)
from household_ledger.taxonomy import DEFAULT_HOLDERS
from household_ledger.upsert import LedgerUpsertEngine, MutationResult

logger = get_logger(__name__)


class LedgerView(BaseModel):
    """Every multi-period projection of one load of the row log."""

    periods: list[str] = Field(
        default_factory=list,
        description="Distinct periods, newest first"
    )
    monthly_history: list[MonthlyHistoryPoint] = Field(default_factory=list)
    investment_history: list[InvestmentHistoryPoint] = Field(default_factory=list)
    category_rollup: list[CategoryRollupEntry] = Field(default_factory=list)
    balance_history: dict[str, BalanceSnapshot] = Field(default_factory=dict)
    balance_deltas: list[BalanceDelta] = Field(default_factory=list)


class LedgerService:
    """
    Read and mutate the ledger through one object.

    Reads are served from the last loaded copy; call load() first, or
    let the first read do it.
    """

    def __init__(
        self,
        store: RowStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        engine: Optional[LedgerUpsertEngine] = None,
        holders: Optional[Sequence[str]] = None,
        rollup_top_n: Optional[int] = None,
        legacy_cutoff: Optional[str] = None,
        range_spec: str = DEFAULT_RANGE,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._range_spec = range_spec
        self._engine = engine or LedgerUpsertEngine(store, audit_logger, range_spec)
        self._holders = tuple(holders) if holders else DEFAULT_HOLDERS
        self._top_n = rollup_top_n or aggregation.DEFAULT_TOP_N
        self._legacy_cutoff = legacy_cutoff or DEFAULT_LEGACY_CUTOFF
        self._rows: Optional[list[list]] = None
        self._view: Optional[LedgerView] = None

    @property
    def rows(self) -> list[list]:
        """Rows of the last load, header included. Empty before any load."""
        return list(self._rows or [])

    async def load(self, correlation_id: Optional[UUID] = None) -> list[list]:
        """Read the full row log and drop every cached view."""
        self._rows = await self._store.get_all_rows(self._range_spec)
        self._view = None
        if self._audit_logger:
            await self._audit_logger.log_ledger_loaded(
                max(len(self._rows) - 1, 0), self._range_spec, correlation_id
            )
        return self.rows

    async def _ensure_loaded(self) -> list[list]:
        if self._rows is None:
            await self.load()
        return self._rows

    async def snapshot(self, period: Optional[str] = None) -> PeriodSnapshot:
        """Parse one period (or every row when period is None)."""
        rows = await self._ensure_loaded()
        return parse_ledger(
            rows,
            period,
            holders=self._holders,
            legacy_cutoff=self._legacy_cutoff,
        )

    async def view(self) -> LedgerView:
        """All projections of the current copy, computed once per load."""
        rows = await self._ensure_loaded()
        if self._view is None:
            balances = aggregation.aggregate_balance_history(rows)
            self._view = LedgerView(
                periods=aggregation.available_periods(rows),
                monthly_history=aggregation.aggregate_monthly_history(rows, self._holders),
                investment_history=aggregation.aggregate_investment_history(rows, self._holders),
                category_rollup=aggregation.aggregate_category_rollup(rows, self._top_n),
                balance_history=balances,
                balance_deltas=aggregation.balance_deltas(balances),
            )
        return self._view

    async def upsert(
        self,
        values: Union[LedgerRow, Sequence],
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """Write one entry keyed by its own period, category and name."""
        row = values if isinstance(values, LedgerRow) else LedgerRow.from_values(values)
        correlation_id = correlation_id or create_correlation_id()
        result = await self._engine.upsert(
            row.period, row.category, row.name, row, correlation_id
        )
        await self.load(correlation_id)
        return result

    async def delete(
        self,
        period: str,
        category: str,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """
        Delete one entry.

        Raises:
            NotFoundError: If no row carries the key; nothing is reloaded
        """
        correlation_id = correlation_id or create_correlation_id()
        result = await self._engine.delete_by_key(period, category, name, correlation_id)
        await self.load(correlation_id)
        return result

    async def delete_many(
        self,
        keys: Iterable[CompositeKey],
        correlation_id: Optional[UUID] = None,
    ) -> list[MutationResult]:
        """
        Delete several entries in order.

        The copy is reloaded even when a delete fails partway, since the
        earlier deletes are already committed.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self._engine.delete_many(keys, correlation_id)
        finally:
            await self.load(correlation_id)


def create_ledger_service(use_storage: bool = True) -> LedgerService:
    """
    Factory function to create the service from settings.

    Args:
        use_storage: Whether to connect to Google Sheets.
                    Set to False to run against an empty in-memory store.
    """
    settings = get_settings()
    configure_logging(debug=settings.app.debug_mode)
    ledger = settings.ledger
    store: RowStoreInterface
    audit_logger: AuditLogger
    range_spec = DEFAULT_RANGE

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            store = GoogleSheetsRowStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
            range_spec = sheets_client.settings.ledger_range
        except (StorageError, ValidationError) as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            store = InMemoryRowStore()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        store = InMemoryRowStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    return LedgerService(
        store,
        audit_logger=audit_logger,
        holders=ledger.holders_list,
        rollup_top_n=ledger.rollup_top_n,
        legacy_cutoff=ledger.legacy_cutoff,
        range_spec=range_spec,
    )
