"""
Ledger Parser

Folds the raw row log into a PeriodSnapshot in a single pass.

Parsing is lenient:
- a malformed amount becomes 0
- a row without category or name is skipped
- a row with an unknown category is kept aside in `unmatched`

None of these abort the fold. Each one is recorded in
`PeriodSnapshot.issues` so the caller can see what was dropped or
defaulted instead of discovering it later.

When two rows in the window share a key, the later row wins.
"""

import math
import re
from typing import Optional, Sequence, Union

from household_ledger.logging_setup import get_logger
from household_ledger.models.ledger import (
    UNCHECKED,
    BondHolding,
    BondTerms,
    CheckFlag,
    FixedExpense,
    FixedIncome,
    LedgerRow,
    MemoDetail,
    PeriodSnapshot,
    RowDetail,
    RowIssue,
    StockPosition,
    StockTerms,
    VariableExpense,
    VariableIncome,
    WatchlistEntry,
)
from household_ledger.periods import (
    DEFAULT_LEGACY_CUTOFF,
    is_legacy_period,
    normalize_period,
)
from household_ledger.taxonomy import (
    BOND_NAME_TAGS,
    DEFAULT_HOLDERS,
    DIVIDEND_TAGS,
    LEGACY_INCOME_RENAMES,
    OVERSEAS_STOCK_TAGS,
    Category,
    CategoryResolution,
    holder_of,
    is_principal_name,
    name_has,
    resolve,
)

logger = get_logger(__name__)

_LEADING_INT = re.compile(r"^[+-]?\d+")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

RowLike = Union[LedgerRow, Sequence]


# =============================================================================
# NUMERIC PARSING
# =============================================================================

def _parse_amount(value) -> tuple[int, bool]:
    """Parse an amount, returning (value, ok). Empty input is ok."""
    if value is None or isinstance(value, bool):
        return 0, value is None
    if isinstance(value, int):
        return value, True
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0, False
        return int(value), True

    text = str(value).replace(",", "").strip()
    if not text:
        return 0, True
    match = _LEADING_INT.match(text)
    if not match:
        return 0, False
    return int(match.group(0)), True


def parse_amount(value) -> int:
    """
    Parse a stored amount leniently.

    Thousands separators are stripped and the leading integer is used,
    so "12,500" -> 12500 and "3000원" -> 3000. Anything unparseable is 0.
    """
    return _parse_amount(value)[0]


def parse_float(value) -> float:
    """Lenient float parsing for rates and prices. Failure gives 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    match = _LEADING_FLOAT.match(str(value).replace(",", "").strip())
    return float(match.group(0)) if match else 0.0


# =============================================================================
# DETAIL COLUMN
# =============================================================================

def _split_detail(raw: str, width: int) -> list[str]:
    parts = (raw or "").split("|")
    return [p.strip() for p in parts[:width]] + [""] * (width - len(parts[:width]))


def interpret_detail(category: Optional[Category], raw: Optional[str]) -> RowDetail:
    """
    Interpret the detail column according to the row's canonical category.

    - fixed expense: checked flag ("unchecked" is the only false value)
    - bond: purchaseDate|yieldRate|maturityMonths
    - stock holding: qty|avgPrice|account
    - everything else: free-text memo
    """
    raw = raw or ""
    if category == Category.EXPENSE_FIXED:
        return CheckFlag(checked=raw.strip() != UNCHECKED)
    if category == Category.ASSET_BOND:
        purchase_date, yield_rate, maturity = _split_detail(raw, 3)
        return BondTerms(
            purchase_date=purchase_date,
            yield_rate=parse_float(yield_rate),
            maturity_months=parse_amount(maturity),
        )
    if category == Category.ASSET_STOCK:
        qty, avg_price, account = _split_detail(raw, 3)
        return StockTerms(
            qty=parse_amount(qty),
            avg_price=parse_float(avg_price),
            account=account,
        )
    return MemoDetail(text=raw)


def coerce_row(values: RowLike) -> LedgerRow:
    """Accept either a LedgerRow or a positional list of cells."""
    if isinstance(values, LedgerRow):
        return values
    return LedgerRow.from_values(values or [])


# =============================================================================
# SNAPSHOT FOLD
# =============================================================================

class _SnapshotFolder:
    """Routes rows into the buckets of one PeriodSnapshot."""

    def __init__(self, snapshot: PeriodSnapshot, holders: tuple[str, ...]):
        self.snapshot = snapshot
        self.holders = holders
        # key -> position inside its bucket list, for last-write-wins replacement
        self._positions: dict[tuple, int] = {}
        # (period, name) of incomes written by web-era rows; legacy rows never override them
        self._current_income: dict[Category, set[tuple[str, str]]] = {
            Category.INCOME_FIXED: set(),
            Category.INCOME_VARIABLE: set(),
        }

    def _place(self, bucket: list, key: tuple, entry) -> None:
        position = self._positions.get(key)
        if position is None:
            self._positions[key] = len(bucket)
            bucket.append(entry)
        else:
            bucket[position] = entry

    def _issue(self, row_number: int, row: LedgerRow, reason: str, message: str) -> None:
        self.snapshot.issues.append(
            RowIssue(row_number=row_number, reason=reason, message=message, row=row)
        )

    def add(self, row: LedgerRow, row_number: int) -> None:
        if not row.category or not row.name:
            self._issue(row_number, row, "missing_key", "Row has no category or name")
            return

        resolution = resolve(row.category)
        if not isinstance(resolution, CategoryResolution):
            self.snapshot.unmatched.append(row)
            self._issue(
                row_number, row, "unmatched_category",
                f"Unknown category {row.category!r}",
            )
            return

        value, ok = _parse_amount(row.amount)
        if not ok:
            self._issue(
                row_number, row, "amount_defaulted",
                f"Amount {row.amount!r} is not numeric; using 0",
            )

        if resolution.is_income:
            self._add_income(row, resolution, value)
        elif resolution.is_expense:
            self._add_expense(row, resolution, value)
        else:
            self._add_asset(row, resolution, value)

    def _add_income(self, row: LedgerRow, resolution: CategoryResolution, value: int) -> None:
        category, name = resolution.category, row.name
        period = normalize_period(row.period)
        incomes = self.snapshot.incomes

        if resolution.is_legacy:
            if name in LEGACY_INCOME_RENAMES:
                category, name = LEGACY_INCOME_RENAMES[name]
            if (period, name) in self._current_income[category]:
                return
        else:
            self._current_income[category].add((period, name))

        if category == Category.INCOME_FIXED:
            self._place(
                incomes.fixed,
                ("income.fixed", period, name),
                FixedIncome(name=name, amount=value),
            )
        else:
            self._place(
                incomes.variable,
                ("income.variable", period, row.category, name),
                VariableIncome(name=name, amount=value, memo=row.detail),
            )

    def _add_expense(self, row: LedgerRow, resolution: CategoryResolution, value: int) -> None:
        period = normalize_period(row.period)
        expenses = self.snapshot.expenses

        if resolution.category == Category.EXPENSE_CARD:
            expenses.card = value
        elif resolution.category == Category.EXPENSE_FIXED:
            flag = interpret_detail(Category.EXPENSE_FIXED, row.detail)
            self._place(
                expenses.fixed,
                ("expense.fixed", period, row.name),
                FixedExpense(name=row.name, amount=value, checked=flag.checked),
            )
        else:
            self._place(
                expenses.variable,
                ("expense.variable", period, row.category, row.name),
                VariableExpense(name=row.name, amount=value),
            )

    def _add_asset(self, row: LedgerRow, resolution: CategoryResolution, value: int) -> None:
        snapshot = self.snapshot
        assets = snapshot.assets
        period = normalize_period(row.period)
        name = row.name
        category = resolution.category

        if category == Category.ASSET_BALANCE:
            if name_has(name, BOND_NAME_TAGS):
                assets.bond.balance = value
            else:
                assets.balances[holder_of(name, self.holders) or name] = value

        elif category == Category.ASSET_SAVINGS:
            assets.savings = value

        elif category == Category.ASSET_BOND:
            if row.detail:
                terms = interpret_detail(Category.ASSET_BOND, row.detail)
                assets.bond = BondHolding(
                    balance=value,
                    purchase_date=terms.purchase_date,
                    yield_rate=terms.yield_rate,
                    maturity_months=terms.maturity_months,
                )
            else:
                assets.bond.balance = value

        elif category == Category.ASSET_STOCK:
            # Holdings without a sub-record carry no position to show
            if row.detail:
                terms = interpret_detail(Category.ASSET_STOCK, row.detail)
                self._place(
                    snapshot.stocks,
                    ("stocks", period, name),
                    StockPosition(
                        ticker=name,
                        qty=terms.qty,
                        avg_price=terms.avg_price,
                        account=terms.account,
                    ),
                )

        elif category == Category.ASSET_STOCK_ACCOUNT:
            assets.stock_accounts[name] = value

        elif category == Category.INVESTMENT_TOTAL:
            totals = snapshot.investment_totals
            holder = holder_of(name, self.holders)
            if holder and name_has(name, OVERSEAS_STOCK_TAGS):
                totals.by_holder[holder] = value
            elif is_principal_name(name):
                totals.principal = value
            elif name_has(name, DIVIDEND_TAGS):
                totals.dividend = value

        elif category == Category.WATCHLIST:
            self._place(
                snapshot.watchlist,
                ("watchlist", period, name),
                WatchlistEntry(ticker=name, name=row.detail or name, added_period=period),
            )


def parse_ledger(
    rows: Sequence[RowLike],
    target_period: Optional[str] = None,
    *,
    holders: Sequence[str] = DEFAULT_HOLDERS,
    legacy_cutoff: str = DEFAULT_LEGACY_CUTOFF,
) -> PeriodSnapshot:
    """
    Parse the full row log into a snapshot.

    Args:
        rows: All rows as read from the store; rows[0] is the header
        target_period: Only fold rows of this period ("YYYY.MM" or "YYYY-MM").
                       None folds every row.
        holders: Person tags used to split balances and investment totals
        legacy_cutoff: Last period of the read-only legacy data

    Returns:
        The snapshot, including `unmatched` rows and parse `issues`
    """
    target = normalize_period(target_period) if target_period else None
    snapshot = PeriodSnapshot(
        period=target,
        is_legacy=is_legacy_period(target, legacy_cutoff) if target else False,
    )
    folder = _SnapshotFolder(snapshot, tuple(holders))

    # Row 1 is the header; sheet row numbers are 1-based
    for row_number, values in enumerate(rows[1:], start=2):
        row = coerce_row(values)
        if target and normalize_period(row.period) != target:
            continue
        folder.add(row, row_number)

    if snapshot.issues:
        logger.debug(
            "ledger_parse_issues",
            period=target,
            issue_count=len(snapshot.issues),
            unmatched_count=len(snapshot.unmatched),
        )
    return snapshot
