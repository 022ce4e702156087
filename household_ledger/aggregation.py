"""
Aggregation Engine

Multi-period projections over the full row log. Each projection is its
own linear fold: no fold depends on another or on a parsed snapshot, so
any one of them can be recomputed alone.

Every fold is fail-soft per row: an unparseable amount counts as 0 and
the pass continues.

Expense inclusion rule (shared by monthly history and the rollup):
- only explicitly known tags count (canonical or alias table); tags
  recognized only by substring heuristics are ignored. The generic
  legacy "지출" rows duplicated the card total, so counting them would
  double count card spending.
- an unchecked fixed expense is not spending yet
"""

from typing import Optional, Sequence

from household_ledger.logging_setup import get_logger
from household_ledger.models.history import (
    BalanceDelta,
    BalanceSnapshot,
    CategoryRollupEntry,
    InvestmentHistoryPoint,
    MonthlyHistoryPoint,
)
from household_ledger.models.ledger import UNCHECKED, LedgerRow
from household_ledger.parsing import RowLike, coerce_row, parse_amount
from household_ledger.periods import normalize_period
from household_ledger.taxonomy import (
    BOND_NAME_TAGS,
    DEFAULT_HOLDERS,
    OVERSEAS_STOCK_TAGS,
    Category,
    CategoryResolution,
    holder_of,
    is_principal_name,
    name_has,
    resolve,
)

logger = get_logger(__name__)

DEFAULT_TOP_N = 5


def _iter_rows(rows: Sequence[RowLike]):
    """Yield (row, resolution) for every data row with a period and category."""
    for values in rows[1:]:
        row = coerce_row(values)
        if not row.period or not row.category:
            continue
        resolution = resolve(row.category)
        if not isinstance(resolution, CategoryResolution):
            logger.debug("aggregation_unmatched_category", category=row.category, period=row.period)
            resolution = None
        yield row, resolution


def counts_as_income(resolution: Optional[CategoryResolution]) -> bool:
    return resolution is not None and resolution.is_explicit and resolution.is_income


def counts_as_expense(row: LedgerRow, resolution: Optional[CategoryResolution]) -> bool:
    if resolution is None or not resolution.is_explicit or not resolution.is_expense:
        return False
    if resolution.category == Category.EXPENSE_FIXED and row.detail.strip() == UNCHECKED:
        return False
    return True


def _investment_bucket(name: str, holders: tuple[str, ...]) -> Optional[str]:
    """Holder bucket of an investment-total row, or "principal", or None."""
    holder = holder_of(name, holders)
    if holder and name_has(name, OVERSEAS_STOCK_TAGS):
        return holder
    if is_principal_name(name):
        return "principal"
    return None


# =============================================================================
# MONTHLY INCOME / EXPENSE
# =============================================================================

def aggregate_monthly_history(
    rows: Sequence[RowLike],
    holders: Sequence[str] = DEFAULT_HOLDERS,
) -> list[MonthlyHistoryPoint]:
    """
    Per-period income, expense, saving and investment, oldest first.

    Periods with neither income nor expense are left out.
    """
    holders = tuple(holders)
    income: dict[str, int] = {}
    expense: dict[str, int] = {}
    investments: dict[str, dict[str, int]] = {}

    for row, resolution in _iter_rows(rows):
        period = normalize_period(row.period)
        income.setdefault(period, 0)
        expense.setdefault(period, 0)

        if counts_as_income(resolution):
            income[period] += parse_amount(row.amount)
        elif counts_as_expense(row, resolution):
            expense[period] += parse_amount(row.amount)
        elif resolution is not None and resolution.category == Category.INVESTMENT_TOTAL:
            bucket = _investment_bucket(row.name, holders)
            if bucket and bucket != "principal":
                investments.setdefault(period, {})[bucket] = parse_amount(row.amount)

    history = []
    for period in sorted(income):
        if income[period] == 0 and expense[period] == 0:
            continue
        history.append(MonthlyHistoryPoint(
            period=period,
            income=income[period],
            expense=expense[period],
            saving=income[period] - expense[period],
            investment=sum(investments.get(period, {}).values()),
        ))
    return history


# =============================================================================
# INVESTMENT ACCOUNTS
# =============================================================================

def aggregate_investment_history(
    rows: Sequence[RowLike],
    holders: Sequence[str] = DEFAULT_HOLDERS,
) -> list[InvestmentHistoryPoint]:
    """
    Legacy investment-total valuations per period, oldest first.

    Rows whose name carries a holder tag and the overseas-stock tag go to
    that holder; "투자 원금" rows are the principal. The last row of a
    bucket in a period wins. Periods with a zero total are left out.
    """
    holders = tuple(holders)
    points: dict[str, InvestmentHistoryPoint] = {}

    for row, resolution in _iter_rows(rows):
        if resolution is None or resolution.category != Category.INVESTMENT_TOTAL:
            continue
        period = normalize_period(row.period)
        point = points.setdefault(
            period,
            InvestmentHistoryPoint(period=period, by_holder={h: 0 for h in holders}),
        )
        bucket = _investment_bucket(row.name, holders)
        if bucket == "principal":
            point.principal = parse_amount(row.amount)
        elif bucket:
            point.by_holder[bucket] = parse_amount(row.amount)

    history = []
    for period in sorted(points):
        point = points[period]
        point.total = sum(point.by_holder.values())
        if point.total > 0:
            history.append(point)
    return history


# =============================================================================
# CATEGORY ROLLUP
# =============================================================================

def aggregate_category_rollup(
    rows: Sequence[RowLike],
    top_n: int = DEFAULT_TOP_N,
) -> list[CategoryRollupEntry]:
    """
    Lifetime spending per entry name, largest first, cut to top_n.

    Percentages are shares of the whole rollup total, not of the top_n.
    """
    totals: dict[str, int] = {}
    for row, resolution in _iter_rows(rows):
        if not counts_as_expense(row, resolution):
            continue
        label = row.name or row.category
        totals[label] = totals.get(label, 0) + parse_amount(row.amount)

    grand_total = sum(totals.values())
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        CategoryRollupEntry(
            name=label,
            amount=amount,
            percent=round(amount / grand_total * 100, 1) if grand_total else 0.0,
        )
        for label, amount in ranked[:max(top_n, 0)]
    ]


# =============================================================================
# BALANCES
# =============================================================================

def aggregate_balance_history(rows: Sequence[RowLike]) -> dict[str, BalanceSnapshot]:
    """
    Cash, savings, bond and stock balances per period, oldest first.

    Amounts of the same kind within a period are summed. Rows repeating a
    (period, category, name) key count once, last write wins, as in the
    parser. Stock balances include the legacy investment-total rows for
    overseas stock.
    """
    entries: dict[tuple[str, Category, str], tuple[str, int]] = {}

    for row, resolution in _iter_rows(rows):
        if resolution is None:
            continue
        category = resolution.category
        value = parse_amount(row.amount)
        period = normalize_period(row.period)

        if category == Category.ASSET_BALANCE:
            field = "bond" if name_has(row.name, BOND_NAME_TAGS) else "cash"
        elif category == Category.ASSET_SAVINGS:
            field = "savings"
        elif category == Category.ASSET_BOND:
            field = "bond"
        elif category == Category.ASSET_STOCK_ACCOUNT:
            field = "stocks"
        elif category == Category.INVESTMENT_TOTAL and name_has(row.name, OVERSEAS_STOCK_TAGS):
            field = "stocks"
        else:
            continue

        entries[(period, category, row.name.strip())] = (field, value)

    history: dict[str, BalanceSnapshot] = {}
    for (period, _, _), (field, value) in entries.items():
        snapshot = history.setdefault(period, BalanceSnapshot())
        setattr(snapshot, field, getattr(snapshot, field) + value)

    return {period: history[period] for period in sorted(history)}


def percent_change(current: int, previous: Optional[int]) -> Optional[float]:
    """Percentage change, rounded to one decimal. None when there is no base."""
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)


def balance_deltas(history: dict[str, BalanceSnapshot]) -> list[BalanceDelta]:
    """Total assets per period with the change against the previous period."""
    deltas = []
    previous: Optional[int] = None
    for period in sorted(history):
        total = history[period].total
        deltas.append(BalanceDelta(
            period=period,
            total=total,
            change=None if previous is None else total - previous,
            change_percent=percent_change(total, previous),
        ))
        previous = total
    return deltas


def available_periods(rows: Sequence[RowLike]) -> list[str]:
    """Distinct periods present in the log, newest first."""
    periods = set()
    for values in rows[1:]:
        period = normalize_period(coerce_row(values).period)
        if period:
            periods.add(period)
    return sorted(periods, reverse=True)
