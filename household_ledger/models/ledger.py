"""
Core Data Models for Household Ledger

These models define the schemas for all data flowing through the system:
1. LedgerRow - one positional row of the sheet
2. CompositeKey - the logical primary key of a row
3. Typed detail variants - the per-category meaning of the detail column
4. PeriodSnapshot - the structured view of one period

DESIGN DECISION: The store holds everything as loose strings. Models here
accept those strings as-is; interpretation (amounts, flags, sub-records)
happens in the parser so a bad cell never prevents a row from loading.
"""

from typing import Annotated, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from household_ledger.periods import normalize_period

ROW_WIDTH = 5

# Sentinel written into the detail column of an unchecked fixed expense
UNCHECKED = "unchecked"


# =============================================================================
# ROWS AND KEYS
# =============================================================================

class CompositeKey(BaseModel):
    """
    Logical primary key of a ledger row: (period, category, name).

    The store enforces no uniqueness; the upsert engine keeps it by
    scanning before every write.
    """
    model_config = ConfigDict(frozen=True)

    period: str
    category: str
    name: str

    def __str__(self) -> str:
        return f"{self.period}/{self.category}/{self.name}"


class LedgerRow(BaseModel):
    """
    One row of the ledger sheet.

    Columns in order: [period, category, name, amount, detail].
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    period: str = Field(
        default="",
        description="Period key, YYYY.MM"
    )
    category: str = Field(
        default="",
        description="Category tag, canonical or legacy alias"
    )
    name: str = Field(
        default="",
        description="Entry name, unique only within (period, category)"
    )
    amount: Union[int, float, str] = Field(
        default="",
        description="Amount as stored; thousands separators allowed"
    )
    detail: str = Field(
        default="",
        description="Memo, checked flag or pipe-delimited sub-record"
    )

    @classmethod
    def from_values(cls, values: Sequence) -> "LedgerRow":
        """Build a row from positional cells, padding missing ones with ""."""
        cells = list(values)[:ROW_WIDTH]
        cells += [""] * (ROW_WIDTH - len(cells))
        period, category, name, amount, detail = (
            "" if cell is None else cell for cell in cells
        )
        return cls(
            period=str(period),
            category=str(category),
            name=str(name),
            amount=amount,
            detail=str(detail),
        )

    def to_values(self) -> list:
        """Convert to a positional row for the store."""
        return [self.period, self.category, self.name, self.amount, self.detail]

    @property
    def key(self) -> CompositeKey:
        return CompositeKey(
            period=normalize_period(self.period),
            category=self.category,
            name=self.name,
        )


# =============================================================================
# TYPED DETAIL VARIANTS
# =============================================================================

class MemoDetail(BaseModel):
    """Free-text memo (variable income and everything without structure)."""
    kind: Literal["memo"] = "memo"
    text: str = ""


class CheckFlag(BaseModel):
    """Checked flag of a fixed expense. Anything but "unchecked" is checked."""
    kind: Literal["check"] = "check"
    checked: bool = True


class BondTerms(BaseModel):
    """Bond sub-record: purchaseDate|yieldRate|maturityMonths."""
    kind: Literal["bond"] = "bond"
    purchase_date: str = ""
    yield_rate: float = 0.0
    maturity_months: int = 0


class StockTerms(BaseModel):
    """Stock holding sub-record: qty|avgPrice|account."""
    kind: Literal["stock"] = "stock"
    qty: int = 0
    avg_price: float = 0.0
    account: str = ""


RowDetail = Annotated[
    Union[MemoDetail, CheckFlag, BondTerms, StockTerms],
    Field(discriminator="kind"),
]


# =============================================================================
# SNAPSHOT BUCKET ENTRIES
# =============================================================================

class FixedIncome(BaseModel):
    name: str
    amount: int = 0


class VariableIncome(BaseModel):
    name: str
    amount: int = 0
    memo: str = ""


class FixedExpense(BaseModel):
    name: str
    amount: int = 0
    checked: bool = True


class VariableExpense(BaseModel):
    name: str
    amount: int = 0


class BondHolding(BaseModel):
    balance: int = 0
    purchase_date: str = ""
    yield_rate: float = 0.0
    maturity_months: int = 0


class StockPosition(BaseModel):
    ticker: str
    qty: int = 0
    avg_price: float = 0.0
    account: str = ""
    is_legacy: bool = True


class WatchlistEntry(BaseModel):
    """Legacy watchlist row: ticker in name, display name in detail."""
    ticker: str
    name: str
    added_period: str = ""


class Incomes(BaseModel):
    fixed: list[FixedIncome] = Field(default_factory=list)
    variable: list[VariableIncome] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(i.amount for i in self.fixed) + sum(i.amount for i in self.variable)


class Expenses(BaseModel):
    fixed: list[FixedExpense] = Field(default_factory=list)
    variable: list[VariableExpense] = Field(default_factory=list)
    card: int = 0

    @property
    def total(self) -> int:
        """Total spend; unchecked fixed expenses are not counted."""
        fixed = sum(e.amount for e in self.fixed if e.checked)
        return fixed + sum(e.amount for e in self.variable) + self.card


class Assets(BaseModel):
    balances: dict[str, int] = Field(
        default_factory=dict,
        description="Cash balance per account holder"
    )
    savings: int = 0
    bond: BondHolding = Field(default_factory=BondHolding)
    stock_accounts: dict[str, int] = Field(
        default_factory=dict,
        description="Manually entered stock account valuations keyed by row name"
    )


class InvestmentTotals(BaseModel):
    """Legacy investment-total bucket (total valuations, pre web-UI)."""
    by_holder: dict[str, int] = Field(default_factory=dict)
    principal: int = 0
    dividend: int = 0


# =============================================================================
# PARSE DIAGNOSTICS
# =============================================================================

class RowIssue(BaseModel):
    """A row the parser skipped or defaulted instead of failing on."""

    row_number: int = Field(
        ...,
        ge=1,
        description="1-based sheet row number (header is row 1)"
    )
    reason: Literal["missing_key", "unmatched_category", "amount_defaulted"]
    message: str
    row: LedgerRow


class PeriodSnapshot(BaseModel):
    """
    Structured financial view of one period.

    Ephemeral: derived fresh from the row log on every read.
    """

    period: Optional[str] = Field(
        default=None,
        description="Period this snapshot covers; None means all rows"
    )
    is_legacy: bool = False

    incomes: Incomes = Field(default_factory=Incomes)
    expenses: Expenses = Field(default_factory=Expenses)
    assets: Assets = Field(default_factory=Assets)
    stocks: list[StockPosition] = Field(default_factory=list)
    investment_totals: InvestmentTotals = Field(default_factory=InvestmentTotals)
    watchlist: list[WatchlistEntry] = Field(default_factory=list)

    # Rows with an unknown category, kept for inspection
    unmatched: list[LedgerRow] = Field(default_factory=list)
    issues: list[RowIssue] = Field(default_factory=list)

    @property
    def net(self) -> int:
        return self.incomes.total - self.expenses.total
