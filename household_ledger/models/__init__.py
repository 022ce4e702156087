"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger system.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.ledger import (
    UNCHECKED,
    Assets,
    BondHolding,
    BondTerms,
    CheckFlag,
    CompositeKey,
    Expenses,
    FixedExpense,
    FixedIncome,
    Incomes,
    InvestmentTotals,
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
from household_ledger.models.history import (
    BalanceDelta,
    BalanceSnapshot,
    CategoryRollupEntry,
    InvestmentHistoryPoint,
    MonthlyHistoryPoint,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "UNCHECKED",
    "Assets",
    "BondHolding",
    "BondTerms",
    "CheckFlag",
    "CompositeKey",
    "Expenses",
    "FixedExpense",
    "FixedIncome",
    "Incomes",
    "InvestmentTotals",
    "LedgerRow",
    "MemoDetail",
    "PeriodSnapshot",
    "RowDetail",
    "RowIssue",
    "StockPosition",
    "StockTerms",
    "VariableExpense",
    "VariableIncome",
    "WatchlistEntry",
    # Projection models
    "BalanceDelta",
    "BalanceSnapshot",
    "CategoryRollupEntry",
    "InvestmentHistoryPoint",
    "MonthlyHistoryPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
