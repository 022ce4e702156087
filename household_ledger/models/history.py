"""
Projection Models

Outputs of the aggregation folds. Each one is a plain derived value
with no identity of its own; charts and reports consume them as-is.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MonthlyHistoryPoint(BaseModel):
    """Income/expense totals of one period."""

    period: str
    income: int = 0
    expense: int = 0
    saving: int = Field(
        default=0,
        description="income - expense"
    )
    investment: int = Field(
        default=0,
        description="Sum of the holder investment-total buckets"
    )


class InvestmentHistoryPoint(BaseModel):
    """Legacy investment-total valuations of one period."""

    period: str
    by_holder: dict[str, int] = Field(default_factory=dict)
    principal: int = 0
    total: int = Field(
        default=0,
        description="Sum of by_holder"
    )


class CategoryRollupEntry(BaseModel):
    """One line of the lifetime expense rollup."""

    name: str
    amount: int = 0
    percent: float = Field(
        default=0.0,
        description="Share of the whole rollup total, 0-100"
    )


class BalanceSnapshot(BaseModel):
    """Asset balances of one period."""

    cash: int = 0
    savings: int = 0
    bond: int = 0
    stocks: int = 0

    @property
    def total(self) -> int:
        return self.cash + self.savings + self.bond + self.stocks


class BalanceDelta(BaseModel):
    """Change of total assets against the previous period."""

    period: str
    total: int
    change: Optional[int] = None
    change_percent: Optional[float] = None
