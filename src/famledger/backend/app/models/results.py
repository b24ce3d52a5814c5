"""Typed value objects produced by the aggregation and tax services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from famledger.backend.config.schema import Bracket
from famledger.backend.money import ZERO

from .records import AccountScope


@dataclass(frozen=True)
class RevenueWindow:
    """Gross revenue over the 12 months ending at the reference month."""

    reference_year: int
    reference_month: int
    scope: AccountScope
    total_gross_revenue: Decimal
    start: date
    end: date  # exclusive


@dataclass(frozen=True)
class BracketResolution:
    """Outcome of mapping a revenue figure onto a bracket table."""

    bracket: Bracket
    effective_rate: Decimal
    next_bracket_threshold: Decimal | None
    revenue: Decimal
    overridden: bool = False

    @property
    def index(self) -> int:
        return self.bracket.index

    @property
    def amount_until_next(self) -> Decimal | None:
        if self.next_bracket_threshold is None:
            return None
        remaining = self.next_bracket_threshold - self.revenue
        return remaining if remaining > 0 else ZERO


@dataclass(frozen=True)
class TaxResult:
    """Tax withheld from a single income event."""

    gross_amount: Decimal
    tax_amount: Decimal
    net_amount: Decimal
    effective_rate_applied: Decimal
    revenue_before: Decimal
    bracket_index: int


@dataclass(frozen=True)
class MonthlySummary:
    """Income, tax, and expense totals for one calendar month."""

    year: int
    month: int
    scope: AccountScope
    total_income_gross: Decimal = ZERO
    total_income_net: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_fixed: Decimal = ZERO
    total_variable: Decimal = ZERO
    total_cards: Decimal = ZERO
    total_bills: Decimal = ZERO
    total_expenses: Decimal = ZERO
    balance: Decimal = ZERO

    @classmethod
    def empty(cls, year: int, month: int, scope: AccountScope) -> MonthlySummary:
        return cls(year=year, month=month, scope=scope)

    @property
    def period(self) -> tuple[int, int]:
        return self.year, self.month

    def as_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "month": self.month,
            "account_ids": list(self.scope.ordered()),
            "total_income_gross": str(self.total_income_gross),
            "total_income_net": str(self.total_income_net),
            "total_tax": str(self.total_tax),
            "total_fixed": str(self.total_fixed),
            "total_variable": str(self.total_variable),
            "total_cards": str(self.total_cards),
            "total_bills": str(self.total_bills),
            "total_expenses": str(self.total_expenses),
            "balance": str(self.balance),
        }


@dataclass(frozen=True)
class BracketWarning:
    """How close revenue is to crossing into the next bracket."""

    level: str = "none"
    message_key: str | None = None
    is_approaching: bool = False
    amount_until_next: Decimal = ZERO
    percent_to_next: Decimal = ZERO
    next_bracket_rate: Decimal | None = None
    projected_bracket: int = 0


@dataclass(frozen=True)
class TaxProjection:
    """Year-to-date totals and a full-year extrapolation."""

    year: int
    months_elapsed: int
    calculated_on: date
    ytd_income: Decimal = ZERO
    ytd_tax: Decimal = ZERO
    ytd_net_income: Decimal = ZERO
    ytd_contribution: Decimal = ZERO
    projected_annual_income: Decimal = ZERO
    projected_annual_tax: Decimal = ZERO
    projected_annual_contribution: Decimal = ZERO
    projected_net_income: Decimal = ZERO
    revenue_basis: Decimal = ZERO
    resolution: BracketResolution | None = None
    bracket_warning: BracketWarning | None = None


@dataclass(frozen=True)
class MonthlyTaxBreakdown:
    month: int
    gross_income: Decimal = ZERO
    tax_paid: Decimal = ZERO
    net_income: Decimal = ZERO
    contribution_paid: Decimal = ZERO


@dataclass(frozen=True)
class MonthOverMonthComparison:
    """Current month against the previous one, with percentage changes."""

    current: MonthlySummary
    previous: MonthlySummary
    income_change: Decimal = ZERO
    income_change_percent: Decimal = ZERO
    expense_change: Decimal = ZERO
    expense_change_percent: Decimal = ZERO
    balance_change: Decimal = ZERO
    balance_change_percent: Decimal = ZERO


__all__ = [
    "BracketResolution",
    "BracketWarning",
    "MonthOverMonthComparison",
    "MonthlySummary",
    "MonthlyTaxBreakdown",
    "RevenueWindow",
    "TaxProjection",
    "TaxResult",
]
