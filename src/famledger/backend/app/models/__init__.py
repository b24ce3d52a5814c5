"""Typed records and results shared across the aggregation services.

Inputs read from the data source are frozen Pydantic models so malformed rows
fail at the boundary. Derived results are lightweight frozen dataclasses that
callers serialise into whatever presentation format they need.
"""

from .records import (
    AccountId,
    AccountScope,
    BillRecord,
    ExpenseKind,
    ExpenseRecord,
    IncomeRecord,
    InstallmentRecord,
    RecordModel,
)
from .results import (
    BracketResolution,
    BracketWarning,
    MonthOverMonthComparison,
    MonthlySummary,
    MonthlyTaxBreakdown,
    RevenueWindow,
    TaxProjection,
    TaxResult,
)

__all__ = [
    "AccountId",
    "AccountScope",
    "BillRecord",
    "BracketResolution",
    "BracketWarning",
    "ExpenseKind",
    "ExpenseRecord",
    "IncomeRecord",
    "InstallmentRecord",
    "MonthOverMonthComparison",
    "MonthlySummary",
    "MonthlyTaxBreakdown",
    "RecordModel",
    "RevenueWindow",
    "TaxProjection",
    "TaxResult",
]
