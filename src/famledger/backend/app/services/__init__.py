"""Service-layer helpers for the FamLedger engine."""

from .projection_service import TaxProjectionService, bracket_warning
from .revenue_window import RevenueWindowAggregator
from .sources import InMemoryRecordSource, RecordSource, SQLiteRecordSource
from .summary_service import (
    BatchMonthlySummaryAggregator,
    MonthlySummaryAggregator,
    build_monthly_summary,
)
from .tax_service import IncomeTaxService

__all__ = [
    "BatchMonthlySummaryAggregator",
    "InMemoryRecordSource",
    "IncomeTaxService",
    "MonthlySummaryAggregator",
    "RecordSource",
    "RevenueWindowAggregator",
    "SQLiteRecordSource",
    "TaxProjectionService",
    "bracket_warning",
    "build_monthly_summary",
]
