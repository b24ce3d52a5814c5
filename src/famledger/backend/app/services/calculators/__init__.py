"""Pure calculation helpers that never touch the data source."""

from .brackets import BracketResolver, effective_rate
from .contributions import calculate_contribution, ytd_contribution
from .periods import (
    WINDOW_MONTHS,
    InvalidRange,
    iter_months,
    month_bounds,
    range_bounds,
    shift_month,
    window_bounds,
)
from .tax import TaxCalculator, compute_incremental_tax
from .utils import percent_of, round_currency, round_rate

__all__ = [
    "BracketResolver",
    "InvalidRange",
    "TaxCalculator",
    "WINDOW_MONTHS",
    "calculate_contribution",
    "compute_incremental_tax",
    "effective_rate",
    "iter_months",
    "month_bounds",
    "percent_of",
    "range_bounds",
    "round_currency",
    "round_rate",
    "shift_month",
    "window_bounds",
    "ytd_contribution",
]
