"""Trailing twelve-month gross revenue used to select tax brackets."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from famledger.backend.app.models import AccountId, AccountScope, RevenueWindow
from famledger.backend.money import ZERO

from .calculators.periods import WINDOW_MONTHS, window_bounds
from .sources import RecordSource

_LOGGER = logging.getLogger(__name__)


class RevenueWindowAggregator:
    """Sum gross income over the 12 months ending at a reference month.

    Results are never cached: two calls over unchanged data return equal
    values, and a new income is visible on the very next call.
    """

    def __init__(self, source: RecordSource) -> None:
        self._source = source

    def window(
        self, scope: AccountScope | Iterable[AccountId], year: int, month: int
    ) -> RevenueWindow:
        resolved = AccountScope.coerce(scope)
        start, end = window_bounds(year, month, WINDOW_MONTHS)

        if resolved.is_empty:
            total = ZERO
        else:
            total = self._source.sum_gross_income(resolved, start, end)
            _LOGGER.debug(
                "Revenue window %s..%s for %d account(s): %s",
                start,
                end,
                len(resolved),
                total,
            )

        return RevenueWindow(
            reference_year=year,
            reference_month=month,
            scope=resolved,
            total_gross_revenue=total,
            start=start,
            end=end,
        )

    def window_revenue(
        self, scope: AccountScope | Iterable[AccountId], year: int, month: int
    ) -> Decimal:
        return self.window(scope, year, month).total_gross_revenue


__all__ = ["RevenueWindowAggregator"]
