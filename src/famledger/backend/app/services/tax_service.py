"""Tax path for new income entries: window, bracket, and incremental tax.

Each computation reads one :class:`ConfigSnapshot` up front and passes it
through every step, so an override change mid-request cannot mix the old
table with the new override.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from famledger.backend.app.models import (
    AccountId,
    AccountScope,
    BracketResolution,
    IncomeRecord,
    RevenueWindow,
    TaxResult,
)
from famledger.backend.config.settings_cache import ConfigSnapshot, SettingsCache
from famledger.backend.money import to_decimal

from .calculators.brackets import BracketResolver
from .calculators.tax import TaxCalculator
from .revenue_window import RevenueWindowAggregator
from .sources import RecordSource

_LOGGER = logging.getLogger(__name__)


class IncomeTaxService:
    """Compute bracket information and tax previews for an account scope."""

    def __init__(
        self,
        source: RecordSource,
        settings_cache: SettingsCache,
        *,
        calculator: TaxCalculator | None = None,
    ) -> None:
        self._windows = RevenueWindowAggregator(source)
        self._settings = settings_cache
        self._calculator = calculator or TaxCalculator()

    def _snapshot(self, snapshot: ConfigSnapshot | None) -> ConfigSnapshot:
        return snapshot if snapshot is not None else self._settings.snapshot()

    def bracket_info(
        self,
        scope: AccountScope | Iterable[AccountId],
        year: int,
        month: int,
        snapshot: ConfigSnapshot | None = None,
    ) -> tuple[RevenueWindow, BracketResolution]:
        """Return the trailing window ending at ``(year, month)`` and its bracket."""

        config = self._snapshot(snapshot)
        window = self._windows.window(scope, year, month)
        resolution = BracketResolver(config.table).resolve(
            window.total_gross_revenue, config.manual_bracket
        )
        return window, resolution

    def preview(
        self,
        scope: AccountScope | Iterable[AccountId],
        gross_amount: Decimal,
        on: date,
        snapshot: ConfigSnapshot | None = None,
    ) -> TaxResult:
        """Return the tax owed on a not-yet-recorded income dated ``on``.

        The bracket is resolved from the trailing window *including* the new
        amount; the pre-entry revenue is reported for comparison only.
        """

        config = self._snapshot(snapshot)
        gross = to_decimal(gross_amount)
        window = self._windows.window(scope, on.year, on.month)
        revenue_before = window.total_gross_revenue
        revenue_after = revenue_before + gross if gross > 0 else revenue_before

        resolution = BracketResolver(config.table).resolve(
            revenue_after, config.manual_bracket
        )
        result = self._calculator.compute_incremental_tax(revenue_before, gross, resolution)
        _LOGGER.debug(
            "Tax preview: revenue %s -> %s, bracket %d%s, rate %s, tax %s",
            revenue_before,
            revenue_after,
            resolution.index,
            " (manual)" if resolution.overridden else "",
            resolution.effective_rate,
            result.tax_amount,
        )
        return result

    def build_income_record(
        self,
        account_id: AccountId,
        gross_amount: Decimal,
        on: date,
        *,
        scope: AccountScope | Iterable[AccountId] | None = None,
        description: str = "",
        snapshot: ConfigSnapshot | None = None,
    ) -> IncomeRecord:
        """Return the record a caller should persist for a new income entry.

        ``scope`` defaults to the receiving account alone; pass the owner's
        full account set when revenue is pooled across accounts.
        """

        resolved_scope = (
            AccountScope.of(account_id) if scope is None else AccountScope.coerce(scope)
        )
        result = self.preview(resolved_scope, gross_amount, on, snapshot)
        return IncomeRecord(
            account_id=account_id,
            date=on,
            gross_amount=result.gross_amount,
            tax_amount=result.tax_amount,
            net_amount=result.net_amount,
            description=description,
        )


__all__ = ["IncomeTaxService"]
