"""Year-to-date tax projections, bracket approach warnings, and comparisons.

All month-level figures come from :class:`BatchMonthlySummaryAggregator`, so a
projection costs one batch of fetches plus one revenue-window query no matter
how far into the year it is computed.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from famledger.backend.app.models import (
    AccountId,
    AccountScope,
    BracketResolution,
    BracketWarning,
    MonthOverMonthComparison,
    MonthlySummary,
    MonthlyTaxBreakdown,
    TaxProjection,
)
from famledger.backend.config.schema import BracketTable, BracketWarningThresholds
from famledger.backend.config.settings_cache import ConfigSnapshot, SettingsCache
from famledger.backend.money import ZERO, round_currency

from .calculators.brackets import BracketResolver
from .calculators.contributions import calculate_contribution, ytd_contribution
from .calculators.periods import shift_month, validate_month
from .calculators.tax import TaxCalculator
from .calculators.utils import clamp, percent_of
from .revenue_window import RevenueWindowAggregator
from .sources import RecordSource
from .summary_service import BatchMonthlySummaryAggregator

_LOGGER = logging.getLogger(__name__)

_HUNDRED = Decimal("100")


def _round_percent(value: Decimal) -> Decimal:
    return round_currency(value)


def bracket_warning(
    current_revenue: Decimal,
    projected_revenue: Decimal,
    resolution: BracketResolution,
    table: BracketTable,
    thresholds: BracketWarningThresholds | None = None,
) -> BracketWarning:
    """Describe how close ``current_revenue`` is to leaving the resolved bracket.

    ``percent_to_next`` is the position inside the current bracket (0-100).
    A projection that lands in a higher bracket is always ``critical``. The
    next bracket's rate is reported as a fraction, like every other rate.
    """

    marks = thresholds or BracketWarningThresholds()
    index = resolution.index
    ceiling = resolution.bracket.ceiling

    if ceiling is None:
        return BracketWarning(
            level="none",
            message_key="bracket_warning.last_bracket",
            percent_to_next=_HUNDRED,
            projected_bracket=index,
        )

    lower = table.lower_bound(index)

    amount_until_next = ceiling - current_revenue
    if amount_until_next < 0:
        amount_until_next = ZERO

    span = ceiling - lower
    percent_to_next = ZERO
    if span > 0:
        percent_to_next = clamp(percent_of(current_revenue - lower, span), ZERO, _HUNDRED)

    projected_bracket = index
    if projected_revenue > 0:
        projected_bracket = BracketResolver(table).natural_index(projected_revenue)

    if projected_bracket > index:
        level = "critical"
    elif percent_to_next >= marks.high:
        level = "high"
    elif percent_to_next >= marks.medium:
        level = "medium"
    elif percent_to_next >= marks.low:
        level = "low"
    else:
        level = "none"

    return BracketWarning(
        level=level,
        message_key=None if level == "none" else f"bracket_warning.{level}",
        is_approaching=percent_to_next >= marks.low or projected_bracket > index,
        amount_until_next=round_currency(amount_until_next),
        percent_to_next=_round_percent(percent_to_next),
        next_bracket_rate=table[index + 1].rate,
        projected_bracket=projected_bracket,
    )


def _change(current: Decimal, previous: Decimal) -> tuple[Decimal, Decimal]:
    """Return the absolute and percent change for a non-negative quantity."""

    if previous > 0:
        delta = current - previous
        return delta, _round_percent(percent_of(delta, previous))
    if current > 0:
        return current, _HUNDRED
    return ZERO, ZERO


def _balance_change(current: Decimal, previous: Decimal) -> tuple[Decimal, Decimal]:
    """Return the balance change; negative baselines use their magnitude."""

    if previous != 0:
        delta = current - previous
        return delta, _round_percent(percent_of(delta, abs(previous)))
    return current, _HUNDRED if current > 0 else ZERO


class TaxProjectionService:
    """Project annual income and tax from year-to-date activity."""

    def __init__(
        self,
        source: RecordSource,
        settings_cache: SettingsCache,
        *,
        calculator: TaxCalculator | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._batch = BatchMonthlySummaryAggregator(source)
        self._windows = RevenueWindowAggregator(source)
        self._settings = settings_cache
        self._calculator = calculator or TaxCalculator()
        self._today = today or date.today

    def _snapshot(self, snapshot: ConfigSnapshot | None) -> ConfigSnapshot:
        return snapshot if snapshot is not None else self._settings.snapshot()

    def project(
        self,
        scope: AccountScope | Iterable[AccountId],
        year: int,
        today: date | None = None,
        snapshot: ConfigSnapshot | None = None,
    ) -> TaxProjection:
        """Return year-to-date totals and a full-year projection for ``year``.

        Past years report their actuals as the projection. Future years have
        no data and return an empty projection.
        """

        reference = today or self._today()
        resolved = AccountScope.coerce(scope)

        if year > reference.year:
            return TaxProjection(year=year, months_elapsed=0, calculated_on=reference)

        config = self._snapshot(snapshot)
        is_current = year == reference.year
        months_elapsed = reference.month if is_current else 12

        summaries = self._batch.summarize_range(resolved, year, 1, year, months_elapsed)
        ytd_income = sum((item.total_income_gross for item in summaries), ZERO)
        ytd_tax = sum((item.total_tax for item in summaries), ZERO)
        ytd_net = sum((item.total_income_net for item in summaries), ZERO)

        contribution = config.settings.contribution
        ytd_contrib = ytd_contribution(months_elapsed, contribution)
        annual_contrib = calculate_contribution(contribution) * 12

        projected_income = round_currency(ytd_income / months_elapsed * 12)
        projected_tax = ZERO
        projected_net = ZERO
        if not is_current:
            projected_income = ytd_income
            projected_tax = ytd_tax
            projected_net = ytd_net

        revenue_basis = self._windows.window_revenue(resolved, year, months_elapsed)
        if revenue_basis <= 0:
            revenue_basis = projected_income

        resolution = BracketResolver(config.table).resolve(
            revenue_basis, config.manual_bracket
        )

        warning = None
        if is_current:
            if projected_income > 0 and revenue_basis > 0:
                projected_tax = self._calculator.compute_incremental_tax(
                    revenue_basis, projected_income, resolution
                ).tax_amount
                projected_net = projected_income - projected_tax - annual_contrib
            warning = bracket_warning(
                revenue_basis,
                projected_income,
                resolution,
                config.table,
                config.settings.bracket_warning,
            )

        _LOGGER.debug(
            "Projection %d (%d month(s)): ytd %s, projected %s, bracket %d",
            year,
            months_elapsed,
            ytd_income,
            projected_income,
            resolution.index,
        )
        return TaxProjection(
            year=year,
            months_elapsed=months_elapsed,
            calculated_on=reference,
            ytd_income=ytd_income,
            ytd_tax=ytd_tax,
            ytd_net_income=ytd_net,
            ytd_contribution=ytd_contrib,
            projected_annual_income=projected_income,
            projected_annual_tax=projected_tax,
            projected_annual_contribution=annual_contrib,
            projected_net_income=projected_net,
            revenue_basis=revenue_basis,
            resolution=resolution,
            bracket_warning=warning,
        )

    def monthly_tax_breakdown(
        self,
        scope: AccountScope | Iterable[AccountId],
        year: int,
        snapshot: ConfigSnapshot | None = None,
    ) -> list[MonthlyTaxBreakdown]:
        """Return gross, tax, net, and contribution for each month of ``year``."""

        config = self._snapshot(snapshot)
        monthly_contribution = calculate_contribution(config.settings.contribution)
        summaries = self._batch.summarize_range(scope, year, 1, year, 12)
        return [
            MonthlyTaxBreakdown(
                month=summary.month,
                gross_income=summary.total_income_gross,
                tax_paid=summary.total_tax,
                net_income=summary.total_income_net,
                contribution_paid=monthly_contribution,
            )
            for summary in summaries
        ]

    def month_over_month(
        self,
        scope: AccountScope | Iterable[AccountId],
        year: int,
        month: int,
    ) -> MonthOverMonthComparison:
        """Compare ``(year, month)`` with the month before it."""

        validate_month(year, month)
        previous_year, previous_month = shift_month(year, month, -1)
        summaries = self._batch.summarize_range(
            scope, previous_year, previous_month, year, month
        )
        previous: MonthlySummary = summaries[0]
        current: MonthlySummary = summaries[-1]

        income_change, income_percent = _change(
            current.total_income_gross, previous.total_income_gross
        )
        expense_change, expense_percent = _change(
            current.total_expenses, previous.total_expenses
        )
        balance_change, balance_percent = _balance_change(current.balance, previous.balance)

        return MonthOverMonthComparison(
            current=current,
            previous=previous,
            income_change=income_change,
            income_change_percent=income_percent,
            expense_change=expense_change,
            expense_change_percent=expense_percent,
            balance_change=balance_change,
            balance_change_percent=balance_percent,
        )


__all__ = ["TaxProjectionService", "bracket_warning"]
