"""Monthly income, tax, and expense summaries for an account scope.

The single-month and batch aggregators share :func:`build_monthly_summary`, so
a month summarised alone and the same month inside a range always agree. The
batch path issues a fixed number of fetches (one per record kind) regardless
of how many months it covers, then buckets rows by ``(year, month)`` in
memory.
"""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from contextlib import contextmanager
from time import perf_counter
from typing import Iterable, Mapping, Sequence

from famledger.backend.app.models import (
    AccountId,
    AccountScope,
    BillRecord,
    ExpenseRecord,
    IncomeRecord,
    InstallmentRecord,
    MonthlySummary,
)
from famledger.backend.money import ZERO

from .calculators.periods import iter_months, month_bounds, range_bounds
from .sources import RecordSource

_LOGGER = logging.getLogger(__name__)

Period = tuple[int, int]


def _profiling_enabled() -> bool:
    """Return ``True`` when aggregation profiling should be captured."""

    flag = os.getenv("FAMLEDGER_PROFILE_AGGREGATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None):
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _log_profile(label: str, store: dict[str, float] | None) -> None:
    if store is None:
        return
    timings = ", ".join(f"{name}={duration * 1000:.2f}ms" for name, duration in store.items())
    _LOGGER.debug("%s timings: %s", label, timings)


def build_monthly_summary(
    year: int,
    month: int,
    scope: AccountScope,
    *,
    incomes: Iterable[IncomeRecord] = (),
    fixed_expenses: Iterable[ExpenseRecord] = (),
    variable_expenses: Iterable[ExpenseRecord] = (),
    bills: Iterable[BillRecord] = (),
    installments: Iterable[InstallmentRecord] = (),
) -> MonthlySummary:
    """Fold the records that belong to ``(year, month)`` into a summary.

    Callers are responsible for passing only the month's incomes, variable
    expenses, and bills. Fixed expenses recur every month. Installment plans
    are checked here against their payment schedule.
    """

    gross = net = tax = ZERO
    for income in incomes:
        gross += income.gross_amount
        net += income.net_amount
        tax += income.tax_amount

    total_fixed = sum((expense.amount for expense in fixed_expenses), ZERO)
    total_variable = sum((expense.amount for expense in variable_expenses), ZERO)
    total_bills = sum((bill.amount for bill in bills), ZERO)
    total_cards = sum(
        (
            plan.installment_amount
            for plan in installments
            if plan.installment_number(year, month) is not None
        ),
        ZERO,
    )

    total_expenses = total_fixed + total_variable + total_cards + total_bills
    return MonthlySummary(
        year=year,
        month=month,
        scope=scope,
        total_income_gross=gross,
        total_income_net=net,
        total_tax=tax,
        total_fixed=total_fixed,
        total_variable=total_variable,
        total_cards=total_cards,
        total_bills=total_bills,
        total_expenses=total_expenses,
        balance=net - total_expenses,
    )


class MonthlySummaryAggregator:
    """Summarise one month for an account scope."""

    def __init__(self, source: RecordSource) -> None:
        self._source = source

    def summarize(
        self, scope: AccountScope | Iterable[AccountId], year: int, month: int
    ) -> MonthlySummary:
        resolved = AccountScope.coerce(scope)
        start, end = month_bounds(year, month)
        if resolved.is_empty:
            return MonthlySummary.empty(year, month, resolved)

        profile: dict[str, float] | None = {} if _profiling_enabled() else None
        with _profile_section("fetch", profile):
            incomes = self._source.fetch_incomes(resolved, start, end)
            fixed = self._source.fetch_fixed_expenses(resolved)
            variable = self._source.fetch_variable_expenses(resolved, start, end)
            bills = self._source.fetch_bills(resolved, start, end)
            installments = self._source.fetch_installments(resolved, start, end)
        with _profile_section("build", profile):
            summary = build_monthly_summary(
                year,
                month,
                resolved,
                incomes=incomes,
                fixed_expenses=fixed,
                variable_expenses=variable,
                bills=bills,
                installments=installments,
            )
        _log_profile(f"Monthly summary {year}-{month:02d}", profile)
        return summary


def _bucket(records: Iterable, key) -> Mapping[Period, list]:
    buckets: dict[Period, list] = defaultdict(list)
    for record in records:
        value = key(record)
        buckets[(value.year, value.month)].append(record)
    return buckets


class BatchMonthlySummaryAggregator:
    """Summarise a contiguous range of months with a constant number of fetches."""

    FETCHES_PER_RANGE = 5

    def __init__(self, source: RecordSource) -> None:
        self._source = source

    def summarize_range(
        self,
        scope: AccountScope | Iterable[AccountId],
        start_year: int,
        start_month: int,
        end_year: int,
        end_month: int,
    ) -> list[MonthlySummary]:
        """Return one summary per month from start to end inclusive, in order."""

        resolved = AccountScope.coerce(scope)
        start, end = range_bounds(start_year, start_month, end_year, end_month)
        periods: Sequence[Period] = list(
            iter_months(start_year, start_month, end_year, end_month)
        )

        if resolved.is_empty:
            return [MonthlySummary.empty(year, month, resolved) for year, month in periods]

        profile: dict[str, float] | None = {} if _profiling_enabled() else None
        with _profile_section("fetch", profile):
            incomes = self._source.fetch_incomes(resolved, start, end)
            fixed = list(self._source.fetch_fixed_expenses(resolved))
            variable = self._source.fetch_variable_expenses(resolved, start, end)
            bills = self._source.fetch_bills(resolved, start, end)
            installments = list(self._source.fetch_installments(resolved, start, end))
        _LOGGER.debug(
            "Batch summary %s..%s: %d fetches for %d month(s)",
            start,
            end,
            self.FETCHES_PER_RANGE,
            len(periods),
        )

        with _profile_section("bucket", profile):
            incomes_by_month = _bucket(incomes, lambda record: record.date)
            variable_by_month = _bucket(variable, lambda record: record.created_at)
            bills_by_month = _bucket(bills, lambda record: record.due_date)

        with _profile_section("build", profile):
            summaries = [
                build_monthly_summary(
                    year,
                    month,
                    resolved,
                    incomes=incomes_by_month.get((year, month), ()),
                    fixed_expenses=fixed,
                    variable_expenses=variable_by_month.get((year, month), ()),
                    bills=bills_by_month.get((year, month), ()),
                    installments=installments,
                )
                for year, month in periods
            ]
        _log_profile(f"Batch summary {start}..{end}", profile)
        return summaries


__all__ = [
    "BatchMonthlySummaryAggregator",
    "MonthlySummaryAggregator",
    "build_monthly_summary",
]
