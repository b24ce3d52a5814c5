#!/usr/bin/env python3
"""Compare batch and per-month summary aggregation on synthetic data."""

from __future__ import annotations

import json
import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from time import perf_counter

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from famledger.backend.app.models import (  # noqa: E402
    AccountScope,
    BillRecord,
    ExpenseRecord,
    IncomeRecord,
    InstallmentRecord,
)
from famledger.backend.app.services import (  # noqa: E402
    BatchMonthlySummaryAggregator,
    InMemoryRecordSource,
    MonthlySummaryAggregator,
)
from famledger.backend.app.services.calculators import iter_months  # noqa: E402

SCOPE = AccountScope.of(1, 2)


class CountingSource:
    """Wrap a record source and count every fetch it serves."""

    def __init__(self, inner: InMemoryRecordSource) -> None:
        self._inner = inner
        self.calls = 0

    def __getattr__(self, name: str):
        attribute = getattr(self._inner, name)
        if not callable(attribute):
            return attribute

        def _counted(*args, **kwargs):
            self.calls += 1
            return attribute(*args, **kwargs)

        return _counted


def build_source(year: int) -> InMemoryRecordSource:
    source = InMemoryRecordSource()
    for month in range(1, 13):
        for account in (1, 2):
            source.add_income(
                IncomeRecord(
                    account_id=account,
                    date=date(year, month, 5),
                    gross_amount=Decimal("8000.00"),
                    tax_amount=Decimal("480.00"),
                )
            )
            source.add_expense(
                ExpenseRecord(
                    account_id=account,
                    name="groceries",
                    amount=Decimal("650.00"),
                    type="variable",
                    created_at=date(year, month, 12),
                )
            )
            source.add_bill(
                BillRecord(
                    account_id=account,
                    name="utilities",
                    amount=Decimal("210.00"),
                    due_date=date(year, month, 20),
                )
            )
    source.add_expense(
        ExpenseRecord(
            account_id=1,
            name="rent",
            amount=Decimal("2500.00"),
            type="fixed",
            due_day=10,
            created_at=date(year - 1, 1, 1),
        )
    )
    source.add_installment(
        InstallmentRecord(
            account_id=2,
            description="laptop",
            installment_amount=Decimal("400.00"),
            total_installments=10,
            start_date=date(year, 3, 15),
        )
    )
    return source


def measure(iterations: int, year: int) -> dict[str, dict[str, float]]:
    """Return fetch counts and timings for both aggregation strategies."""

    single_source = CountingSource(build_source(year))
    batch_source = CountingSource(build_source(year))
    single = MonthlySummaryAggregator(single_source)
    batch = BatchMonthlySummaryAggregator(batch_source)

    start = perf_counter()
    for _ in range(iterations):
        for period_year, period_month in iter_months(year, 1, year, 12):
            single.summarize(SCOPE, period_year, period_month)
    single_elapsed = perf_counter() - start

    start = perf_counter()
    for _ in range(iterations):
        batch.summarize_range(SCOPE, year, 1, year, 12)
    batch_elapsed = perf_counter() - start

    return {
        "per_month": {
            "fetches_per_year": single_source.calls / iterations,
            "average_ms": (single_elapsed / iterations) * 1000,
        },
        "batch": {
            "fetches_per_year": batch_source.calls / iterations,
            "average_ms": (batch_elapsed / iterations) * 1000,
        },
    }


def main() -> None:
    iterations = int(os.getenv("FAMLEDGER_PROFILE_ITERATIONS", "75"))
    report = measure(iterations, date.today().year)
    print(json.dumps(report, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
