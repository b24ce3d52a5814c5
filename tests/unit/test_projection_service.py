"""Unit coverage for projections, bracket warnings, and monthly comparisons."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from famledger.backend.app.models import AccountScope, BillRecord, IncomeRecord
from famledger.backend.app.services import (
    InMemoryRecordSource,
    TaxProjectionService,
    bracket_warning,
)
from famledger.backend.app.services.calculators import BracketResolver
from famledger.backend.config.schema import BracketTable, BracketWarningThresholds
from famledger.backend.config.settings_cache import SettingsCache

SCOPE = AccountScope.of(1)
TODAY = date(2024, 3, 15)


def _income(on: date, gross: str, tax: str = "0") -> IncomeRecord:
    return IncomeRecord(account_id=1, date=on, gross_amount=gross, tax_amount=tax)


@pytest.fixture()
def first_quarter(record_source: InMemoryRecordSource) -> InMemoryRecordSource:
    record_source.add_income(_income(date(2024, 1, 10), "10000", "600"))
    record_source.add_income(_income(date(2024, 2, 10), "20000", "1200"))
    record_source.add_income(_income(date(2024, 3, 10), "30000", "1800"))
    return record_source


def test_project_current_year_extrapolates_ytd(
    first_quarter: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    service = TaxProjectionService(first_quarter, settings_cache)

    projection = service.project(SCOPE, 2024, today=TODAY)

    assert projection.months_elapsed == 3
    assert projection.ytd_income == Decimal("60000")
    assert projection.ytd_tax == Decimal("3600")
    assert projection.ytd_net_income == Decimal("56400")
    assert projection.projected_annual_income == Decimal("240000.00")
    assert projection.revenue_basis == Decimal("60000")
    assert projection.resolution is not None and projection.resolution.index == 0
    assert projection.projected_annual_tax == Decimal("14400.00")
    assert projection.projected_net_income == Decimal("225600.00")


def test_project_includes_social_contribution(
    first_quarter: InMemoryRecordSource, standard_table: BracketTable, snapshot_factory
) -> None:
    snapshot = snapshot_factory(
        standard_table,
        contribution={"pro_labore": "5000", "ceiling": "7786.02", "rate": "0.11"},
    )
    service = TaxProjectionService(first_quarter, SettingsCache(loader=lambda: snapshot))

    projection = service.project(SCOPE, 2024, today=TODAY)

    assert projection.ytd_contribution == Decimal("1650.00")
    assert projection.projected_annual_contribution == Decimal("6600.00")
    assert projection.projected_net_income == Decimal("219000.00")


def test_project_warns_when_projection_crosses_bracket(
    first_quarter: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    projection = TaxProjectionService(first_quarter, settings_cache).project(
        SCOPE, 2024, today=TODAY
    )

    warning = projection.bracket_warning
    assert warning is not None
    assert warning.level == "critical"
    assert warning.message_key == "bracket_warning.critical"
    assert warning.is_approaching is True
    assert warning.projected_bracket == 1
    assert warning.amount_until_next == Decimal("120000.00")
    assert warning.percent_to_next == Decimal("33.33")
    assert warning.next_bracket_rate == Decimal("0.112")


def test_project_past_year_reports_actuals(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    record_source.add_income(_income(date(2023, 2, 1), "12000", "720"))
    record_source.add_income(_income(date(2023, 11, 30), "8000", "480"))
    service = TaxProjectionService(record_source, settings_cache)

    projection = service.project(SCOPE, 2023, today=TODAY)

    assert projection.months_elapsed == 12
    assert projection.projected_annual_income == Decimal("20000")
    assert projection.projected_annual_tax == Decimal("1200")
    assert projection.projected_net_income == Decimal("18800")
    assert projection.bracket_warning is None


def test_project_future_year_is_empty(
    first_quarter: InMemoryRecordSource, settings_cache: SettingsCache, counting_source
) -> None:
    service = TaxProjectionService(counting_source, settings_cache)

    projection = service.project(SCOPE, 2025, today=TODAY)

    assert projection.months_elapsed == 0
    assert projection.ytd_income == Decimal("0")
    assert projection.resolution is None
    assert counting_source.fetch_count == 0


def test_project_falls_back_to_projection_without_window_revenue(
    settings_cache: SettingsCache, record_source: InMemoryRecordSource
) -> None:
    service = TaxProjectionService(record_source, settings_cache, today=lambda: TODAY)

    projection = service.project(SCOPE, 2024)

    assert projection.revenue_basis == Decimal("0.00")
    assert projection.projected_annual_tax == Decimal("0")
    assert projection.bracket_warning is not None
    assert projection.bracket_warning.level == "none"


def test_project_uses_bounded_fetches(
    first_quarter: InMemoryRecordSource, settings_cache: SettingsCache, counting_source
) -> None:
    service = TaxProjectionService(counting_source, settings_cache)

    service.project(SCOPE, 2024, today=date(2024, 12, 20))

    # One batch aggregation plus one revenue-window sum.
    assert counting_source.fetch_count == 6


@pytest.mark.parametrize(
    ("revenue", "level"),
    [
        ("100000", "none"),
        ("130000", "low"),
        ("160000", "medium"),
        ("175000", "high"),
    ],
)
def test_bracket_warning_levels(standard_table: BracketTable, revenue: str, level: str) -> None:
    amount = Decimal(revenue)
    resolution = BracketResolver(standard_table).resolve(amount)

    warning = bracket_warning(amount, amount, resolution, standard_table)

    assert warning.level == level
    assert warning.projected_bracket == 0
    assert warning.is_approaching is (level != "none")


def test_bracket_warning_uses_configured_thresholds(standard_table: BracketTable) -> None:
    amount = Decimal("100000")
    resolution = BracketResolver(standard_table).resolve(amount)
    thresholds = BracketWarningThresholds(low=50, medium=60, high=70)

    warning = bracket_warning(amount, amount, resolution, standard_table, thresholds)

    assert warning.level == "low"
    assert warning.percent_to_next == Decimal("55.56")


def test_bracket_warning_measures_position_from_lower_bound(standard_table: BracketTable) -> None:
    amount = Decimal("300000")
    resolution = BracketResolver(standard_table).resolve(amount)

    warning = bracket_warning(amount, amount, resolution, standard_table)

    assert warning.percent_to_next == Decimal("66.67")
    assert warning.amount_until_next == Decimal("60000.00")
    assert warning.next_bracket_rate == Decimal("0.135")


def test_bracket_warning_in_catch_all(standard_table: BracketTable) -> None:
    amount = Decimal("400000")
    resolution = BracketResolver(standard_table).resolve(amount)

    warning = bracket_warning(amount, amount, resolution, standard_table)

    assert warning.level == "none"
    assert warning.message_key == "bracket_warning.last_bracket"
    assert warning.percent_to_next == Decimal("100")
    assert warning.next_bracket_rate is None


def test_monthly_tax_breakdown_has_twelve_rows(
    first_quarter: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    rows = TaxProjectionService(first_quarter, settings_cache).monthly_tax_breakdown(SCOPE, 2024)

    assert [row.month for row in rows] == list(range(1, 13))
    assert rows[1].gross_income == Decimal("20000")
    assert rows[1].tax_paid == Decimal("1200")
    assert rows[1].net_income == Decimal("18800")
    assert rows[5].gross_income == Decimal("0")
    assert all(row.contribution_paid == Decimal("0") for row in rows)


def test_month_over_month_across_year_boundary(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    record_source.add_income(_income(date(2023, 12, 5), "10000", "600"))
    record_source.add_income(_income(date(2024, 1, 5), "12000", "720"))
    record_source.add_bill(
        BillRecord(account_id=1, name="rent", amount="1000", due_date=date(2023, 12, 10))
    )
    record_source.add_bill(
        BillRecord(account_id=1, name="rent", amount="1200", due_date=date(2024, 1, 10))
    )

    comparison = TaxProjectionService(record_source, settings_cache).month_over_month(
        SCOPE, 2024, 1
    )

    assert comparison.previous.period == (2023, 12)
    assert comparison.current.period == (2024, 1)
    assert comparison.income_change == Decimal("2000")
    assert comparison.income_change_percent == Decimal("20")
    assert comparison.expense_change == Decimal("200")
    assert comparison.expense_change_percent == Decimal("20")
    assert comparison.balance_change == Decimal("1680")
    assert comparison.balance_change_percent == Decimal("20")


def test_month_over_month_from_empty_previous_month(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    record_source.add_income(_income(date(2024, 5, 5), "500"))

    comparison = TaxProjectionService(record_source, settings_cache).month_over_month(
        SCOPE, 2024, 5
    )

    assert comparison.income_change == Decimal("500")
    assert comparison.income_change_percent == Decimal("100")
    assert comparison.expense_change == Decimal("0")
    assert comparison.expense_change_percent == Decimal("0")
    assert comparison.balance_change == Decimal("500")
    assert comparison.balance_change_percent == Decimal("100")


def test_month_over_month_from_negative_balance(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    record_source.add_bill(
        BillRecord(account_id=1, name="repair", amount="1000", due_date=date(2024, 4, 2))
    )
    record_source.add_income(_income(date(2024, 5, 5), "500"))

    comparison = TaxProjectionService(record_source, settings_cache).month_over_month(
        SCOPE, 2024, 5
    )

    assert comparison.previous.balance == Decimal("-1000")
    assert comparison.balance_change == Decimal("1500")
    assert comparison.balance_change_percent == Decimal("150")
    assert comparison.expense_change == Decimal("-1000")
    assert comparison.expense_change_percent == Decimal("-100")
