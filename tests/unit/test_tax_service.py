"""Unit coverage for the income tax preview path."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from famledger.backend.app import create_engine
from famledger.backend.app.models import AccountScope, IncomeRecord
from famledger.backend.app.services import IncomeTaxService, InMemoryRecordSource
from famledger.backend.config.schema import InvalidOverride
from famledger.backend.config.settings_cache import SettingsCache

SCOPE = AccountScope.of(1)


def _seed_revenue(source: InMemoryRecordSource, total: str, on: date = date(2024, 2, 10)) -> None:
    source.add_income(IncomeRecord(account_id=1, date=on, gross_amount=Decimal(total)))


def test_bracket_info_reports_window_and_resolution(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    _seed_revenue(record_source, "200000")
    service = IncomeTaxService(record_source, settings_cache)

    window, resolution = service.bracket_info(SCOPE, 2024, 3)

    assert window.total_gross_revenue == Decimal("200000")
    assert resolution.index == 1
    assert resolution.effective_rate == Decimal("0.0652")


def test_preview_resolves_with_new_amount_included(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    _seed_revenue(record_source, "190000")
    service = IncomeTaxService(record_source, settings_cache)

    result = service.preview(SCOPE, Decimal("10000"), date(2024, 3, 5))

    assert result.revenue_before == Decimal("190000")
    assert result.bracket_index == 1
    assert result.effective_rate_applied == Decimal("0.0652")
    assert result.tax_amount == Decimal("652.00")
    assert result.net_amount == Decimal("9348.00")


def test_preview_crossing_into_next_bracket(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    _seed_revenue(record_source, "175000")
    service = IncomeTaxService(record_source, settings_cache)

    result = service.preview(SCOPE, Decimal("10000"), date(2024, 3, 5))

    # Revenue before the entry sits in bracket 0; including it moves to bracket 1.
    assert result.bracket_index == 1


def test_preview_with_no_history_uses_the_entry_itself(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    service = IncomeTaxService(record_source, settings_cache)

    result = service.preview(SCOPE, Decimal("5000"), date(2024, 3, 5))

    assert result.revenue_before == Decimal("0")
    assert result.bracket_index == 0
    assert result.tax_amount == Decimal("300.00")


def test_preview_honours_manual_override_from_snapshot(
    record_source: InMemoryRecordSource, standard_table, snapshot_factory
) -> None:
    _seed_revenue(record_source, "100000")
    snapshot = snapshot_factory(standard_table, manual_bracket=1)
    service = IncomeTaxService(record_source, SettingsCache(loader=lambda: snapshot))

    result = service.preview(SCOPE, Decimal("10000"), date(2024, 3, 5))

    expected_rate = (Decimal("110000") * Decimal("0.112") - Decimal("9360")) / Decimal("110000")
    assert result.bracket_index == 1
    assert result.effective_rate_applied == expected_rate


def test_explicit_snapshot_wins_over_cache(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache, standard_table, snapshot_factory
) -> None:
    _seed_revenue(record_source, "100000")
    service = IncomeTaxService(record_source, settings_cache)
    pinned = snapshot_factory(standard_table, manual_bracket=2)

    _, resolution = service.bracket_info(SCOPE, 2024, 3, snapshot=pinned)

    assert resolution.index == 2
    assert resolution.overridden is True


def test_out_of_bounds_override_is_not_defaulted(
    record_source: InMemoryRecordSource, standard_table, snapshot_factory
) -> None:
    snapshot = snapshot_factory(standard_table, manual_bracket=5)
    service = IncomeTaxService(record_source, SettingsCache(loader=lambda: snapshot))

    with pytest.raises(InvalidOverride):
        service.preview(SCOPE, Decimal("100"), date(2024, 3, 5))


def test_build_income_record_carries_tax(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    _seed_revenue(record_source, "190000")
    engine = create_engine(record_source, settings_cache=settings_cache)

    record = engine.income_tax.build_income_record(
        1, Decimal("10000"), date(2024, 3, 5), description="March invoice"
    )

    assert isinstance(record, IncomeRecord)
    assert record.tax_amount == Decimal("652.00")
    assert record.net_amount == Decimal("9348.00")
    assert record.description == "March invoice"


def test_preview_is_idempotent(
    record_source: InMemoryRecordSource, settings_cache: SettingsCache
) -> None:
    _seed_revenue(record_source, "250000")
    service = IncomeTaxService(record_source, settings_cache)

    first = service.preview(SCOPE, Decimal("1234.56"), date(2024, 3, 5))
    second = service.preview(SCOPE, Decimal("1234.56"), date(2024, 3, 5))

    assert first == second
