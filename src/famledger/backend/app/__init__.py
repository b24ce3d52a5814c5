"""Engine factory wiring the aggregation and tax services to a data source."""

from __future__ import annotations

from dataclasses import dataclass

from famledger.backend.config.settings_cache import SettingsCache

from .services import (
    BatchMonthlySummaryAggregator,
    IncomeTaxService,
    MonthlySummaryAggregator,
    RecordSource,
    RevenueWindowAggregator,
    TaxProjectionService,
)


@dataclass(frozen=True)
class FinanceEngine:
    """Services sharing one record source and one settings cache."""

    source: RecordSource
    settings: SettingsCache
    revenue: RevenueWindowAggregator
    summaries: MonthlySummaryAggregator
    batch_summaries: BatchMonthlySummaryAggregator
    income_tax: IncomeTaxService
    projections: TaxProjectionService


def create_engine(
    source: RecordSource, *, settings_cache: SettingsCache | None = None
) -> FinanceEngine:
    """Create a :class:`FinanceEngine` reading records from ``source``.

    Without an explicit ``settings_cache`` the packaged YAML configuration is
    loaded lazily on first use.
    """

    settings = settings_cache or SettingsCache()
    return FinanceEngine(
        source=source,
        settings=settings,
        revenue=RevenueWindowAggregator(source),
        summaries=MonthlySummaryAggregator(source),
        batch_summaries=BatchMonthlySummaryAggregator(source),
        income_tax=IncomeTaxService(source, settings),
        projections=TaxProjectionService(source, settings),
    )


__all__ = ["FinanceEngine", "create_engine"]
