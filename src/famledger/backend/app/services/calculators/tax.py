"""Tax withheld on a single income event."""

from __future__ import annotations

from decimal import Decimal

from famledger.backend.app.models import BracketResolution, TaxResult
from famledger.backend.money import ZERO, round_currency, to_decimal


class TaxCalculator:
    """Apply a resolved effective rate to one gross amount."""

    def compute_incremental_tax(
        self,
        revenue_before: Decimal,
        gross_amount: Decimal,
        resolution: BracketResolution,
    ) -> TaxResult:
        """Return the tax and net amount for ``gross_amount``.

        ``revenue_before`` is carried through for diagnostics only; the rate is
        entirely determined by ``resolution``. Non-positive amounts carry no
        tax. Rounding to cents happens once, on the tax amount.
        """

        gross = to_decimal(gross_amount)
        before = to_decimal(revenue_before)

        if gross <= 0:
            tax = ZERO
        else:
            tax = round_currency(gross * resolution.effective_rate)

        return TaxResult(
            gross_amount=gross,
            tax_amount=tax,
            net_amount=gross - tax,
            effective_rate_applied=resolution.effective_rate,
            revenue_before=before,
            bracket_index=resolution.index,
        )


def compute_incremental_tax(
    revenue_before: Decimal, gross_amount: Decimal, resolution: BracketResolution
) -> TaxResult:
    return TaxCalculator().compute_incremental_tax(revenue_before, gross_amount, resolution)


__all__ = ["TaxCalculator", "compute_incremental_tax"]
