"""Map trailing revenue onto a progressive bracket table."""

from __future__ import annotations

from decimal import Decimal

from famledger.backend.app.models import BracketResolution
from famledger.backend.config.schema import (
    Bracket,
    BracketTable,
    EmptyBracketTable,
    InvalidOverride,
)
from famledger.backend.money import ZERO, to_decimal


def effective_rate(revenue: Decimal, bracket: Bracket) -> Decimal:
    """Return ``(revenue * rate - deduction) / revenue`` floored at zero.

    Without revenue to divide by, the bracket's nominal rate applies. The
    result is never rounded here; callers round the final monetary amount.
    """

    if revenue <= 0:
        return bracket.rate
    rate = (revenue * bracket.rate - bracket.deduction) / revenue
    return rate if rate > 0 else ZERO


class BracketResolver:
    """Resolve revenue figures against a single, immutable bracket table."""

    def __init__(self, table: BracketTable) -> None:
        self._table = table

    @property
    def table(self) -> BracketTable:
        return self._table

    def _require_brackets(self) -> None:
        if self._table.is_empty:
            raise EmptyBracketTable(
                f"Bracket table '{self._table.name}' does not define any brackets"
            )

    def natural_index(self, revenue: Decimal) -> int:
        """Return the smallest bracket index whose ceiling is at least ``revenue``."""

        self._require_brackets()
        for bracket in self._table.brackets:
            if bracket.ceiling is None or revenue <= bracket.ceiling:
                return bracket.index
        # Unreachable for validated tables; the final bracket is open-ended.
        return len(self._table) - 1

    def _override_index(self, override: int) -> int:
        if isinstance(override, bool) or not isinstance(override, int):
            raise InvalidOverride(f"Bracket override must be an integer index, got {override!r}")
        if not 0 <= override < len(self._table):
            raise InvalidOverride(
                f"Bracket override {override} is outside table "
                f"'{self._table.name}' (0..{len(self._table) - 1})"
            )
        return override

    def resolve(self, revenue: Decimal, override: int | None = None) -> BracketResolution:
        """Select the bracket for ``revenue``, honouring a manual ``override``.

        An override pins the bracket, but the effective rate is still derived
        from the actual revenue.
        """

        self._require_brackets()
        amount = to_decimal(revenue)
        if override is None:
            index = self.natural_index(amount)
        else:
            index = self._override_index(override)

        bracket = self._table[index]
        return BracketResolution(
            bracket=bracket,
            effective_rate=effective_rate(amount, bracket),
            next_bracket_threshold=bracket.ceiling,
            revenue=amount,
            overridden=override is not None,
        )


__all__ = ["BracketResolver", "effective_rate"]
