"""Utility helpers for calculator modules."""

from __future__ import annotations

from decimal import Decimal

from famledger.backend.money import ZERO, round_currency, round_rate

_HUNDRED = Decimal("100")


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return ``part`` as a percentage of ``whole`` (zero when ``whole`` is zero)."""

    if whole == 0:
        return ZERO
    return part / whole * _HUNDRED


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, value))


__all__ = ["clamp", "percent_of", "round_currency", "round_rate"]
