"""Decimal helpers shared by the configuration schema, records, and calculators."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any, Final

ZERO: Final = Decimal("0")
CENT: Final = Decimal("0.01")
RATE_QUANTUM: Final = Decimal("0.0001")


def to_decimal(value: Any) -> Decimal:
    """Convert ``value`` into a :class:`~decimal.Decimal` without float artefacts.

    Floats go through ``str`` so ``0.112`` stays ``Decimal("0.112")`` instead of
    its binary expansion. Booleans are rejected because ``True`` is an ``int``.
    """

    if isinstance(value, bool):
        raise ValueError("Boolean values are not valid amounts")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, Real):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid decimal value: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Amounts must be finite, got {value!r}")
    return result


def round_currency(value: Decimal) -> Decimal:
    """Round monetary amounts half-up to the smallest currency unit."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    """Round rate values to four decimals for display."""

    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


__all__ = ["CENT", "RATE_QUANTUM", "ZERO", "round_currency", "round_rate", "to_decimal"]
