"""Calendar helpers for month-granular periods and trailing windows."""

from __future__ import annotations

from datetime import date
from typing import Iterator

WINDOW_MONTHS = 12


class InvalidRange(ValueError):
    """Raised when a month or a month range cannot be interpreted."""


def validate_month(year: int, month: int) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidRange(f"Month must be an integer between 1 and 12, got {month!r}")
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9998:
        raise InvalidRange(f"Year {year!r} is outside the supported range")


def month_index(year: int, month: int) -> int:
    """Return a monotonically increasing ordinal for ``(year, month)``."""

    return year * 12 + (month - 1)


def from_month_index(index: int) -> tuple[int, int]:
    year, offset = divmod(index, 12)
    return year, offset + 1


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months from ``(year, month)``, rolling over year boundaries."""

    return from_month_index(month_index(year, month) + delta)


def month_start(year: int, month: int) -> date:
    try:
        return date(year, month, 1)
    except ValueError as error:
        raise InvalidRange(f"{year}-{month:02d} is outside the supported calendar") from error


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` date range of one month."""

    validate_month(year, month)
    next_year, next_month = shift_month(year, month, 1)
    return month_start(year, month), month_start(next_year, next_month)


def window_bounds(year: int, month: int, months: int = WINDOW_MONTHS) -> tuple[date, date]:
    """Return the half-open range covering ``months`` months ending at ``(year, month)``.

    The reference month is included: for March 2024 the 12-month window spans
    April 2023 through March 2024.
    """

    validate_month(year, month)
    if months < 1:
        raise InvalidRange("A window must cover at least one month")
    first_year, first_month = shift_month(year, month, -(months - 1))
    next_year, next_month = shift_month(year, month, 1)
    return month_start(first_year, first_month), month_start(next_year, next_month)


def range_bounds(
    start_year: int, start_month: int, end_year: int, end_month: int
) -> tuple[date, date]:
    """Return the half-open date range spanning two inclusive months."""

    validate_month(start_year, start_month)
    validate_month(end_year, end_month)
    if month_index(end_year, end_month) < month_index(start_year, start_month):
        raise InvalidRange(
            f"Range end {end_year}-{end_month:02d} precedes start "
            f"{start_year}-{start_month:02d}"
        )
    next_year, next_month = shift_month(end_year, end_month, 1)
    return month_start(start_year, start_month), month_start(next_year, next_month)


def iter_months(
    start_year: int, start_month: int, end_year: int, end_month: int
) -> Iterator[tuple[int, int]]:
    """Yield every ``(year, month)`` from start to end inclusive, in order."""

    range_bounds(start_year, start_month, end_year, end_month)
    for index in range(
        month_index(start_year, start_month), month_index(end_year, end_month) + 1
    ):
        yield from_month_index(index)


def last_day_of_month(year: int, month: int) -> int:
    start, end = month_bounds(year, month)
    return (end - start).days


__all__ = [
    "InvalidRange",
    "WINDOW_MONTHS",
    "from_month_index",
    "iter_months",
    "last_day_of_month",
    "month_bounds",
    "month_index",
    "month_start",
    "range_bounds",
    "shift_month",
    "validate_month",
    "window_bounds",
]
