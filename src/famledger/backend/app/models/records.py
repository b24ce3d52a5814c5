"""Validated shapes of the externally owned records the engine reads."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Iterator, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from famledger.backend.money import ZERO, to_decimal

AccountId = Union[int, str]


@dataclass(frozen=True)
class AccountScope:
    """Set of account identifiers an aggregation is computed over.

    Scopes are always explicit. An empty scope is valid and yields zero
    aggregates; ``None`` is rejected so a forgotten filter never widens a
    query to every account.
    """

    account_ids: frozenset[AccountId] = frozenset()

    @classmethod
    def of(cls, *account_ids: AccountId) -> AccountScope:
        return cls(frozenset(account_ids))

    @classmethod
    def coerce(cls, value: AccountScope | Iterable[AccountId]) -> AccountScope:
        if isinstance(value, AccountScope):
            return value
        if value is None:
            raise TypeError("An explicit account scope is required (use an empty scope)")
        if isinstance(value, (str, bytes)):
            raise TypeError("Account scopes must be collections of identifiers")
        return cls(frozenset(value))

    @property
    def is_empty(self) -> bool:
        return not self.account_ids

    def ordered(self) -> tuple[AccountId, ...]:
        """Return identifiers in a stable order for query parameters and logs."""

        return tuple(sorted(self.account_ids, key=lambda item: (type(item).__name__, item)))

    def __contains__(self, account_id: object) -> bool:
        return account_id in self.account_ids

    def __iter__(self) -> Iterator[AccountId]:
        return iter(self.ordered())

    def __len__(self) -> int:
        return len(self.account_ids)


class RecordModel(BaseModel):
    """Base class for immutable, strictly shaped records."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _coerce_amount(value: Any) -> Decimal:
    return to_decimal(value)


def _coerce_date(value: Any) -> Any:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        # Accept timestamps such as ``2024-01-20 10:30:00`` from SQL rows.
        return value[:10]
    return value


class IncomeRecord(RecordModel):
    """A received payment with its gross, withheld tax, and net amounts."""

    account_id: AccountId
    date: dt.date
    gross_amount: Decimal
    tax_amount: Decimal = ZERO
    net_amount: Decimal | None = None
    description: str = ""

    @field_validator("gross_amount", "tax_amount", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal:
        return _coerce_amount(value)

    @field_validator("net_amount", mode="before")
    @classmethod
    def _coerce_net(cls, value: Any) -> Decimal | None:
        if value is None:
            return None
        return _coerce_amount(value)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_record_date(cls, value: Any) -> Any:
        return _coerce_date(value)

    @model_validator(mode="after")
    def _derive_net(self) -> IncomeRecord:
        if self.net_amount is None:
            object.__setattr__(self, "net_amount", self.gross_amount - self.tax_amount)
        return self


class ExpenseKind(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ExpenseRecord(RecordModel):
    """A recurring (fixed) or one-off (variable) expense."""

    account_id: AccountId
    name: str = ""
    amount: Decimal
    kind: ExpenseKind = Field(alias="type")
    due_day: int = Field(default=1, ge=1, le=31)
    active: bool = True
    created_at: dt.date

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal:
        return _coerce_amount(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created(cls, value: Any) -> Any:
        return _coerce_date(value)

    @property
    def is_fixed(self) -> bool:
        return self.kind is ExpenseKind.FIXED


class BillRecord(RecordModel):
    """A one-time bill with a due date."""

    account_id: AccountId
    name: str = ""
    amount: Decimal
    due_date: dt.date
    paid: bool = False

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal:
        return _coerce_amount(value)

    @field_validator("due_date", mode="before")
    @classmethod
    def _coerce_due(cls, value: Any) -> Any:
        return _coerce_date(value)


class InstallmentRecord(RecordModel):
    """A credit-card purchase paid in equal monthly installments."""

    account_id: AccountId
    description: str = ""
    installment_amount: Decimal
    total_installments: int = Field(ge=1)
    start_date: dt.date

    @field_validator("installment_amount", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal:
        return _coerce_amount(value)

    @field_validator("start_date", mode="before")
    @classmethod
    def _coerce_start(cls, value: Any) -> Any:
        return _coerce_date(value)

    def installment_number(self, year: int, month: int) -> int | None:
        """Return the 1-based installment due in ``(year, month)``, if any."""

        offset = (year - self.start_date.year) * 12 + (month - self.start_date.month)
        if 0 <= offset < self.total_installments:
            return offset + 1
        return None

    def last_payment_month(self) -> tuple[int, int]:
        index = self.start_date.year * 12 + self.start_date.month - 1
        year, month_offset = divmod(index + self.total_installments - 1, 12)
        return year, month_offset + 1


__all__ = [
    "AccountId",
    "AccountScope",
    "BillRecord",
    "ExpenseKind",
    "ExpenseRecord",
    "IncomeRecord",
    "InstallmentRecord",
    "RecordModel",
]
