"""Read-only access to the externally owned income and expense records.

The engine never writes to the store. Every method takes an explicit
:class:`~famledger.backend.app.models.AccountScope` and a half-open
``[start, end)`` date range; an empty scope returns nothing without issuing a
query.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from datetime import date
from decimal import Decimal
from threading import Lock
from typing import Any, Iterable, List, Protocol, Sequence, runtime_checkable

from famledger.backend.app.models import (
    AccountScope,
    BillRecord,
    ExpenseKind,
    ExpenseRecord,
    IncomeRecord,
    InstallmentRecord,
)
from famledger.backend.money import ZERO, to_decimal

_LOGGER = logging.getLogger(__name__)


@runtime_checkable
class RecordSource(Protocol):
    """Queries the aggregation services rely on."""

    def sum_gross_income(self, scope: AccountScope, start: date, end: date) -> Decimal:
        ...

    def fetch_incomes(
        self, scope: AccountScope, start: date, end: date
    ) -> Sequence[IncomeRecord]:
        ...

    def fetch_fixed_expenses(self, scope: AccountScope) -> Sequence[ExpenseRecord]:
        """Return active fixed expenses; they recur every month."""
        ...

    def fetch_variable_expenses(
        self, scope: AccountScope, start: date, end: date
    ) -> Sequence[ExpenseRecord]:
        """Return active variable expenses created inside the range."""
        ...

    def fetch_bills(self, scope: AccountScope, start: date, end: date) -> Sequence[BillRecord]:
        ...

    def fetch_installments(
        self, scope: AccountScope, start: date, end: date
    ) -> Sequence[InstallmentRecord]:
        """Return installment plans with at least one payment inside the range."""
        ...


def _in_range(value: date, start: date, end: date) -> bool:
    return start <= value < end


def _installment_overlaps(record: InstallmentRecord, start: date, end: date) -> bool:
    last_year, last_month = record.last_payment_month()
    last_payment = date(last_year, last_month, 1)
    first_payment = record.start_date.replace(day=1)
    return first_payment < end and last_payment >= start.replace(day=1)


class InMemoryRecordSource:
    """Thread-safe list-backed source for tests and embedding callers."""

    def __init__(
        self,
        *,
        incomes: Iterable[IncomeRecord] = (),
        expenses: Iterable[ExpenseRecord] = (),
        bills: Iterable[BillRecord] = (),
        installments: Iterable[InstallmentRecord] = (),
    ) -> None:
        self._lock = Lock()
        self._incomes: List[IncomeRecord] = list(incomes)
        self._expenses: List[ExpenseRecord] = list(expenses)
        self._bills: List[BillRecord] = list(bills)
        self._installments: List[InstallmentRecord] = list(installments)

    def add_income(self, record: IncomeRecord) -> IncomeRecord:
        with self._lock:
            self._incomes.append(record)
        return record

    def add_expense(self, record: ExpenseRecord) -> ExpenseRecord:
        with self._lock:
            self._expenses.append(record)
        return record

    def add_bill(self, record: BillRecord) -> BillRecord:
        with self._lock:
            self._bills.append(record)
        return record

    def add_installment(self, record: InstallmentRecord) -> InstallmentRecord:
        with self._lock:
            self._installments.append(record)
        return record

    def sum_gross_income(self, scope: AccountScope, start: date, end: date) -> Decimal:
        total = ZERO
        for record in self.fetch_incomes(scope, start, end):
            total += record.gross_amount
        return total

    def fetch_incomes(
        self, scope: AccountScope, start: date, end: date
    ) -> list[IncomeRecord]:
        if scope.is_empty:
            return []
        with self._lock:
            return [
                record
                for record in self._incomes
                if record.account_id in scope and _in_range(record.date, start, end)
            ]

    def fetch_fixed_expenses(self, scope: AccountScope) -> list[ExpenseRecord]:
        if scope.is_empty:
            return []
        with self._lock:
            return [
                record
                for record in self._expenses
                if record.account_id in scope and record.is_fixed and record.active
            ]

    def fetch_variable_expenses(
        self, scope: AccountScope, start: date, end: date
    ) -> list[ExpenseRecord]:
        if scope.is_empty:
            return []
        with self._lock:
            return [
                record
                for record in self._expenses
                if record.account_id in scope
                and not record.is_fixed
                and record.active
                and _in_range(record.created_at, start, end)
            ]

    def fetch_bills(self, scope: AccountScope, start: date, end: date) -> list[BillRecord]:
        if scope.is_empty:
            return []
        with self._lock:
            return [
                record
                for record in self._bills
                if record.account_id in scope and _in_range(record.due_date, start, end)
            ]

    def fetch_installments(
        self, scope: AccountScope, start: date, end: date
    ) -> list[InstallmentRecord]:
        if scope.is_empty:
            return []
        with self._lock:
            return [
                record
                for record in self._installments
                if record.account_id in scope and _installment_overlaps(record, start, end)
            ]


class SQLiteRecordSource:
    """Read-only adapter over an externally owned SQLite database.

    Expected tables (extra columns are ignored)::

        incomes(account_id, date, gross_amount, tax_amount, net_amount, description)
        expenses(account_id, name, amount, type, due_day, active, created_at)
        bills(account_id, name, amount, due_date, paid)
        installments(account_id, description, installment_amount,
                     total_installments, start_date)

    Dates are ISO-8601 text. Amounts may be stored as text or numbers; they are
    summed as :class:`~decimal.Decimal` after retrieval so totals stay exact.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = str(path)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            f"file:{self._path}?mode=ro", uri=True, check_same_thread=False
        )
        connection.row_factory = sqlite3.Row
        return connection

    def _query(self, sql: str, parameters: Sequence[Any]) -> list[sqlite3.Row]:
        _LOGGER.debug("SQLite query: %s (%d parameters)", sql, len(parameters))
        connection = self._connect()
        try:
            return connection.execute(sql, tuple(parameters)).fetchall()
        finally:
            connection.close()

    @staticmethod
    def _scope_clause(scope: AccountScope) -> tuple[str, list[Any]]:
        identifiers = list(scope.ordered())
        placeholders = ", ".join("?" for _ in identifiers)
        return f"account_id IN ({placeholders})", identifiers

    def sum_gross_income(self, scope: AccountScope, start: date, end: date) -> Decimal:
        if scope.is_empty:
            return ZERO
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            f"SELECT gross_amount FROM incomes WHERE {clause} AND date >= ? AND date < ?",
            [*parameters, start.isoformat(), end.isoformat()],
        )
        total = ZERO
        for row in rows:
            total += to_decimal(row["gross_amount"])
        return total

    def fetch_incomes(
        self, scope: AccountScope, start: date, end: date
    ) -> list[IncomeRecord]:
        if scope.is_empty:
            return []
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            "SELECT account_id, date, gross_amount, tax_amount, net_amount, description"
            f" FROM incomes WHERE {clause} AND date >= ? AND date < ? ORDER BY date",
            [*parameters, start.isoformat(), end.isoformat()],
        )
        return [
            IncomeRecord(
                account_id=row["account_id"],
                date=row["date"],
                gross_amount=row["gross_amount"],
                tax_amount=row["tax_amount"] if row["tax_amount"] is not None else ZERO,
                net_amount=row["net_amount"],
                description=row["description"] or "",
            )
            for row in rows
        ]

    @staticmethod
    def _expense_from_row(row: sqlite3.Row) -> ExpenseRecord:
        return ExpenseRecord(
            account_id=row["account_id"],
            name=row["name"] or "",
            amount=row["amount"],
            type=row["type"],
            due_day=row["due_day"] or 1,
            active=bool(row["active"]),
            created_at=row["created_at"],
        )

    def fetch_fixed_expenses(self, scope: AccountScope) -> list[ExpenseRecord]:
        if scope.is_empty:
            return []
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            "SELECT account_id, name, amount, type, due_day, active, created_at"
            f" FROM expenses WHERE {clause} AND type = ? AND active = 1",
            [*parameters, ExpenseKind.FIXED.value],
        )
        return [self._expense_from_row(row) for row in rows]

    def fetch_variable_expenses(
        self, scope: AccountScope, start: date, end: date
    ) -> list[ExpenseRecord]:
        if scope.is_empty:
            return []
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            "SELECT account_id, name, amount, type, due_day, active, created_at"
            f" FROM expenses WHERE {clause} AND type = ? AND active = 1"
            " AND date(created_at) >= ? AND date(created_at) < ?",
            [*parameters, ExpenseKind.VARIABLE.value, start.isoformat(), end.isoformat()],
        )
        return [self._expense_from_row(row) for row in rows]

    def fetch_bills(self, scope: AccountScope, start: date, end: date) -> list[BillRecord]:
        if scope.is_empty:
            return []
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            "SELECT account_id, name, amount, due_date, paid"
            f" FROM bills WHERE {clause} AND date(due_date) >= ? AND date(due_date) < ?",
            [*parameters, start.isoformat(), end.isoformat()],
        )
        return [
            BillRecord(
                account_id=row["account_id"],
                name=row["name"] or "",
                amount=row["amount"],
                due_date=row["due_date"],
                paid=bool(row["paid"]),
            )
            for row in rows
        ]

    def fetch_installments(
        self, scope: AccountScope, start: date, end: date
    ) -> list[InstallmentRecord]:
        if scope.is_empty:
            return []
        clause, parameters = self._scope_clause(scope)
        rows = self._query(
            "SELECT account_id, description, installment_amount, total_installments,"
            f" start_date FROM installments WHERE {clause}"
            " AND date(start_date, 'start of month') < ?"
            " AND date(start_date, 'start of month',"
            " '+' || (total_installments - 1) || ' months') >= ?",
            [*parameters, end.isoformat(), start.replace(day=1).isoformat()],
        )
        return [
            InstallmentRecord(
                account_id=row["account_id"],
                description=row["description"] or "",
                installment_amount=row["installment_amount"],
                total_installments=row["total_installments"],
                start_date=row["start_date"],
            )
            for row in rows
        ]


__all__ = ["InMemoryRecordSource", "RecordSource", "SQLiteRecordSource"]
