"""Utilities for validating bracket tables and engine settings."""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Sequence

from .engine_config import (
    BracketTable,
    ConfigurationError,
    EngineSettings,
    available_tables,
    load_bracket_table,
    load_engine_settings,
)

_BOUNDARY_TOLERANCE = Decimal("0.0001")


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _boundary_rate(revenue: Decimal, rate: Decimal, deduction: Decimal) -> Decimal:
    return (revenue * rate - deduction) / revenue


def _validate_rates(table: BracketTable) -> list[str]:
    errors: list[str] = []
    scope = f"{table.name}.brackets"
    previous_rate: Decimal | None = None
    previous_deduction: Decimal | None = None

    for bracket in table.brackets:
        if bracket.rate > 1:
            errors.append(
                _format_scope(scope, f"bracket {bracket.index} rate {bracket.rate} exceeds 1")
            )
        if previous_rate is not None and bracket.rate < previous_rate:
            errors.append(
                _format_scope(
                    scope,
                    f"bracket {bracket.index} nominal rate decreases from {previous_rate}",
                )
            )
        if previous_deduction is not None and bracket.deduction < previous_deduction:
            errors.append(
                _format_scope(
                    scope,
                    f"bracket {bracket.index} deduction decreases from {previous_deduction}",
                )
            )
        previous_rate = bracket.rate
        previous_deduction = bracket.deduction

    return errors


def _validate_effective_rates(table: BracketTable) -> list[str]:
    errors: list[str] = []
    scope = f"{table.name}.brackets"

    for bracket in table.brackets:
        if bracket.ceiling is None:
            continue
        effective = _boundary_rate(bracket.ceiling, bracket.rate, bracket.deduction)
        if effective < 0:
            errors.append(
                _format_scope(
                    scope,
                    f"bracket {bracket.index} effective rate is negative at its ceiling",
                )
            )
        elif effective > bracket.rate:
            errors.append(
                _format_scope(
                    scope,
                    f"bracket {bracket.index} effective rate exceeds its nominal rate",
                )
            )

    return errors


def boundary_discontinuities(table: BracketTable) -> list[str]:
    """Describe ceilings where the effective rate jumps between adjacent brackets.

    Statutory tables sometimes contain such jumps on purpose, so these are
    reported as notices rather than validation failures.
    """

    notices: list[str] = []
    for current, following in zip(table.brackets, table.brackets[1:]):
        ceiling = current.ceiling
        if ceiling is None:
            continue
        below = _boundary_rate(ceiling, current.rate, current.deduction)
        above = _boundary_rate(ceiling, following.rate, following.deduction)
        if abs(above - below) > _BOUNDARY_TOLERANCE:
            notices.append(
                _format_scope(
                    f"{table.name}.brackets",
                    (
                        f"effective rate jumps from {below:.4f} to {above:.4f} "
                        f"at {ceiling} (brackets {current.index} -> {following.index})"
                    ),
                )
            )
    return notices


def validate_bracket_table(table: BracketTable) -> list[str]:
    """Return a list of validation issues for the provided table."""

    errors: list[str] = []

    if table.is_empty:
        errors.append(_format_scope(table.name, "no brackets defined"))
        return errors

    if len(table.currency) != 3 or not table.currency.isupper():
        errors.append(
            _format_scope(table.name, f"currency '{table.currency}' must be an ISO 4217 code")
        )

    errors.extend(_validate_rates(table))
    errors.extend(_validate_effective_rates(table))

    return errors


def validate_engine_settings(settings: EngineSettings, table: BracketTable) -> list[str]:
    """Return issues where ``settings`` are inconsistent with ``table``."""

    errors: list[str] = []

    if settings.bracket_table != table.name:
        errors.append(
            _format_scope(
                "settings.bracket_table",
                f"selects '{settings.bracket_table}' but '{table.name}' was supplied",
            )
        )

    override = settings.manual_bracket
    if override is not None and not 0 <= override < len(table):
        errors.append(
            _format_scope(
                "settings.manual_bracket",
                f"index {override} is outside the table bounds (0..{len(table) - 1})",
            )
        )

    contribution = settings.contribution
    if contribution is not None and contribution.pro_labore > 0 and contribution.ceiling == 0:
        errors.append(
            _format_scope(
                "settings.contribution",
                "a ceiling is required when a pro-labore amount is configured",
            )
        )

    return errors


def validate_all_tables(names: Sequence[str] | None = None) -> dict[str, list[str]]:
    """Validate all configured tables and return issues keyed by table name."""

    targets = names or available_tables()
    results: dict[str, list[str]] = {}

    for name in targets:
        table = load_bracket_table(name)
        results[name] = validate_bracket_table(table)

    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate configured bracket tables and engine settings."
    )
    parser.add_argument(
        "tables",
        nargs="*",
        help="Specific tables to validate (defaults to all configured tables)",
    )
    parser.add_argument(
        "--skip-settings",
        action="store_true",
        help="Do not cross-check the engine settings file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    tables = args.tables or list(available_tables())

    if not tables:
        parser.print_help()
        return 1

    exit_code = 0

    for name in tables:
        try:
            table = load_bracket_table(name)
        except (FileNotFoundError, ConfigurationError) as error:
            print(f"[{name}] failed to load bracket table: {error}")
            exit_code = 1
            continue

        issues = validate_bracket_table(table)
        if issues:
            exit_code = 1
            print(f"[{name}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{name}] OK")

        for notice in boundary_discontinuities(table):
            print(f"  note: {notice}")

    if not args.skip_settings:
        try:
            settings = load_engine_settings()
            table = load_bracket_table(settings.bracket_table)
        except (FileNotFoundError, ConfigurationError) as error:
            print(f"[settings] failed to load engine settings: {error}")
            return 1

        issues = validate_engine_settings(settings, table)
        if issues:
            exit_code = 1
            print(f"[settings] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print("[settings] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
