from decimal import Decimal

from famledger.backend.config.engine_config import load_bracket_table, load_engine_settings
from famledger.backend.config.schema import BracketTable, EngineSettings
from famledger.backend.config.validator import (
    boundary_discontinuities,
    main,
    validate_all_tables,
    validate_bracket_table,
    validate_engine_settings,
)


def test_current_tables_are_valid() -> None:
    results = validate_all_tables()
    assert all(not issues for issues in results.values()), results


def test_packaged_settings_match_packaged_table() -> None:
    settings = load_engine_settings(environ={})
    table = load_bracket_table(settings.bracket_table)

    assert validate_engine_settings(settings, table) == []


def test_validator_flags_empty_table() -> None:
    errors = validate_bracket_table(BracketTable(name="empty", brackets=()))

    assert errors == ["empty: no brackets defined"]


def test_validator_flags_rate_above_one() -> None:
    table = load_bracket_table("simples_anexo_iii")
    brackets = list(table.brackets)
    brackets[-1] = brackets[-1].model_copy(update={"rate": Decimal("1.5")})
    broken = table.model_copy(update={"brackets": tuple(brackets)})

    errors = validate_bracket_table(broken)

    assert any("rate 1.5 exceeds 1" in error for error in errors)


def test_validator_flags_decreasing_rates_and_deductions() -> None:
    table = BracketTable.model_validate(
        {
            "name": "odd",
            "brackets": [
                {"upper": 1000, "rate": "0.10", "deduction": "20"},
                {"upper": None, "rate": "0.05", "deduction": "10"},
            ],
        }
    )

    errors = validate_bracket_table(table)

    assert any("nominal rate decreases" in error for error in errors)
    assert any("deduction decreases" in error for error in errors)


def test_validator_flags_negative_effective_rate_at_ceiling() -> None:
    table = BracketTable.model_validate(
        {
            "name": "deep",
            "brackets": [
                {"upper": 1000, "rate": "0.05", "deduction": "100"},
                {"upper": None, "rate": "0.10", "deduction": "100"},
            ],
        }
    )

    errors = validate_bracket_table(table)

    assert any("effective rate is negative" in error for error in errors)


def test_validator_flags_currency_code() -> None:
    table = BracketTable.model_validate(
        {"name": "cur", "currency": "real", "brackets": [{"upper": None, "rate": "0.1"}]}
    )

    errors = validate_bracket_table(table)

    assert errors == ["cur: currency 'real' must be an ISO 4217 code"]


def test_boundary_discontinuities_are_reported() -> None:
    notices = boundary_discontinuities(load_bracket_table("simples_anexo_iii"))

    assert notices
    assert all("effective rate jumps" in notice for notice in notices)


def test_continuous_table_has_no_discontinuities() -> None:
    table = BracketTable.model_validate(
        {
            "name": "smooth",
            "brackets": [
                {"upper": 1000, "rate": "0.10", "deduction": "0"},
                {"upper": None, "rate": "0.20", "deduction": "100"},
            ],
        }
    )

    assert boundary_discontinuities(table) == []


def test_settings_override_outside_table_is_flagged() -> None:
    table = load_bracket_table("simples_anexo_iii")
    settings = EngineSettings(manual_bracket=6)

    errors = validate_engine_settings(settings, table)

    assert any("settings.manual_bracket" in error for error in errors)


def test_settings_table_mismatch_and_missing_ceiling_are_flagged() -> None:
    table = load_bracket_table("simples_anexo_iii")
    settings = EngineSettings.model_validate(
        {"bracket_table": "other", "contribution": {"pro_labore": 5000, "rate": 0.11}}
    )

    errors = validate_engine_settings(settings, table)

    assert any(error.startswith("settings.bracket_table") for error in errors)
    assert any(error.startswith("settings.contribution") for error in errors)


def test_main_reports_success(capsys, monkeypatch) -> None:
    for name in ("FAMLEDGER_BRACKET_TABLE", "FAMLEDGER_MANUAL_BRACKET", "FAMLEDGER_SETTINGS_TTL"):
        monkeypatch.delenv(name, raising=False)

    exit_code = main([])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "[simples_anexo_iii] OK" in output
    assert "[settings] OK" in output


def test_main_reports_unknown_table(capsys) -> None:
    exit_code = main(["missing_table", "--skip-settings"])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert "[missing_table] failed to load bracket table" in output
