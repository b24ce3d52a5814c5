"""Configuration loader wrapping the shared schema models."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml
from pydantic import ValidationError

from .schema import (
    Bracket,
    BracketTable,
    BracketTableManifest,
    BracketTableManifestEntry,
    BracketWarningThresholds,
    ConfigurationError,
    EmptyBracketTable,
    EngineSettings,
    InvalidOverride,
    SocialContributionConfig,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"
SETTINGS_FILE = CONFIG_DIRECTORY / "settings.yaml"

ENV_BRACKET_TABLE = "FAMLEDGER_BRACKET_TABLE"
ENV_MANUAL_BRACKET = "FAMLEDGER_MANUAL_BRACKET"
ENV_SETTINGS_TTL = "FAMLEDGER_SETTINGS_TTL"

_LOGGER = logging.getLogger(__name__)


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must define a mapping at the top level")
    return data


@lru_cache(maxsize=1)
def load_manifest() -> BracketTableManifest:
    """Load and cache the bracket table manifest."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError("Configuration manifest not found")

    raw_manifest = _load_yaml(MANIFEST_FILE)

    try:
        return BracketTableManifest.model_validate(raw_manifest)
    except ValidationError as error:
        raise ConfigurationError(f"Manifest validation failed: {error}") from error


@lru_cache(maxsize=8)
def load_bracket_table(name: str) -> BracketTable:
    """Load the bracket table registered under ``name`` from disk."""

    try:
        manifest_entry = load_manifest().get_entry(name)
    except KeyError as exc:
        raise FileNotFoundError(f"Bracket table '{name}' not declared in manifest") from exc

    table_file = CONFIG_DIRECTORY / manifest_entry.resolved_filename
    if not table_file.exists():
        raise FileNotFoundError(f"Bracket table file for '{name}' missing: {table_file.name}")

    raw_table = _load_yaml(table_file)
    raw_table.setdefault("name", name)

    try:
        table = BracketTable.model_validate(raw_table)
    except ValidationError as error:
        raise ConfigurationError(f"Bracket table validation failed for '{name}': {error}") from error

    if table.name != name:
        raise ConfigurationError(
            f"Bracket table name mismatch: expected '{name}', found '{table.name}'"
        )

    return table


def available_tables() -> Sequence[str]:
    """Return the bracket table names declared in the manifest."""

    return load_manifest().table_names


def _parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        _LOGGER.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def _apply_environment_overrides(
    raw: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    prepared = dict(raw)

    table_name = environ.get(ENV_BRACKET_TABLE, "").strip()
    if table_name:
        prepared["bracket_table"] = table_name

    # Malformed overrides are rejected by the schema, not ignored.
    if ENV_MANUAL_BRACKET in environ:
        prepared["manual_bracket"] = environ[ENV_MANUAL_BRACKET]

    ttl = _parse_positive_int(environ.get(ENV_SETTINGS_TTL), env=ENV_SETTINGS_TTL)
    if ttl is not None:
        prepared["cache_ttl_seconds"] = ttl

    return prepared


def load_engine_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> EngineSettings:
    """Read engine settings from YAML and apply environment overrides.

    Settings are not cached here: :class:`~.settings_cache.SettingsCache` owns
    the refresh policy so administrative changes are picked up after the TTL.
    """

    settings_path = path or SETTINGS_FILE
    raw_settings = _load_yaml(settings_path) if settings_path.exists() else {}
    raw_settings = _apply_environment_overrides(
        raw_settings, os.environ if environ is None else environ
    )

    try:
        return EngineSettings.model_validate(raw_settings)
    except ValidationError as error:
        raise ConfigurationError(f"Engine settings validation failed: {error}") from error


__all__ = [
    "Bracket",
    "BracketTable",
    "BracketTableManifest",
    "BracketTableManifestEntry",
    "BracketWarningThresholds",
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "EmptyBracketTable",
    "ENV_BRACKET_TABLE",
    "ENV_MANUAL_BRACKET",
    "ENV_SETTINGS_TTL",
    "EngineSettings",
    "InvalidOverride",
    "MANIFEST_FILE",
    "SETTINGS_FILE",
    "SocialContributionConfig",
    "available_tables",
    "load_bracket_table",
    "load_engine_settings",
    "load_manifest",
]
