"""Pydantic models describing bracket tables and engine settings."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self

from famledger.backend.money import ZERO, to_decimal


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class EmptyBracketTable(ConfigurationError):
    """Raised when a computation needs brackets but the table defines none."""


class InvalidOverride(ConfigurationError):
    """Raised when a manual bracket override points outside the table."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def _coerce_optional_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


class Bracket(ImmutableModel):
    """A single progressive tier: revenue ceiling, nominal rate, and deduction."""

    index: int = 0
    ceiling: Decimal | None = Field(default=None, alias="upper")
    rate: Decimal
    deduction: Decimal = ZERO

    @field_validator("ceiling", "rate", "deduction", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal | None:
        return _coerce_optional_decimal(value)

    @model_validator(mode="after")
    def _validate_values(self) -> Bracket:
        if self.rate < 0:
            raise ConfigurationError("Bracket rates must be non-negative")
        if self.deduction < 0:
            raise ConfigurationError("Bracket deductions must be non-negative")
        if self.ceiling is not None and self.ceiling <= 0:
            raise ConfigurationError("Bracket ceilings must be positive values")
        if self.index < 0:
            raise ConfigurationError("Bracket indices must be non-negative")
        return self

    @property
    def is_catch_all(self) -> bool:
        return self.ceiling is None


class BracketTable(ImmutableModel):
    """Ordered progressive brackets with strictly increasing ceilings.

    The final bracket must be open-ended so every revenue figure resolves to a
    tier. An empty table is accepted here; consumers that need a bracket raise
    :class:`EmptyBracketTable` at computation time.
    """

    name: str = "custom"
    label: str | None = None
    currency: str = "BRL"
    brackets: Sequence[Bracket] = Field(default_factory=tuple)

    @field_validator("brackets", mode="before")
    @classmethod
    def _coerce_brackets(cls, value: Any) -> Sequence[Any]:
        if value is None:
            return ()
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise ConfigurationError("'brackets' must be a list of bracket definitions")
        prepared: list[Any] = []
        for position, entry in enumerate(value):
            if isinstance(entry, Bracket):
                prepared.append(entry.model_copy(update={"index": position}))
            elif isinstance(entry, Mapping):
                prepared.append({**entry, "index": position})
            else:
                raise ConfigurationError("Bracket definitions must be mappings")
        return tuple(prepared)

    @model_validator(mode="after")
    def _validate_sequence(self) -> Self:
        last_ceiling: Decimal | None = None
        for position, bracket in enumerate(self.brackets):
            ceiling = bracket.ceiling
            is_last = position == len(self.brackets) - 1
            if ceiling is None and not is_last:
                raise ConfigurationError("Only the final bracket may have an open ceiling")
            if last_ceiling is not None and ceiling is not None and ceiling <= last_ceiling:
                raise ConfigurationError("Bracket ceilings must be strictly increasing")
            last_ceiling = ceiling if ceiling is not None else last_ceiling
        if self.brackets and self.brackets[-1].ceiling is not None:
            raise ConfigurationError("Final bracket must have an open ceiling")
        return self

    def __len__(self) -> int:
        return len(self.brackets)

    def __getitem__(self, index: int) -> Bracket:
        return self.brackets[index]

    @property
    def is_empty(self) -> bool:
        return not self.brackets

    def lower_bound(self, index: int) -> Decimal:
        """Return the revenue at which bracket ``index`` starts."""

        if index <= 0:
            return ZERO
        previous = self.brackets[index - 1].ceiling
        return previous if previous is not None else ZERO


class SocialContributionConfig(ImmutableModel):
    """Monthly social security contribution on the owner's draw."""

    pro_labore: Decimal = ZERO
    ceiling: Decimal = ZERO
    rate: Decimal = ZERO

    @field_validator("pro_labore", "ceiling", "rate", mode="before")
    @classmethod
    def _coerce_amounts(cls, value: Any) -> Decimal:
        coerced = _coerce_optional_decimal(value)
        return coerced if coerced is not None else ZERO

    @model_validator(mode="after")
    def _validate_values(self) -> SocialContributionConfig:
        if self.ceiling < 0:
            raise ConfigurationError("Contribution ceiling must be non-negative")
        if self.rate < 0 or self.rate > 1:
            raise ConfigurationError("Contribution rate must be between 0 and 1")
        return self


class BracketWarningThresholds(ImmutableModel):
    """Percent-of-bracket marks at which approach warnings escalate."""

    low: Decimal = Decimal("70")
    medium: Decimal = Decimal("85")
    high: Decimal = Decimal("95")

    @field_validator("low", "medium", "high", mode="before")
    @classmethod
    def _coerce_marks(cls, value: Any) -> Decimal | None:
        return _coerce_optional_decimal(value)

    @model_validator(mode="after")
    def _validate_order(self) -> BracketWarningThresholds:
        for mark in (self.low, self.medium, self.high):
            if mark < 0 or mark > 100:
                raise ConfigurationError("Warning thresholds must be between 0 and 100")
        if not self.low <= self.medium <= self.high:
            raise ConfigurationError("Warning thresholds must be ascending (low <= medium <= high)")
        return self


_AUTOMATIC_BRACKET_TOKENS = {"", "none", "null", "auto", "automatic"}


def parse_manual_bracket(value: Any) -> int | None:
    """Normalise a manual bracket override into a 0-based index or ``None``."""

    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError("Manual bracket override must be an index or 'none'")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _AUTOMATIC_BRACKET_TOKENS:
            return None
        try:
            return int(token)
        except ValueError as exc:
            raise ConfigurationError(
                f"Manual bracket override must be an index or 'none', got {value!r}"
            ) from exc
    raise ConfigurationError("Manual bracket override must be an index or 'none'")


class EngineSettings(ImmutableModel):
    """Process-wide engine configuration captured once per computation."""

    bracket_table: str = "simples_anexo_iii"
    manual_bracket: int | None = None
    contribution: SocialContributionConfig | None = None
    bracket_warning: BracketWarningThresholds = Field(
        default_factory=BracketWarningThresholds
    )
    cache_ttl_seconds: int = 300

    @field_validator("manual_bracket", mode="before")
    @classmethod
    def _coerce_manual_bracket(cls, value: Any) -> int | None:
        return parse_manual_bracket(value)

    @field_validator("bracket_warning", mode="before")
    @classmethod
    def _default_thresholds(cls, value: Any) -> Any:
        if value is None:
            return {}
        return value

    @model_validator(mode="after")
    def _validate_settings(self) -> EngineSettings:
        if not self.bracket_table.strip():
            raise ConfigurationError("'bracket_table' must name a configured table")
        if self.manual_bracket is not None and self.manual_bracket < 0:
            raise ConfigurationError("Manual bracket override must be non-negative")
        if self.cache_ttl_seconds <= 0:
            raise ConfigurationError("'cache_ttl_seconds' must be a positive integer")
        return self


class BracketTableManifestEntry(ImmutableModel):
    """Entry describing a bracket table declared in the manifest."""

    name: str
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.name}.yaml"


class BracketTableManifest(ImmutableModel):
    """Manifest describing the available bracket table files."""

    tables: Sequence[BracketTableManifestEntry]

    @model_validator(mode="after")
    def _validate_tables(self) -> BracketTableManifest:
        seen: set[str] = set()
        for entry in self.tables:
            if entry.name in seen:
                raise ConfigurationError(
                    f"Duplicate table '{entry.name}' declared in the configuration manifest"
                )
            seen.add(entry.name)
        return self

    def get_entry(self, name: str) -> BracketTableManifestEntry:
        for entry in self.tables:
            if entry.name == name:
                return entry
        raise KeyError(name)

    @computed_field
    @property
    def table_names(self) -> tuple[str, ...]:
        return tuple(sorted(entry.name for entry in self.tables))


__all__ = [
    "Bracket",
    "BracketTable",
    "BracketTableManifest",
    "BracketTableManifestEntry",
    "BracketWarningThresholds",
    "ConfigurationError",
    "EmptyBracketTable",
    "EngineSettings",
    "ImmutableModel",
    "InvalidOverride",
    "SocialContributionConfig",
    "ValidationError",
    "parse_manual_bracket",
]
