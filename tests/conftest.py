"""Test configuration utilities and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402

from famledger.backend.app.services import InMemoryRecordSource  # noqa: E402
from famledger.backend.config.schema import BracketTable, EngineSettings  # noqa: E402
from famledger.backend.config.settings_cache import (  # noqa: E402
    ConfigSnapshot,
    SettingsCache,
)

STANDARD_BRACKETS = [
    {"upper": "180000", "rate": "0.06", "deduction": "0"},
    {"upper": "360000", "rate": "0.112", "deduction": "9360"},
    {"upper": None, "rate": "0.135", "deduction": "17640"},
]


class CountingSource:
    """Record source wrapper that counts each fetch by method name."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.calls: list[str] = []

    def __getattr__(self, name: str):
        attribute = getattr(self._inner, name)
        if not callable(attribute) or name.startswith("add_"):
            return attribute

        def _counted(*args, **kwargs):
            self.calls.append(name)
            return attribute(*args, **kwargs)

        return _counted

    @property
    def fetch_count(self) -> int:
        return len(self.calls)

    def reset(self) -> None:
        self.calls.clear()


@pytest.fixture()
def standard_table() -> BracketTable:
    """Three-bracket table with an open-ended top tier."""

    return BracketTable.model_validate({"name": "standard", "brackets": STANDARD_BRACKETS})


@pytest.fixture()
def record_source() -> InMemoryRecordSource:
    return InMemoryRecordSource()


@pytest.fixture()
def counting_source(record_source: InMemoryRecordSource) -> CountingSource:
    return CountingSource(record_source)


def make_snapshot(table: BracketTable, **settings) -> ConfigSnapshot:
    settings.setdefault("bracket_table", table.name)
    return ConfigSnapshot(
        settings=EngineSettings.model_validate(settings),
        table=table,
        fetched_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture()
def snapshot_factory():
    """Return a helper building snapshots from a table and setting overrides."""

    return make_snapshot


@pytest.fixture()
def snapshot(standard_table: BracketTable) -> ConfigSnapshot:
    return make_snapshot(standard_table)


@pytest.fixture()
def settings_cache(snapshot: ConfigSnapshot) -> SettingsCache:
    """Cache that always serves the standard-table snapshot."""

    return SettingsCache(loader=lambda: snapshot)
