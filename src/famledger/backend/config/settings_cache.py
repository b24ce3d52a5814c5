"""TTL cache handing out immutable configuration snapshots.

Engine computations never read settings piecemeal. They take one
:class:`ConfigSnapshot` at the start of a request and use it throughout, so an
administrator changing the manual bracket mid-calculation cannot produce a torn
view (new override, old table).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable

from .engine_config import load_bracket_table, load_engine_settings
from .schema import BracketTable, EngineSettings

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Settings and the bracket table they select, captured together."""

    settings: EngineSettings
    table: BracketTable
    fetched_at: datetime

    @property
    def manual_bracket(self) -> int | None:
        return self.settings.manual_bracket


def load_config_snapshot() -> ConfigSnapshot:
    """Read settings and the bracket table they reference from disk."""

    settings = load_engine_settings()
    table = load_bracket_table(settings.bracket_table)
    return ConfigSnapshot(
        settings=settings,
        table=table,
        fetched_at=datetime.now(timezone.utc),
    )


class SettingsCache:
    """Thread-safe snapshot cache with TTL-based expiry and explicit invalidation."""

    def __init__(
        self,
        loader: Callable[[], ConfigSnapshot] | None = None,
        *,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive when provided")

        self._loader = loader or load_config_snapshot
        self._ttl_override = (
            timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._entry: tuple[ConfigSnapshot, datetime] | None = None

    def _ttl_for(self, snapshot: ConfigSnapshot) -> timedelta:
        if self._ttl_override is not None:
            return self._ttl_override
        return timedelta(seconds=snapshot.settings.cache_ttl_seconds)

    def _fresh(
        self, entry: tuple[ConfigSnapshot, datetime] | None, now: datetime
    ) -> ConfigSnapshot | None:
        if entry is None:
            return None
        snapshot, loaded_at = entry
        if now - loaded_at < self._ttl_for(snapshot):
            return snapshot
        return None

    def snapshot(self) -> ConfigSnapshot:
        """Return the cached snapshot, reloading it once the TTL has elapsed."""

        now = self._clock()
        entry = self._entry
        cached = self._fresh(entry, now)
        if cached is not None and entry is not None:
            _LOGGER.debug("Settings cache hit (age: %s)", now - entry[1])
            return cached

        with self._lock:
            # Another thread may have refreshed while we waited for the lock.
            now = self._clock()
            cached = self._fresh(self._entry, now)
            if cached is not None:
                _LOGGER.debug("Settings cache hit after lock")
                return cached

            if self._entry is None:
                _LOGGER.info("Settings cache miss; loading configuration")
            else:
                _LOGGER.info(
                    "Settings cache expired after %s; reloading configuration",
                    now - self._entry[1],
                )

            snapshot = self._loader()
            self._entry = (snapshot, now)
            _LOGGER.info(
                "Settings cache refreshed (table: %s, manual bracket: %s)",
                snapshot.table.name,
                snapshot.manual_bracket,
            )
            return snapshot

    def invalidate(self) -> None:
        """Force the next :meth:`snapshot` call to reload configuration."""

        with self._lock:
            self._entry = None
        _LOGGER.info("Settings cache invalidated")


__all__ = ["ConfigSnapshot", "SettingsCache", "load_config_snapshot"]
