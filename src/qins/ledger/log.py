from __future__ import annotations

import threading
from collections import deque
from dataclasses import replace
from typing import Callable, Iterable

from qins.contracts import TICKS_PER_DAY, LogEntry, QualityCategory, QualitySettings
from qins.core.events import EventBus

# Ceiling applied even when count-based pruning is switched off.
ABSOLUTE_MAX_ENTRIES = 20000


class PlayClock:
    """Accumulates real seconds of unpaused play."""

    def __init__(self, seconds: float = 0.0) -> None:
        self._seconds = seconds
        self.paused = False

    @property
    def seconds(self) -> float:
        return self._seconds

    def advance(self, real_seconds: float) -> None:
        if self.paused or real_seconds <= 0:
            return
        self._seconds += real_seconds


class QualityLog:
    """Append-only, capped record of committed outcomes in commit order."""

    def __init__(
        self,
        settings: Callable[[], QualitySettings],
        event_bus: EventBus | None = None,
        play_clock: PlayClock | None = None,
    ) -> None:
        self._settings = settings
        self._event_bus = event_bus
        self.play_clock = play_clock or PlayClock()
        self._lock = threading.Lock()
        self._entries: deque[LogEntry] = deque()

    def add(self, entry: LogEntry) -> LogEntry:
        if not entry.has_play_stamp:
            entry = replace(entry, play_seconds=self.play_clock.seconds)
        with self._lock:
            self._entries.append(entry)
            self._enforce_cap()
        if self._event_bus is not None:
            self._event_bus.publish_entry(entry)
        return entry

    def load(self, entries: Iterable[LogEntry]) -> None:
        with self._lock:
            self._entries = deque(sorted(entries, key=lambda e: e.game_ticks))
            self._enforce_cap()

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def filter(self, search: str | None = None, quality: QualityCategory | None = None) -> list[LogEntry]:
        return [e for e in self.entries() if e.matches(search, quality)]

    def prune(self, now_ticks: int) -> int:
        settings = self._settings()
        with self._lock:
            before = len(self._entries)
            if settings.prune_by_age and settings.keep_days > 0:
                cutoff = now_ticks - settings.keep_days * TICKS_PER_DAY
                self._entries = deque(e for e in self._entries if e.game_ticks >= cutoff)
            self._enforce_cap()
            return before - len(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _enforce_cap(self) -> None:
        settings = self._settings()
        cap = ABSOLUTE_MAX_ENTRIES
        if settings.prune_by_count and settings.max_entries > 0:
            cap = min(cap, settings.max_entries)
        while len(self._entries) > cap:
            self._entries.popleft()
