from __future__ import annotations

import threading
from collections import OrderedDict

from qins.contracts import QualityCategory


class CommitDedupGuard:
    """Remembers recent (item, outcome) commits for a short tick window."""

    def __init__(self, window_ticks: int = 60, max_entries: int = 4096) -> None:
        self.window_ticks = window_ticks
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._recent: OrderedDict[int, tuple[int, QualityCategory]] = OrderedDict()

    def check_and_record(self, item_id: int, outcome: QualityCategory, tick: int) -> bool:
        """Return True when this commit is new and should be logged."""
        with self._lock:
            seen = self._recent.get(item_id)
            if seen is not None and seen[1] == outcome and tick - seen[0] <= self.window_ticks:
                return False
            self._recent[item_id] = (tick, outcome)
            self._recent.move_to_end(item_id)
            while len(self._recent) > self.max_entries:
                self._recent.popitem(last=False)
            return True

    def sweep(self, now_tick: int) -> int:
        cutoff = now_tick - self.window_ticks
        with self._lock:
            stale = [k for k, (tick, _) in self._recent.items() if tick < cutoff]
            for key in stale:
                del self._recent[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._recent)
