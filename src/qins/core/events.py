from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, DefaultDict

from qins.contracts import LogEntry

logger = logging.getLogger(__name__)

LogEntryHandler = Callable[[LogEntry], None]


class EventBus:
    def __init__(self) -> None:
        self._entry_handlers: list[LogEntryHandler] = []
        self._counter: DefaultDict[str, int] = defaultdict(int)

    def subscribe_entries(self, handler: LogEntryHandler) -> None:
        self._entry_handlers.append(handler)

    def unsubscribe_entries(self, handler: LogEntryHandler) -> None:
        if handler in self._entry_handlers:
            self._entry_handlers.remove(handler)

    def publish_entry(self, entry: LogEntry) -> None:
        self._counter[entry.skill.value] += 1
        for handler in list(self._entry_handlers):
            try:
                handler(entry)
            except Exception:
                logger.exception("log entry subscriber %r failed", handler)

    def emitted_count(self, scope: str | None = None) -> int:
        if scope is None:
            return sum(self._counter.values())
        return self._counter[scope]
