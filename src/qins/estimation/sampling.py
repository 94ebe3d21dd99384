from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class SamplingGuard:
    """Thread-scoped switch marking the current call stack as an estimation run.

    While active, interception points neither log, persist, override nor let
    modifier conditions start or end on the sampled actor.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    @property
    def active(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    @contextmanager
    def sampling(self) -> Iterator[None]:
        self._local.depth = getattr(self._local, "depth", 0) + 1
        try:
            yield
        finally:
            self._local.depth -= 1
