from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable

from qins.contracts import ProductionActor, ProductionEvent, normalize_materials
from qins.core.randomness import derive_seed

logger = logging.getLogger(__name__)


def identity_of(item: Any) -> int | None:
    """Stable identity for an item handle, or None when it has none."""
    if item is None:
        return None
    if isinstance(item, int):
        return item
    try:
        value = getattr(item, "item_id", None)
    except Exception:
        return None
    return value if isinstance(value, int) else None


def inner_identity_of(item: Any) -> int | None:
    if item is None or isinstance(item, int):
        return None
    try:
        inner = getattr(item, "inner_item", None)
    except Exception:
        return None
    return identity_of(inner)


def construction_event_id(map_id: int, cell: tuple[int, int], target_def: str) -> int:
    """Key for a construction job until the built item exists."""
    # Negative keys never collide with host item ids, which count up from 1.
    return -(derive_seed("construction", map_id, cell[0], cell[1], target_def) & 0x7FFFFFFFFFFF) - 1


class CorrelationStore:
    """Identity-keyed side tables binding production context to events.

    Entries are owned explicitly: every terminal commit must call ``evict``;
    ``sweep_idle`` bounds memory when a commit never happens.
    """

    def __init__(self, idle_seconds: float = 600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._events: dict[int, ProductionEvent] = {}
        self._actors: dict[int, tuple[ProductionActor, float]] = {}

    @property
    def idle_seconds(self) -> float:
        return self._idle_seconds

    @idle_seconds.setter
    def idle_seconds(self, value: float) -> None:
        if value <= 0:
            raise ValueError("idle_seconds must be > 0")
        self._idle_seconds = float(value)

    def bind_materials(self, event_id: int, materials: Iterable[str | None] | None) -> None:
        mats = normalize_materials(materials)
        if not mats:
            return
        with self._lock:
            event = self._events.get(event_id)
            if event is None:
                self._events[event_id] = ProductionEvent(event_id=event_id, materials=mats, started_at=self._clock())
            else:
                event.materials = mats
                event.started_at = self._clock()

    def bind_actor(self, item: Any, actor: ProductionActor | None) -> None:
        key = identity_of(item)
        if key is None or actor is None:
            return
        with self._lock:
            self._actors[key] = (actor, self._clock())

    def track_event(self, event: ProductionEvent) -> None:
        with self._lock:
            existing = self._events.get(event.event_id)
            if existing is not None and not event.materials:
                event.materials = existing.materials
            event.started_at = self._clock()
            self._events[event.event_id] = event

    def event(self, event_id: int) -> ProductionEvent | None:
        with self._lock:
            return self._events.get(event_id)

    def rebind_event(self, old_event_id: int, new_item: Any) -> None:
        new_key = identity_of(new_item)
        if new_key is None or new_key == old_event_id:
            return
        with self._lock:
            event = self._events.pop(old_event_id, None)
            actor = self._actors.pop(old_event_id, None)
            if event is not None:
                event.event_id = new_key
                event.started_at = self._clock()
                self._events[new_key] = event
            if actor is not None:
                self._actors[new_key] = (actor[0], self._clock())

    def resolve_actor(self, item: Any) -> ProductionActor | None:
        keys = [k for k in (identity_of(item), inner_identity_of(item)) if k is not None]
        with self._lock:
            for key in keys:
                bound = self._actors.pop(key, None)
                if bound is not None:
                    return bound[0]
            for key in keys:
                event = self._events.get(key)
                if event is not None and event.actor is not None:
                    actor = event.actor
                    event.actor = None
                    return actor
        return None

    def resolve_materials(self, item: Any) -> frozenset[str] | None:
        live = _live_materials(item)
        if live:
            return live
        keys = [k for k in (identity_of(item), inner_identity_of(item)) if k is not None]
        with self._lock:
            for key in keys:
                event = self._events.get(key)
                if event is not None and event.materials:
                    return event.materials
        return None

    def evict(self, item: Any) -> None:
        keys = [k for k in (identity_of(item), inner_identity_of(item)) if k is not None]
        with self._lock:
            for key in keys:
                self._events.pop(key, None)
                self._actors.pop(key, None)

    def sweep_idle(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        cutoff = now - self._idle_seconds
        with self._lock:
            stale_events = [k for k, e in self._events.items() if e.started_at < cutoff]
            stale_actors = [k for k, (_, at) in self._actors.items() if at < cutoff]
            for key in stale_events:
                del self._events[key]
            for key in stale_actors:
                del self._actors[key]
        removed = len(stale_events) + len(stale_actors)
        if removed:
            logger.debug("swept %d idle correlation entries", removed)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._events) + len(self._actors)


def _live_materials(item: Any) -> frozenset[str] | None:
    if item is None or isinstance(item, int):
        return None
    try:
        live = getattr(item, "materials", None)
        if not live:
            return None
        return normalize_materials(live) or None
    except Exception:
        logger.debug("live materials lookup failed for %r", item, exc_info=True)
        return None
