from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from qins.contracts import (
    SPECIALIST_TAG,
    ModifierSnapshot,
    ProductionActor,
    RollContext,
    RollPhase,
    SkillDomain,
    normalize_materials,
)
from qins.correlation.store import identity_of, inner_identity_of

logger = logging.getLogger(__name__)


def snapshot_modifiers(actor: ProductionActor | None) -> ModifierSnapshot:
    if actor is None:
        return ModifierSnapshot()
    try:
        boost = bool(actor.has_creativity_boost())
    except Exception:
        boost = False
    try:
        specialist = bool(actor.has_eligibility_tag(SPECIALIST_TAG))
    except Exception:
        specialist = False
    return ModifierSnapshot(had_creativity_boost=boost, was_specialist_role=specialist)


class RollContextTracker:
    """Per-thread stack of roll contexts, from roll request to outcome commit.

    Rolls are not expected to nest. When they do, the innermost context is the
    current one and the outer context is restored once the inner one ends.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _stack(self) -> list[RollContext]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
        return stack

    def begin_roll(
        self,
        actor: ProductionActor,
        skill: SkillDomain,
        materials: Iterable[str | None] | None = None,
    ) -> RollContext:
        stack = self._stack()
        if stack and stack[-1].phase == RollPhase.ROLLED:
            # The previous roll on this stack never reached a commit.
            stale = stack.pop()
            logger.debug("discarding uncommitted roll context for actor %s", stale.actor.actor_id)
            stale.clear()
        ctx = RollContext(
            actor=actor,
            skill=skill,
            modifiers=snapshot_modifiers(actor),
            materials=normalize_materials(materials),
            event_id=self._take_pending(),
        )
        stack.append(ctx)
        return ctx

    def note_production(self, event_id: int) -> None:
        """Remember the job whose roll is about to be requested on this thread."""
        self._local.pending_event = event_id

    def _take_pending(self) -> int | None:
        pending = getattr(self._local, "pending_event", None)
        self._local.pending_event = None
        return pending

    def rebind_event(self, old_event_id: int, new_item: Any) -> None:
        new_key = identity_of(new_item)
        if new_key is None:
            return
        for ctx in self._stack():
            if ctx.event_id == old_event_id:
                ctx.event_id = new_key

    def owns(self, ctx: RollContext, item: Any) -> bool:
        """Whether ``ctx`` was opened for the job that produced ``item``."""
        if ctx.event_id is None:
            return False
        return ctx.event_id in (identity_of(item), inner_identity_of(item))

    def current(self) -> RollContext | None:
        stack = self._stack()
        return stack[-1] if stack else None

    def mark_rolled(self, ctx: RollContext, outcome) -> None:
        ctx.natural_outcome = outcome
        ctx.phase = RollPhase.ROLLED

    def end_roll(self, ctx: RollContext | None = None) -> None:
        stack = self._stack()
        if not stack:
            return
        if ctx is None:
            ctx = stack[-1]
        if any(c is ctx for c in stack):
            # Anything pushed above ctx belongs to rolls that never committed.
            while stack:
                popped = stack.pop()
                popped.clear()
                if popped is ctx:
                    break

    @contextmanager
    def suppressed(self, actor: ProductionActor) -> Iterator[None]:
        """Strip the actor's active boost for one sampled roll."""
        ctx = self.current()
        previous_phase = ctx.phase if ctx is not None else None
        boost = actor.take_boost()
        if ctx is not None:
            ctx.phase = RollPhase.SUPPRESSED
        try:
            yield
        finally:
            if boost is not None:
                actor.restore_boost(boost)
            if ctx is not None and previous_phase is not None:
                ctx.phase = previous_phase

    def depth(self) -> int:
        return len(self._stack())
