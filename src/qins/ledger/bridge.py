from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from qins.contracts import (
    LogEntry,
    ProductionActor,
    QualityCategory,
    QualitySettings,
    RollContext,
    RollPhase,
    SkillDomain,
)
from qins.correlation.dedup import CommitDedupGuard
from qins.correlation.store import CorrelationStore, identity_of
from qins.correlation.tracker import RollContextTracker, snapshot_modifiers
from qins.estimation.policy import OverridePolicy
from qins.estimation.sampling import SamplingGuard
from qins.ledger.log import QualityLog

logger = logging.getLogger(__name__)

OutcomeApplier = Callable[[Any, QualityCategory], None]


def infer_skill(item: Any) -> SkillDomain:
    if _flag(item, "is_building"):
        return SkillDomain.CONSTRUCTION
    if _flag(item, "has_art"):
        return SkillDomain.ARTISTIC
    return SkillDomain.CRAFTING


def assign_quality(item: Any, quality: QualityCategory) -> None:
    item.quality = quality


class FinalizationBridge:
    """Turns an outcome commit into at most one log entry.

    Correlation state for the item is purged on every exit path.
    """

    def __init__(
        self,
        *,
        tracker: RollContextTracker,
        store: CorrelationStore,
        policy: OverridePolicy,
        dedup: CommitDedupGuard,
        log: QualityLog,
        guard: SamplingGuard,
        settings: Callable[[], QualitySettings],
        clock: Callable[[], int],
        apply_outcome: OutcomeApplier | None = None,
    ) -> None:
        self._tracker = tracker
        self._store = store
        self._policy = policy
        self._dedup = dedup
        self._log = log
        self._guard = guard
        self._settings = settings
        self._clock = clock
        self._apply_outcome = apply_outcome or assign_quality
        self._bumping: set[int] = set()
        self._bump_lock = threading.Lock()

    def is_bumping(self, item_id: int | None) -> bool:
        if item_id is None:
            return False
        with self._bump_lock:
            return item_id in self._bumping

    def finalize(self, item: Any, natural: QualityCategory) -> QualityCategory:
        if item is None or self._guard.active:
            return natural
        item_id = identity_of(item)
        if self.is_bumping(item_id):
            # Our own override being written back through the host.
            return natural

        ctx = self._tracker.current()
        if ctx is not None and not self._tracker.owns(ctx, item):
            if ctx.phase == RollPhase.ROLLED:
                # A finished roll whose product was never committed; not this item's.
                logger.debug("dropping uncommitted roll for actor %s", getattr(ctx.actor, "actor_id", None))
                self._tracker.end_roll(ctx)
            ctx = None
        try:
            return self._finalize(item, item_id, natural, ctx)
        finally:
            self._store.evict(item)
            if item_id is not None:
                with self._bump_lock:
                    self._bumping.discard(item_id)
            if ctx is not None:
                self._tracker.end_roll(ctx)

    def _finalize(
        self,
        item: Any,
        item_id: int | None,
        natural: QualityCategory,
        ctx: RollContext | None,
    ) -> QualityCategory:
        settings = self._settings()
        skill = ctx.skill if ctx is not None else infer_skill(item)
        actor = self._resolve_actor(item, ctx)
        if actor is None or not _flag(actor, "is_player_controlled"):
            logger.debug("dropping commit for item %s: no tracked actor", item_id)
            return natural

        modifiers = ctx.modifiers if ctx is not None else snapshot_modifiers(actor)
        committed = natural
        if settings.override_enabled and item_id is not None:
            candidate = ctx.forced_outcome if ctx is not None and ctx.forced_outcome is not None else None
            if candidate is None:
                candidate = self._policy.decide_override(actor, skill, natural, modifiers=modifiers)
            if candidate is not None and candidate.rank > natural.rank:
                committed = self._apply_once(item, item_id, natural, candidate)

        if not settings.logging_enabled:
            return committed
        if item_id is not None and not self._dedup.check_and_record(item_id, committed, self._clock()):
            logger.debug("duplicate commit for item %s (%s) skipped", item_id, committed.value)
            return committed

        materials = self._store.resolve_materials(item)
        if not materials and ctx is not None:
            materials = ctx.materials
        self._log.add(
            LogEntry(
                item_type=_text(item, "def_name") or "Unknown",
                quality=committed,
                actor_name=_text(actor, "display_name") or "Unknown",
                skill=skill,
                skill_level=_skill_level(actor, skill),
                inspired_creativity=modifiers.had_creativity_boost,
                production_specialist=modifiers.was_specialist_role,
                game_ticks=self._clock(),
                stuff=_text(item, "stuff"),
                materials=tuple(sorted(materials or ())),
                overridden=committed != natural,
            )
        )
        return committed

    def _resolve_actor(self, item: Any, ctx: RollContext | None) -> ProductionActor | None:
        if ctx is not None:
            return ctx.actor
        actor = self._store.resolve_actor(item)
        if actor is not None:
            return actor
        try:
            return getattr(item, "creator", None)
        except Exception:
            return None

    def _apply_once(
        self,
        item: Any,
        item_id: int,
        natural: QualityCategory,
        candidate: QualityCategory,
    ) -> QualityCategory:
        with self._bump_lock:
            if item_id in self._bumping:
                return natural
            self._bumping.add(item_id)
        self._apply_outcome(item, candidate)
        logger.info("forced %s over natural %s for item %s", candidate.value, natural.value, item_id)
        return candidate


def _flag(obj: Any, name: str) -> bool:
    try:
        return bool(getattr(obj, name, False))
    except Exception:
        return False


def _text(obj: Any, name: str) -> str | None:
    try:
        value = getattr(obj, name, None)
    except Exception:
        return None
    return str(value) if value else None


def _skill_level(actor: ProductionActor, skill: SkillDomain) -> int:
    try:
        return int(actor.skill_level(skill))
    except Exception:
        return -1
