from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable

from qins.contracts import (
    TICKS_PER_DAY,
    EstimationResult,
    ProductionActor,
    ProductionEvent,
    QualityCategory,
    QualitySettings,
    RandomSource,
    RollFunction,
    SkillDomain,
    normalize_materials,
)
from qins.core.errors import absorb_errors
from qins.core.events import EventBus
from qins.core.settings import validate_settings
from qins.correlation.dedup import CommitDedupGuard
from qins.correlation.store import CorrelationStore
from qins.correlation.tracker import RollContextTracker, snapshot_modifiers
from qins.estimation.engine import EstimationEngine, degenerate_result
from qins.estimation.policy import OverridePolicy
from qins.estimation.sampling import SamplingGuard
from qins.ledger.bridge import FinalizationBridge, OutcomeApplier
from qins.ledger.log import PlayClock, QualityLog

logger = logging.getLogger(__name__)


class QualityHooks:
    """Interception points a host calls around its production and roll code.

    Every entry point is a no-op while an estimation run is sampling, and none
    of them lets an exception escape into the host.
    """

    def __init__(
        self,
        *,
        random_source: RandomSource,
        clock: Callable[[], int],
        roller: RollFunction | None = None,
        settings: QualitySettings | None = None,
        apply_outcome: OutcomeApplier | None = None,
        event_bus: EventBus | None = None,
        play_clock: PlayClock | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or QualitySettings()
        validate_settings(self.settings)
        self.clock = clock
        self.event_bus = event_bus or EventBus()
        self.guard = SamplingGuard()
        self.tracker = RollContextTracker()
        self.store = CorrelationStore(idle_seconds=self.settings.correlation_idle_seconds, clock=monotonic)
        self.dedup = CommitDedupGuard(window_ticks=self.settings.dedup_window_ticks)
        self.log = QualityLog(self._current_settings, event_bus=self.event_bus, play_clock=play_clock)
        self.engine = EstimationEngine(
            roller=roller,
            random_source=random_source,
            tracker=self.tracker,
            guard=self.guard,
            settings=self._current_settings,
        )
        self.policy = OverridePolicy(self.engine, self._current_settings)
        self.bridge = FinalizationBridge(
            tracker=self.tracker,
            store=self.store,
            policy=self.policy,
            dedup=self.dedup,
            log=self.log,
            guard=self.guard,
            settings=self._current_settings,
            clock=clock,
            apply_outcome=apply_outcome,
        )
        self._last_maintenance_tick: int | None = None
        self._last_prune_tick: int | None = None

    def _current_settings(self) -> QualitySettings:
        return self.settings

    def update_settings(self, settings: QualitySettings) -> None:
        validate_settings(settings)
        self.settings = settings
        self.dedup.window_ticks = settings.dedup_window_ticks
        self.store.idle_seconds = settings.correlation_idle_seconds
        self.engine.clear_cache()
        logger.info("settings updated")

    def set_roller(self, roller: RollFunction | None) -> None:
        self.engine.set_roller(roller)

    @absorb_errors()
    def on_production_start(
        self,
        event_id: int,
        actor: ProductionActor | None,
        recipe_or_target: str | None = None,
        materials: Iterable[str | None] | None = None,
    ) -> None:
        if self.guard.active:
            return
        mats = normalize_materials(materials)
        modifiers = snapshot_modifiers(actor) if actor is not None else None
        self.store.track_event(ProductionEvent(event_id=event_id, actor=actor, materials=mats, modifiers=modifiers))
        self.tracker.note_production(event_id)
        logger.debug("production %s started for %s with %d materials", event_id, recipe_or_target, len(mats))

    @absorb_errors()
    def bind_product(self, event_id: int, item: Any) -> None:
        """Move bindings made under a job key onto the item that job produced."""
        if self.guard.active:
            return
        self.store.rebind_event(event_id, item)
        self.tracker.rebind_event(event_id, item)

    @absorb_errors()
    def bind_actor(self, item: Any, actor: ProductionActor | None) -> None:
        if self.guard.active:
            return
        self.store.bind_actor(item, actor)

    @absorb_errors()
    def on_roll_requested(self, actor: ProductionActor | None, skill: SkillDomain) -> QualityCategory | None:
        """Open a roll context. Always lets the host roll run."""
        if self.guard.active or actor is None:
            return None
        ctx = self.tracker.begin_roll(actor, skill)
        if self.settings.override_enabled:
            ctx.forced_outcome = self.policy.decide_override(actor, skill, None, modifiers=ctx.modifiers)
        return None

    @absorb_errors()
    def on_roll_committed(self, actor: ProductionActor | None, outcome: QualityCategory | None) -> None:
        if self.guard.active:
            return
        ctx = self.tracker.current()
        if ctx is None or ctx.actor is not actor:
            return
        if outcome is None:
            # The host roll raised; nothing will be committed for it.
            self.tracker.end_roll(ctx)
            return
        self.tracker.mark_rolled(ctx, QualityCategory(outcome))

    def on_outcome_set(self, item: Any, outcome: QualityCategory) -> QualityCategory:
        """Commit hook. Returns the outcome the item ends up with."""
        try:
            return self.bridge.finalize(item, QualityCategory(outcome))
        except Exception:
            logger.exception("outcome commit hook failed; keeping %s", outcome)
            return outcome

    @absorb_errors(default=True)
    def on_modifier_start_or_end(self, actor: ProductionActor | None) -> bool:
        """Whether the host may start, end or consume a modifier on ``actor``."""
        return not self.guard.active

    @absorb_errors(default=False)
    def on_modifier_query(self, actor: ProductionActor | None, tag: str) -> bool:
        if self.guard.active or actor is None:
            return False
        return bool(actor.has_eligibility_tag(tag))

    def estimate(
        self,
        actor: ProductionActor | None,
        skill: SkillDomain | str | None,
        item_type: str | None = None,
        sample_count: int | None = None,
    ) -> EstimationResult:
        """Chances for the UI. Falls back to a degenerate result on any failure."""
        try:
            modifiers = snapshot_modifiers(actor) if actor is not None else None
            return self.engine.estimate(
                actor,
                SkillDomain(skill) if skill is not None else None,
                item_type=item_type,
                sample_count=sample_count,
                modifiers=modifiers,
            )
        except Exception:
            logger.exception("estimate for actor %s failed", getattr(actor, "actor_id", None))
            return degenerate_result(sample_count if isinstance(sample_count, int) else self.settings.sample_count)

    @absorb_errors()
    def decide_override(
        self,
        actor: ProductionActor | None,
        skill: SkillDomain | str | None,
        natural: QualityCategory | str | None,
    ) -> QualityCategory | None:
        return self.policy.decide_override(
            actor,
            SkillDomain(skill) if skill is not None else None,
            QualityCategory(natural) if natural is not None else None,
        )

    @absorb_errors(scope="maintenance")
    def tick(self, now_ticks: int) -> None:
        """Periodic upkeep on the host's game clock."""
        if self.guard.active:
            return
        interval = self.settings.maintenance_interval_ticks
        if self._last_maintenance_tick is not None and now_ticks - self._last_maintenance_tick < interval:
            return
        self._last_maintenance_tick = now_ticks
        self.dedup.sweep(now_ticks)
        self.store.sweep_idle()
        if self._last_prune_tick is None or now_ticks - self._last_prune_tick >= TICKS_PER_DAY:
            self._last_prune_tick = now_ticks
            removed = self.log.prune(now_ticks)
            if removed:
                logger.info("pruned %d log entries", removed)
