from __future__ import annotations

import logging
from typing import Callable, Mapping

from qins.contracts import (
    QUALITY_TIERS,
    TOP_TIER,
    EstimationResult,
    ModifierSnapshot,
    ProductionActor,
    QualityCategory,
    QualitySettings,
    SkillDomain,
)
from qins.correlation.tracker import snapshot_modifiers
from qins.estimation.engine import EstimationEngine
from qins.estimation.tiers import cumulative_at_or_above

logger = logging.getLogger(__name__)

# Tolerance when comparing an estimated probability against the configured floor.
OVERRIDE_EPSILON = 1e-6


def select_override_tier(
    probabilities: Mapping[QualityCategory, float],
    floor: float,
    top_tier_allowed: bool,
) -> QualityCategory | None:
    """Highest tier whose at-or-above probability clears ``floor``."""
    for quality in reversed(QUALITY_TIERS):
        if quality == TOP_TIER and not top_tier_allowed:
            continue
        if probabilities.get(quality, 0.0) <= 0.0:
            continue
        if cumulative_at_or_above(probabilities, quality) + OVERRIDE_EPSILON >= floor:
            return quality
    return None


class OverridePolicy:
    def __init__(self, engine: EstimationEngine, settings: Callable[[], QualitySettings]) -> None:
        self._engine = engine
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings().override_enabled

    def decide_override(
        self,
        actor: ProductionActor | None,
        skill: SkillDomain | None,
        natural: QualityCategory | None,
        estimate: EstimationResult | None = None,
        modifiers: ModifierSnapshot | None = None,
    ) -> QualityCategory | None:
        """Advisory: the tier to force instead of ``natural``, or None."""
        if actor is None or skill is None:
            return None
        if modifiers is None:
            modifiers = snapshot_modifiers(actor)
        if estimate is None:
            estimate = self._engine.estimate(actor, skill, modifiers=modifiers)
        if estimate.degenerate:
            return None
        candidate = select_override_tier(
            estimate.probabilities,
            self._settings().override_floor,
            modifiers.top_tier_allowed,
        )
        if candidate is None:
            return None
        if natural is not None and natural.rank >= candidate.rank:
            return None
        logger.debug("override candidate %s over natural %s for actor %s", candidate.value, natural, actor.actor_id)
        return candidate
