from __future__ import annotations

import logging
import threading
from collections import Counter, OrderedDict
from typing import Callable

from qins.contracts import (
    DEFAULT_QUALITY,
    QUALITY_TIERS,
    EstimationResult,
    ModifierSnapshot,
    ProductionActor,
    QualityCategory,
    QualitySettings,
    RandomSource,
    RollFunction,
    SkillDomain,
)
from qins.core.errors import SamplingUnavailableError
from qins.core.randomness import derive_seed
from qins.correlation.tracker import RollContextTracker, snapshot_modifiers
from qins.estimation.sampling import SamplingGuard
from qins.estimation.tiers import degenerate_distribution, fold_top_tier, normalize_counts, shift_tiers

logger = logging.getLogger(__name__)

MIN_SAMPLES = 100
DEFAULT_BATCH_SIZE = 1000

CacheKey = tuple[int, str, int, str, int, int]


def context_key(item_type: str | None) -> str:
    return item_type or "-"


class EstimationEngine:
    """Monte Carlo estimation of outcome distributions over the host roll.

    Samples are taken with the actor's transient boost stripped and every
    observable hook disabled; modifiers are then applied as a tier shift.
    """

    def __init__(
        self,
        *,
        roller: RollFunction | None,
        random_source: RandomSource,
        tracker: RollContextTracker,
        guard: SamplingGuard,
        settings: Callable[[], QualitySettings],
        batch_size: int = DEFAULT_BATCH_SIZE,
        cache_size: int = 256,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._roller = roller
        self._random = random_source
        self._tracker = tracker
        self._guard = guard
        self._settings = settings
        self._batch_size = batch_size
        self._cache_size = cache_size
        self._cache: OrderedDict[CacheKey, EstimationResult] = OrderedDict()
        self._cache_lock = threading.Lock()
        self._sampling_lock = threading.RLock()
        self._warned = False

    def set_roller(self, roller: RollFunction | None) -> None:
        self._roller = roller
        self._warned = False
        self.clear_cache()

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def estimate(
        self,
        actor: ProductionActor | None,
        skill: SkillDomain | None,
        item_type: str | None = None,
        sample_count: int | None = None,
        modifiers: ModifierSnapshot | None = None,
    ) -> EstimationResult:
        samples = max(MIN_SAMPLES, sample_count if sample_count is not None else self._settings().sample_count)
        if actor is None or skill is None:
            return degenerate_result(samples)
        skill = SkillDomain(skill)
        if modifiers is None:
            modifiers = snapshot_modifiers(actor)

        key = self._cache_key(actor, skill, item_type, samples, modifiers)
        if key is not None:
            with self._cache_lock:
                cached = self._cache.get(key)
                if cached is not None:
                    self._cache.move_to_end(key)
                    return cached

        baseline, seed, degenerate = self._sample_baseline(actor, skill, item_type, samples)
        final = shift_tiers(baseline, modifiers.tier_delta)
        if not modifiers.top_tier_allowed:
            final = fold_top_tier(final)

        if self._settings().debug_logs:
            logger.debug(
                "estimate actor=%s skill=%s baseline=[%s] final=[%s] shift=%d",
                getattr(actor, "actor_id", None),
                skill.value,
                _dump(baseline),
                _dump(final),
                modifiers.tier_delta,
            )

        result = EstimationResult(
            probabilities=final,
            sample_count=samples,
            seed=seed,
            tier_shift=modifiers.tier_delta,
            baseline=baseline,
            degenerate=degenerate,
        )
        if key is not None and not degenerate:
            with self._cache_lock:
                self._cache[key] = result
                while len(self._cache) > self._cache_size:
                    self._cache.popitem(last=False)
        return result

    def estimate_baseline(
        self,
        actor: ProductionActor,
        skill: SkillDomain,
        item_type: str | None = None,
        sample_count: int | None = None,
    ) -> dict[QualityCategory, float]:
        samples = max(MIN_SAMPLES, sample_count if sample_count is not None else self._settings().sample_count)
        baseline, _, _ = self._sample_baseline(actor, skill, item_type, samples)
        return baseline

    def _sample_baseline(
        self,
        actor: ProductionActor,
        skill: SkillDomain,
        item_type: str | None,
        samples: int,
    ) -> tuple[dict[QualityCategory, float], int | None, bool]:
        try:
            roller = self._require_roller()
            seed = derive_seed(actor.actor_id, context_key(item_type), samples)
            counts = self._run_batches(roller, actor, skill, seed, samples)
        except Exception as exc:
            self._warn_once(f"quality estimation unavailable, showing a flat distribution: {exc}")
            return degenerate_distribution(DEFAULT_QUALITY), None, True
        return normalize_counts(counts, samples), seed, False

    def _run_batches(
        self,
        roller: RollFunction,
        actor: ProductionActor,
        skill: SkillDomain,
        seed: int,
        samples: int,
    ) -> Counter[QualityCategory]:
        counts: Counter[QualityCategory] = Counter()
        with self._sampling_lock, self._guard.sampling():
            remaining = samples
            batch_index = 0
            while remaining > 0:
                size = min(self._batch_size, remaining)
                self._random.push_state(derive_seed(seed, batch_index))
                try:
                    for _ in range(size):
                        with self._tracker.suppressed(actor):
                            outcome = QualityCategory(roller(actor, skill))
                        counts[outcome] += 1
                finally:
                    self._random.pop_state()
                remaining -= size
                batch_index += 1
        return counts

    def _require_roller(self) -> RollFunction:
        if self._roller is None:
            raise SamplingUnavailableError("host roll function is not available")
        return self._roller

    def _cache_key(
        self,
        actor: ProductionActor,
        skill: SkillDomain,
        item_type: str | None,
        samples: int,
        modifiers: ModifierSnapshot,
    ) -> CacheKey | None:
        try:
            level = int(actor.skill_level(skill))
            return (int(actor.actor_id), skill.value, level, context_key(item_type), modifiers.mask, samples)
        except Exception:
            return None

    def _warn_once(self, message: str) -> None:
        if self._warned:
            logger.debug(message)
            return
        self._warned = True
        logger.warning(message)


def degenerate_result(sample_count: int = MIN_SAMPLES) -> EstimationResult:
    """All mass on the default tier, shown when no real estimate is possible."""
    return EstimationResult(
        probabilities=degenerate_distribution(DEFAULT_QUALITY),
        sample_count=sample_count,
        degenerate=True,
    )


def _dump(dist: dict[QualityCategory, float]) -> str:
    return ", ".join(f"{q.value}:{dist.get(q, 0.0):.2%}" for q in QUALITY_TIERS)
