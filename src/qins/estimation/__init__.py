from .engine import MIN_SAMPLES, EstimationEngine, context_key, degenerate_result
from .policy import OVERRIDE_EPSILON, OverridePolicy, select_override_tier
from .sampling import SamplingGuard
from .tiers import (
    cumulative_at_or_above,
    degenerate_distribution,
    empty_distribution,
    fold_top_tier,
    normalize_counts,
    shift_tiers,
)

__all__ = [
    "MIN_SAMPLES",
    "OVERRIDE_EPSILON",
    "EstimationEngine",
    "OverridePolicy",
    "SamplingGuard",
    "context_key",
    "degenerate_result",
    "cumulative_at_or_above",
    "degenerate_distribution",
    "empty_distribution",
    "fold_top_tier",
    "normalize_counts",
    "select_override_tier",
    "shift_tiers",
]
