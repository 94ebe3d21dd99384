from __future__ import annotations

from typing import Mapping

from qins.contracts import QUALITY_TIERS, TOP_TIER, QualityCategory


def empty_distribution() -> dict[QualityCategory, float]:
    return {q: 0.0 for q in QUALITY_TIERS}


def degenerate_distribution(quality: QualityCategory) -> dict[QualityCategory, float]:
    dist = empty_distribution()
    dist[quality] = 1.0
    return dist


def normalize_counts(counts: Mapping[QualityCategory, int], sample_count: int) -> dict[QualityCategory, float]:
    if sample_count <= 0:
        raise ValueError("sample_count must be > 0")
    return {q: counts.get(q, 0) / sample_count for q in QUALITY_TIERS}


def shift_tiers(dist: Mapping[QualityCategory, float], tiers: int) -> dict[QualityCategory, float]:
    """Move mass from tier i to min(i + tiers, top); mass piles up at the top."""
    shifted = empty_distribution()
    step = max(0, tiers)
    last = len(QUALITY_TIERS) - 1
    for i, quality in enumerate(QUALITY_TIERS):
        p = dist.get(quality, 0.0)
        if p <= 0.0:
            continue
        shifted[QUALITY_TIERS[min(i + step, last)]] += p
    return shifted


def fold_top_tier(dist: Mapping[QualityCategory, float]) -> dict[QualityCategory, float]:
    """Move the top tier's mass onto the next tier down."""
    folded = empty_distribution()
    folded.update(dist)
    top_mass = folded[TOP_TIER]
    if top_mass > 0.0:
        below = QUALITY_TIERS[-2]
        folded[below] += top_mass
        folded[TOP_TIER] = 0.0
    return folded


def cumulative_at_or_above(dist: Mapping[QualityCategory, float], quality: QualityCategory) -> float:
    return sum(p for q, p in dist.items() if q.rank >= quality.rank)
