from __future__ import annotations

from qins.contracts import EstimationResult, QualityCategory, QualitySettings, SkillDomain
from qins.estimation import OVERRIDE_EPSILON, degenerate_distribution, select_override_tier
from qins.simulation import CreativityBoost
from tests.helpers import OVERRIDE_EXAMPLE, ScriptedHost, colonist, cycle_of, make_colony, wire

Q = QualityCategory

EXAMPLE = {Q.NORMAL: 0.5, Q.GOOD: 0.3, Q.EXCELLENT: 0.19, Q.MASTERWORK: 0.01}


def _override_settings(**overrides) -> QualitySettings:
    values = {"override_enabled": True, "override_floor": 0.02, "sample_count": 500}
    values.update(overrides)
    return QualitySettings(**values)


def test_example_distribution_selects_excellent_not_masterwork():
    assert select_override_tier(EXAMPLE, 0.02, top_tier_allowed=False) == Q.EXCELLENT


def test_ineligible_top_tier_is_skipped():
    dist = {Q.MASTERWORK: 0.5, Q.LEGENDARY: 0.5}
    assert select_override_tier(dist, 0.02, top_tier_allowed=False) == Q.MASTERWORK
    assert select_override_tier(dist, 0.02, top_tier_allowed=True) == Q.LEGENDARY


def test_floor_comparison_tolerates_rounding():
    dist = {Q.NORMAL: 1.0 - 0.02 + OVERRIDE_EPSILON / 2, Q.GOOD: 0.02 - OVERRIDE_EPSILON / 2}
    assert select_override_tier(dist, 0.02, top_tier_allowed=False) == Q.GOOD


def test_zero_floor_picks_highest_tier_with_mass():
    assert select_override_tier(EXAMPLE, 0.0, top_tier_allowed=False) == Q.MASTERWORK


def test_decide_override_never_downgrades():
    _, hooks = make_colony(settings=_override_settings())
    estimate = EstimationResult(probabilities=dict(EXAMPLE), sample_count=100)
    ada = colonist()

    assert hooks.policy.decide_override(ada, SkillDomain.CRAFTING, Q.NORMAL, estimate=estimate) == Q.EXCELLENT
    assert hooks.policy.decide_override(ada, SkillDomain.CRAFTING, Q.EXCELLENT, estimate=estimate) is None
    assert hooks.policy.decide_override(ada, SkillDomain.CRAFTING, Q.MASTERWORK, estimate=estimate) is None


def test_decide_override_ignores_degenerate_estimates():
    _, hooks = make_colony(settings=_override_settings())
    estimate = EstimationResult(probabilities=degenerate_distribution(Q.NORMAL), sample_count=100, degenerate=True)
    assert hooks.policy.decide_override(colonist(), SkillDomain.CRAFTING, Q.AWFUL, estimate=estimate) is None


def test_decide_override_uses_sampled_estimate():
    host = ScriptedHost(cycle_of(OVERRIDE_EXAMPLE))
    hooks = wire(host, _override_settings())
    assert hooks.decide_override(colonist(), SkillDomain.CRAFTING, Q.NORMAL) == Q.EXCELLENT


def test_override_lifts_committed_outcome_and_logs_once():
    host = ScriptedHost(cycle_of(OVERRIDE_EXAMPLE))
    hooks = wire(host, _override_settings())
    ada = colonist()

    item = host.craft(ada, "Apparel_Parka", ["Cloth"], stuff="Cloth")

    assert item.quality == Q.EXCELLENT
    entries = hooks.log.entries()
    assert len(entries) == 1
    assert entries[0].quality == Q.EXCELLENT
    assert entries[0].overridden
    assert not hooks.bridge.is_bumping(item.item_id)
    assert hooks.tracker.depth() == 0


def test_override_disabled_keeps_natural_outcome():
    host = ScriptedHost(cycle_of(OVERRIDE_EXAMPLE))
    hooks = wire(host, _override_settings(override_enabled=False))
    item = host.craft(colonist(), "Apparel_Parka", ["Cloth"])
    assert item.quality == Q.NORMAL
    assert host.rolls == 1
    assert not hooks.log.entries()[0].overridden


def test_override_does_not_touch_natural_outcome_at_or_above_candidate():
    host = ScriptedHost([Q.MASTERWORK] + [Q.NORMAL] * 99)
    hooks = wire(host, _override_settings())
    item = host.craft(colonist(), "Apparel_Parka", ["Cloth"])
    # 500 sampled rolls wrap the cycle, so the live roll is the masterwork one.
    assert item.quality == Q.MASTERWORK
    assert not hooks.log.entries()[0].overridden


def test_override_for_boosted_actor_can_reach_top_tier():
    host = ScriptedHost(cycle_of({Q.NORMAL: 90, Q.EXCELLENT: 10}))
    hooks = wire(host, _override_settings())
    ada = colonist()
    ada.boost = CreativityBoost()

    assert hooks.decide_override(ada, SkillDomain.CRAFTING, Q.EXCELLENT) == Q.LEGENDARY
