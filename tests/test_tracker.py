from __future__ import annotations

import threading

import pytest

from qins.contracts import QualityCategory, RollPhase, SkillDomain
from qins.correlation import RollContextTracker
from qins.estimation import SamplingGuard
from qins.simulation import CreativityBoost, Item
from tests.helpers import colonist


def test_begin_roll_snapshots_modifiers_before_suppression():
    tracker = RollContextTracker()
    ada = colonist(roles={"production_specialist"})
    ada.boost = CreativityBoost()
    ctx = tracker.begin_roll(ada, SkillDomain.CRAFTING, ["Steel", None])

    with tracker.suppressed(ada):
        assert not ada.has_creativity_boost()
        assert ctx.phase == RollPhase.SUPPRESSED

    assert ctx.modifiers.had_creativity_boost
    assert ctx.modifiers.was_specialist_role
    assert ctx.materials == frozenset({"Steel"})
    assert ctx.phase == RollPhase.CAPTURING


def test_suppressed_restores_boost_when_roll_raises():
    tracker = RollContextTracker()
    ada = colonist()
    boost = CreativityBoost(granted_at_tick=42)
    ada.boost = boost

    with pytest.raises(RuntimeError):
        with tracker.suppressed(ada):
            raise RuntimeError("roll failed")

    assert ada.boost is boost


def test_suppressed_without_boost_does_not_grant_one():
    tracker = RollContextTracker()
    ada = colonist()
    with tracker.suppressed(ada):
        pass
    assert ada.boost is None


def test_end_roll_clears_context():
    tracker = RollContextTracker()
    ctx = tracker.begin_roll(colonist(), SkillDomain.ARTISTIC)
    tracker.mark_rolled(ctx, QualityCategory.GOOD)
    tracker.end_roll(ctx)
    assert tracker.current() is None
    assert ctx.natural_outcome is None
    assert ctx.phase == RollPhase.COMMITTED


def test_nested_rolls_use_innermost_and_restore_outer():
    tracker = RollContextTracker()
    ada = colonist(actor_id=1, name="Ada")
    bram = colonist(actor_id=2, name="Bram")
    outer = tracker.begin_roll(ada, SkillDomain.CRAFTING)
    inner = tracker.begin_roll(bram, SkillDomain.ARTISTIC)

    assert tracker.current() is inner
    tracker.end_roll(inner)
    assert tracker.current() is outer
    assert outer.actor is ada
    tracker.end_roll(outer)
    assert tracker.depth() == 0


def test_uncommitted_rolled_context_is_replaced_by_next_roll():
    tracker = RollContextTracker()
    stale = tracker.begin_roll(colonist(actor_id=1), SkillDomain.CRAFTING)
    tracker.mark_rolled(stale, QualityCategory.POOR)
    fresh = tracker.begin_roll(colonist(actor_id=2), SkillDomain.CRAFTING)
    assert tracker.depth() == 1
    assert tracker.current() is fresh


def test_context_belongs_only_to_the_noted_production_job():
    tracker = RollContextTracker()
    tracker.note_production(41)
    ctx = tracker.begin_roll(colonist(), SkillDomain.CRAFTING)

    assert ctx.event_id == 41
    assert tracker.owns(ctx, Item(item_id=41, def_name="Apparel_Parka"))
    assert tracker.owns(ctx, Item(item_id=42, def_name="Apparel_Parka", inner_item=Item(item_id=41, def_name="Apparel_Parka")))
    assert not tracker.owns(ctx, Item(item_id=43, def_name="Apparel_Parka"))

    loose = tracker.begin_roll(colonist(), SkillDomain.CRAFTING)
    assert loose.event_id is None
    assert not tracker.owns(loose, Item(item_id=41, def_name="Apparel_Parka"))


def test_rebind_moves_context_from_job_key_to_built_item():
    tracker = RollContextTracker()
    tracker.note_production(-99)
    ctx = tracker.begin_roll(colonist(), SkillDomain.CONSTRUCTION)
    built = Item(item_id=7, def_name="Bed", is_building=True)

    tracker.rebind_event(-99, built)

    assert tracker.owns(ctx, built)


def test_ending_outer_context_discards_contexts_above_it():
    tracker = RollContextTracker()
    outer = tracker.begin_roll(colonist(actor_id=1), SkillDomain.CRAFTING)
    tracker.begin_roll(colonist(actor_id=2), SkillDomain.CRAFTING)
    tracker.end_roll(outer)
    assert tracker.depth() == 0


def test_contexts_are_isolated_per_thread():
    tracker = RollContextTracker()
    tracker.begin_roll(colonist(), SkillDomain.CRAFTING)
    seen: list[object] = []

    worker = threading.Thread(target=lambda: seen.append(tracker.current()))
    worker.start()
    worker.join()

    assert seen == [None]
    assert tracker.current() is not None


def test_sampling_guard_is_thread_scoped_and_reentrant():
    guard = SamplingGuard()
    seen: list[bool] = []
    with guard.sampling():
        with guard.sampling():
            assert guard.active
        assert guard.active
        worker = threading.Thread(target=lambda: seen.append(guard.active))
        worker.start()
        worker.join()
    assert not guard.active
    assert seen == [False]
