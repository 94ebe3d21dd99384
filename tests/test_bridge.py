from __future__ import annotations

import pytest

from qins.contracts import SPECIALIST_TAG, QualityCategory, QualitySettings, SkillDomain
from qins.ledger import infer_skill
from qins.simulation import CreativityBoost, Item
from tests.helpers import ScriptedHost, colonist, make_colony, wire

Q = QualityCategory


def test_plain_craft_logs_natural_outcome_without_modifiers():
    host = ScriptedHost([Q.NORMAL])
    hooks = wire(host)
    ada = colonist(level=9)

    item = host.craft(ada, "Apparel_Parka", ["Cloth", "Cloth", "Leather_Plain"], stuff="Cloth")

    assert item.quality == Q.NORMAL
    [entry] = hooks.log.entries()
    assert entry.quality == Q.NORMAL
    assert entry.actor_name == "Ada"
    assert entry.item_type == "Apparel_Parka"
    assert entry.skill == SkillDomain.CRAFTING
    assert entry.skill_level == 9
    assert entry.stuff == "Cloth"
    assert entry.materials == ("Cloth", "Leather_Plain")
    assert not entry.inspired_creativity
    assert not entry.production_specialist
    assert not entry.overridden


def test_commit_purges_all_correlation_state():
    host = ScriptedHost([Q.GOOD])
    hooks = wire(host)
    host.craft(colonist(), "Gun_Revolver", ["Steel", "ComponentIndustrial"])
    assert len(hooks.store) == 0
    assert hooks.tracker.depth() == 0


def test_inspired_craft_records_boost_and_consumes_it():
    host, hooks = make_colony(seed=2)
    ada = colonist(level=12)
    ada.boost = CreativityBoost()

    item = host.craft(ada, "Sculpture_Small", ["WoodLog"], stuff="WoodLog", has_art=True)

    [entry] = hooks.log.entries()
    assert entry.inspired_creativity
    assert entry.skill == SkillDomain.ARTISTIC
    assert entry.quality == item.quality
    assert item.quality.rank >= Q.NORMAL.rank
    assert ada.boost is None


def test_specialist_role_is_recorded():
    host, hooks = make_colony(seed=4)
    host.craft(colonist(roles={SPECIALIST_TAG}), "Apparel_Duster", ["Cloth"])
    [entry] = hooks.log.entries()
    assert entry.production_specialist
    assert not entry.inspired_creativity


def test_trade_item_without_actor_is_not_logged():
    host, hooks = make_colony()
    item = host.trade_item("Apparel_Parka", Q.GOOD)
    assert item.quality == Q.GOOD
    assert len(hooks.log) == 0
    assert len(hooks.store) == 0


def test_non_player_actor_is_not_logged():
    host, hooks = make_colony()
    host.craft(colonist(player=False), "Apparel_Parka", ["Cloth"])
    assert len(hooks.log) == 0
    assert len(hooks.store) == 0


def test_duplicate_commit_produces_one_entry():
    host, hooks = make_colony()
    ada = colonist()
    item = Item(item_id=host.next_id(), def_name="Table", stuff="Steel")

    hooks.bind_actor(item, ada)
    hooks.on_outcome_set(item, Q.GOOD)
    hooks.bind_actor(item, ada)
    hooks.on_outcome_set(item, Q.GOOD)

    assert len(hooks.log) == 1
    assert len(hooks.store) == 0


def test_changed_outcome_for_same_item_is_logged_again():
    host, hooks = make_colony()
    ada = colonist()
    item = Item(item_id=host.next_id(), def_name="Table")

    hooks.bind_actor(item, ada)
    hooks.on_outcome_set(item, Q.GOOD)
    hooks.bind_actor(item, ada)
    hooks.on_outcome_set(item, Q.EXCELLENT)

    assert [e.quality for e in hooks.log.entries()] == [Q.GOOD, Q.EXCELLENT]


def test_construction_logs_stuff_and_frame_contents():
    host = ScriptedHost([Q.EXCELLENT])
    hooks = wire(host)

    building = host.construct(colonist(), "Bed", (3, 4), stuff="WoodLog", resources=["WoodLog", "Cloth"])

    [entry] = hooks.log.entries()
    assert building.is_building
    assert entry.skill == SkillDomain.CONSTRUCTION
    assert entry.materials == ("Cloth", "WoodLog")
    assert entry.quality == Q.EXCELLENT
    assert len(hooks.store) == 0


def test_minified_product_resolves_materials_through_inner_item():
    host = ScriptedHost([Q.GOOD])
    hooks = wire(host)

    wrapper = host.craft(colonist(), "Armchair", ["Cloth", "Steel"], stuff="Cloth", minify=True)

    assert wrapper.inner_item is not None
    [entry] = hooks.log.entries()
    assert entry.materials == ("Cloth", "Steel")


def test_art_creator_is_used_when_no_roll_was_tracked():
    host, hooks = make_colony()
    bram = colonist(actor_id=5, name="Bram", level=7)
    art = Item(item_id=host.next_id(), def_name="Sculpture_Grand", has_art=True, creator=bram)

    hooks.on_outcome_set(art, Q.MASTERWORK)

    [entry] = hooks.log.entries()
    assert entry.actor_name == "Bram"
    assert entry.skill == SkillDomain.ARTISTIC
    assert entry.skill_level == 7


def test_skill_is_inferred_from_item_category():
    assert infer_skill(Item(item_id=1, def_name="Wall", is_building=True)) == SkillDomain.CONSTRUCTION
    assert infer_skill(Item(item_id=2, def_name="Sculpture", has_art=True)) == SkillDomain.ARTISTIC
    assert infer_skill(Item(item_id=3, def_name="Parka")) == SkillDomain.CRAFTING


def test_logging_disabled_records_nothing():
    host = ScriptedHost([Q.GOOD])
    hooks = wire(host, QualitySettings(logging_enabled=False))
    host.craft(colonist(), "Apparel_Parka", ["Cloth"])
    assert len(hooks.log) == 0
    assert len(hooks.store) == 0


def test_hooks_are_inert_while_sampling():
    host = ScriptedHost([Q.GOOD])
    hooks = wire(host)
    with hooks.guard.sampling():
        host.craft(colonist(), "Apparel_Parka", ["Cloth"])
        assert not hooks.on_modifier_start_or_end(colonist())
        assert not hooks.on_modifier_query(colonist(roles={SPECIALIST_TAG}), SPECIALIST_TAG)
    assert len(hooks.log) == 0
    assert len(hooks.store) == 0
    assert hooks.tracker.depth() == 0


def test_failing_commit_hook_keeps_natural_outcome(monkeypatch):
    host, hooks = make_colony()

    def explode(item, natural):
        raise RuntimeError("bridge failure")

    monkeypatch.setattr(hooks.bridge, "finalize", explode)
    item = host.craft(colonist(), "Apparel_Parka", ["Cloth"])
    assert item.quality is not None


def test_failing_subscriber_does_not_break_production():
    host, hooks = make_colony()
    seen = []

    def bad_subscriber(entry):
        raise ValueError("ui detached")

    hooks.event_bus.subscribe_entries(bad_subscriber)
    hooks.event_bus.subscribe_entries(seen.append)
    host.craft(colonist(), "Apparel_Parka", ["Cloth"])

    assert len(seen) == 1
    assert hooks.event_bus.emitted_count("crafting") == 1

    hooks.event_bus.unsubscribe_entries(seen.append)
    hooks.event_bus.unsubscribe_entries(bad_subscriber)
    host.craft(colonist(), "Apparel_Parka", ["Cloth"])
    assert len(seen) == 1
    assert hooks.event_bus.emitted_count() == 2


def test_roll_that_raises_leaves_no_context_behind():
    class BrokenHost(ScriptedHost):
        def _roll(self, actor, skill):
            raise RuntimeError("def missing")

    host = BrokenHost([Q.NORMAL])
    hooks = wire(host)
    with pytest.raises(RuntimeError):
        host.generate_quality(colonist(), SkillDomain.CRAFTING)
    assert hooks.tracker.depth() == 0


def test_uncommitted_roll_is_not_credited_to_next_commit():
    host, hooks = make_colony()
    ada = colonist()

    host.generate_quality(ada, SkillDomain.CRAFTING)
    traded = host.trade_item("Apparel_Parka", Q.EXCELLENT)

    assert traded.quality == Q.EXCELLENT
    assert len(hooks.log) == 0
    assert hooks.tracker.depth() == 0


def test_craft_after_abandoned_roll_is_logged_for_its_own_actor():
    host = ScriptedHost([Q.POOR, Q.GOOD])
    hooks = wire(host)

    host.generate_quality(colonist(actor_id=1, name="Ada"), SkillDomain.ARTISTIC)
    host.craft(colonist(actor_id=2, name="Bram"), "Apparel_Parka", ["Cloth"])

    [entry] = hooks.log.entries()
    assert entry.actor_name == "Bram"
    assert entry.skill == SkillDomain.CRAFTING
    assert entry.quality == Q.GOOD
