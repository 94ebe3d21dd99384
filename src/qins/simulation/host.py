from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from qins.contracts import SPECIALIST_TAG, QualityCategory, RandomSource, SkillDomain
from qins.core.randomness import gaussian_asymmetric
from qins.correlation.store import construction_event_id
from qins.hooks.interception import QualityHooks

# Center of the quality roll for each skill level.
SKILL_QUALITY_CENTERS: dict[int, float] = {
    0: 0.7,
    1: 1.1,
    2: 1.5,
    3: 1.8,
    4: 2.0,
    5: 2.2,
    6: 2.4,
    7: 2.6,
    8: 2.8,
    9: 2.95,
    10: 3.1,
    11: 3.25,
    12: 3.4,
    13: 3.5,
    14: 3.6,
    15: 3.7,
    16: 3.8,
    17: 3.9,
    18: 4.0,
    19: 4.1,
    20: 4.2,
}
BASE_ROLL_CAP = QualityCategory.MASTERWORK.rank


def roll_base_quality(skill_level: int, rng: RandomSource) -> QualityCategory:
    """Skill-driven roll before any modifier; never reaches the top tier."""
    center = SKILL_QUALITY_CENTERS[max(0, min(20, skill_level))]
    rank = _clamp_rank(int(gaussian_asymmetric(rng, center, 0.6, 0.8)))
    if rank == BASE_ROLL_CAP and rng.rand() < 0.5:
        rank = _clamp_rank(int(gaussian_asymmetric(rng, center, 0.6, 0.95)))
    return QualityCategory.from_rank(rank)


def _clamp_rank(rank: int) -> int:
    return max(0, min(BASE_ROLL_CAP, rank))


@dataclass(slots=True)
class CreativityBoost:
    granted_at_tick: int = 0


@dataclass(slots=True, eq=False)
class Colonist:
    actor_id: int
    display_name: str
    skills: dict[SkillDomain, int] = field(default_factory=dict)
    is_player_controlled: bool = True
    roles: set[str] = field(default_factory=set)
    boost: CreativityBoost | None = None

    def skill_level(self, skill: SkillDomain) -> int:
        return self.skills.get(skill, 0)

    def has_creativity_boost(self) -> bool:
        return self.boost is not None

    def has_eligibility_tag(self, tag: str) -> bool:
        return tag in self.roles

    def take_boost(self) -> CreativityBoost | None:
        boost, self.boost = self.boost, None
        return boost

    def restore_boost(self, boost: CreativityBoost | None) -> None:
        if boost is not None:
            self.boost = boost


@dataclass(slots=True, eq=False)
class Item:
    item_id: int
    def_name: str
    stuff: str | None = None
    quality: QualityCategory | None = None
    is_building: bool = False
    has_art: bool = False
    creator: Colonist | None = None
    inner_item: Item | None = None
    materials: tuple[str, ...] | None = None


class ColonyHost:
    """Minimal production host: colonists make items and the quality hooks observe."""

    def __init__(self, random_source: RandomSource, map_id: int = 1) -> None:
        self.random = random_source
        self.map_id = map_id
        self.ticks = 0
        self.hooks: QualityHooks | None = None
        self.items: dict[int, Item] = {}
        self.buildings: dict[tuple[int, int], Item] = {}
        self._next_id = 1

    def attach(self, hooks: QualityHooks) -> None:
        self.hooks = hooks
        hooks.set_roller(self.generate_quality)

    def next_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def inspire(self, colonist: Colonist) -> None:
        colonist.boost = CreativityBoost(granted_at_tick=self.ticks)

    def generate_quality(self, actor: Colonist, skill: SkillDomain) -> QualityCategory:
        hooks = self.hooks
        forced = hooks.on_roll_requested(actor, skill) if hooks is not None else None
        outcome: QualityCategory | None = None
        try:
            outcome = forced if forced is not None else self._roll(actor, skill)
        finally:
            if hooks is not None:
                hooks.on_roll_committed(actor, outcome)
        return outcome

    def _roll(self, actor: Colonist, skill: SkillDomain) -> QualityCategory:
        quality = roll_base_quality(actor.skill_level(skill), self.random)
        if actor.has_creativity_boost():
            quality = quality.shifted(2)
            if self._may_change_modifier(actor):
                actor.take_boost()
        if self._has_role(actor, SPECIALIST_TAG):
            quality = quality.shifted(1)
        return quality

    def set_quality(self, item: Item, quality: QualityCategory) -> QualityCategory:
        item.quality = quality
        if self.hooks is None:
            return quality
        return self.hooks.on_outcome_set(item, quality)

    def craft(
        self,
        actor: Colonist,
        def_name: str,
        ingredients: Iterable[str] = (),
        stuff: str | None = None,
        has_art: bool = False,
        minify: bool = False,
    ) -> Item:
        item_id = self.next_id()
        if self.hooks is not None:
            self.hooks.on_production_start(item_id, actor, def_name, [*ingredients, stuff])
        skill = SkillDomain.ARTISTIC if has_art else SkillDomain.CRAFTING
        quality = self.generate_quality(actor, skill)
        item = Item(item_id=item_id, def_name=def_name, stuff=stuff, has_art=has_art, creator=actor if has_art else None)
        if minify:
            item = self.minify(item)
        self.items[item.item_id] = item
        self.set_quality(item, quality)
        return item

    def construct(
        self,
        actor: Colonist,
        def_name: str,
        cell: tuple[int, int],
        stuff: str | None = None,
        resources: Iterable[str] = (),
    ) -> Item:
        key = construction_event_id(self.map_id, cell, def_name)
        if self.hooks is not None:
            self.hooks.on_production_start(key, actor, def_name, [stuff, *resources])
        quality = self.generate_quality(actor, SkillDomain.CONSTRUCTION)
        building = Item(item_id=self.next_id(), def_name=def_name, stuff=stuff, is_building=True)
        self.buildings[cell] = building
        self.items[building.item_id] = building
        if self.hooks is not None:
            self.hooks.bind_product(key, building)
        self.set_quality(building, quality)
        return building

    def minify(self, item: Item) -> Item:
        return Item(item_id=self.next_id(), def_name=item.def_name, stuff=item.stuff, inner_item=item)

    def trade_item(self, def_name: str, quality: QualityCategory, stuff: str | None = None) -> Item:
        item = Item(item_id=self.next_id(), def_name=def_name, stuff=stuff)
        self.items[item.item_id] = item
        self.set_quality(item, quality)
        return item

    def advance(self, ticks: int) -> int:
        self.ticks += max(0, ticks)
        if self.hooks is not None:
            self.hooks.tick(self.ticks)
        return self.ticks

    def _may_change_modifier(self, actor: Colonist) -> bool:
        if self.hooks is None:
            return True
        return self.hooks.on_modifier_start_or_end(actor)

    def _has_role(self, actor: Colonist, tag: str) -> bool:
        if self.hooks is None:
            return actor.has_eligibility_tag(tag)
        return self.hooks.on_modifier_query(actor, tag)
