from __future__ import annotations

from typing import Iterable

from qins.contracts import ActionRequest, ActionType, QualityCategory, QualitySettings, SkillDomain
from qins.core import request_id, seeded_random
from qins.hooks import QualityHooks
from qins.simulation import Colonist, ColonyHost

OVERRIDE_EXAMPLE = {
    QualityCategory.NORMAL: 50,
    QualityCategory.GOOD: 30,
    QualityCategory.EXCELLENT: 19,
    QualityCategory.MASTERWORK: 1,
}


class ScriptedHost(ColonyHost):
    """Host whose base roll replays a fixed cycle of outcomes."""

    def __init__(self, outcomes: Iterable[QualityCategory], seed: int = 5) -> None:
        super().__init__(seeded_random(seed))
        self._outcomes = list(outcomes)
        self._cursor = 0
        self.rolls = 0

    def _roll(self, actor, skill):
        quality = self._outcomes[self._cursor % len(self._outcomes)]
        self._cursor += 1
        self.rolls += 1
        return quality


def cycle_of(counts: dict[QualityCategory, int]) -> list[QualityCategory]:
    outcomes: list[QualityCategory] = []
    for quality, count in counts.items():
        outcomes.extend([quality] * count)
    return outcomes


def wire(host: ColonyHost, settings: QualitySettings | None = None, **kwargs) -> QualityHooks:
    hooks = QualityHooks(
        random_source=host.random,
        clock=lambda: host.ticks,
        settings=settings,
        apply_outcome=host.set_quality,
        **kwargs,
    )
    host.attach(hooks)
    return hooks


def make_colony(seed: int = 11, settings: QualitySettings | None = None) -> tuple[ColonyHost, QualityHooks]:
    host = ColonyHost(seeded_random(seed))
    return host, wire(host, settings)


def colonist(
    actor_id: int = 900,
    name: str = "Ada",
    level: int = 10,
    roles: Iterable[str] = (),
    player: bool = True,
) -> Colonist:
    return Colonist(
        actor_id=actor_id,
        display_name=name,
        skills={skill: level for skill in SkillDomain},
        is_player_controlled=player,
        roles=set(roles),
    )


def request(action: ActionType, payload: dict | None = None) -> ActionRequest:
    return ActionRequest(request_id(), action, payload or {})
