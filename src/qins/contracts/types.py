from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Protocol, Sequence

TICKS_PER_HOUR = 2500
TICKS_PER_DAY = 60000

SPECIALIST_TAG = "production_specialist"


class QualityCategory(str, Enum):
    AWFUL = "awful"
    POOR = "poor"
    NORMAL = "normal"
    GOOD = "good"
    EXCELLENT = "excellent"
    MASTERWORK = "masterwork"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        return QUALITY_TIERS.index(self)

    @classmethod
    def from_rank(cls, rank: int) -> QualityCategory:
        rank = max(0, min(rank, len(QUALITY_TIERS) - 1))
        return QUALITY_TIERS[rank]

    def shifted(self, tiers: int) -> QualityCategory:
        return QualityCategory.from_rank(self.rank + max(0, tiers))


QUALITY_TIERS: tuple[QualityCategory, ...] = (
    QualityCategory.AWFUL,
    QualityCategory.POOR,
    QualityCategory.NORMAL,
    QualityCategory.GOOD,
    QualityCategory.EXCELLENT,
    QualityCategory.MASTERWORK,
    QualityCategory.LEGENDARY,
)
TOP_TIER = QUALITY_TIERS[-1]
DEFAULT_QUALITY = QualityCategory.NORMAL


class SkillDomain(str, Enum):
    CONSTRUCTION = "construction"
    CRAFTING = "crafting"
    ARTISTIC = "artistic"


class RollPhase(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    SUPPRESSED = "suppressed"
    ROLLED = "rolled"
    COMMITTED = "committed"


class ActionType(str, Enum):
    ADD_COLONIST = "add_colonist"
    INSPIRE = "inspire"
    CRAFT_ITEM = "craft_item"
    CONSTRUCT = "construct"
    TRADE_ITEM = "trade_item"
    ESTIMATE_CHANCES = "estimate_chances"
    GET_LOG = "get_log"
    GET_SETTINGS = "get_settings"
    UPDATE_SETTINGS = "update_settings"
    ADVANCE_TICKS = "advance_ticks"
    SAVE = "save"
    EXPORT_LOG = "export_log"


class RandomSource(Protocol):
    def rand(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def gaussian(self) -> float: ...

    def choice(self, items: Sequence[Any]) -> Any: ...

    def spawn(self, substream_id: str) -> RandomSource: ...

    def push_state(self, seed: int) -> None: ...

    def pop_state(self) -> None: ...


class ProductionActor(Protocol):
    """Capability surface the engine needs from an acting entity."""

    actor_id: int
    display_name: str
    is_player_controlled: bool

    def skill_level(self, skill: SkillDomain) -> int: ...

    def has_creativity_boost(self) -> bool: ...

    def has_eligibility_tag(self, tag: str) -> bool: ...

    def take_boost(self) -> Any: ...

    def restore_boost(self, boost: Any) -> None: ...


RollFunction = Callable[[ProductionActor, SkillDomain], QualityCategory]


@dataclass(frozen=True, slots=True)
class ModifierSnapshot:
    had_creativity_boost: bool = False
    was_specialist_role: bool = False

    @property
    def tier_delta(self) -> int:
        delta = 0
        if self.had_creativity_boost:
            delta += 2
        if self.was_specialist_role:
            delta += 1
        return delta

    @property
    def mask(self) -> int:
        return int(self.had_creativity_boost) | (int(self.was_specialist_role) << 1)

    @property
    def top_tier_allowed(self) -> bool:
        return self.had_creativity_boost or self.was_specialist_role


@dataclass(slots=True)
class ProductionEvent:
    event_id: int
    actor: ProductionActor | None = None
    skill: SkillDomain | None = None
    materials: frozenset[str] = frozenset()
    modifiers: ModifierSnapshot | None = None
    started_at: float = 0.0


@dataclass(slots=True, eq=False)
class RollContext:
    actor: ProductionActor
    skill: SkillDomain
    modifiers: ModifierSnapshot
    materials: frozenset[str] = frozenset()
    forced_outcome: QualityCategory | None = None
    natural_outcome: QualityCategory | None = None
    phase: RollPhase = RollPhase.CAPTURING
    event_id: int | None = None

    def clear(self) -> None:
        self.materials = frozenset()
        self.forced_outcome = None
        self.natural_outcome = None
        self.event_id = None
        self.phase = RollPhase.COMMITTED


@dataclass(frozen=True, slots=True)
class LogEntry:
    item_type: str
    quality: QualityCategory
    actor_name: str
    skill: SkillDomain
    skill_level: int
    inspired_creativity: bool
    production_specialist: bool
    game_ticks: int
    stuff: str | None = None
    materials: tuple[str, ...] = ()
    play_seconds: float = -1.0
    overridden: bool = False

    @property
    def has_materials(self) -> bool:
        return bool(self.materials)

    @property
    def has_play_stamp(self) -> bool:
        return self.play_seconds >= 0.0

    def matches(self, search: str | None = None, quality: QualityCategory | None = None) -> bool:
        if quality is not None and self.quality != quality:
            return False
        if search:
            needle = search.casefold()
            return needle in self.actor_name.casefold() or needle in self.item_type.casefold()
        return True


@dataclass(slots=True)
class EstimationResult:
    probabilities: dict[QualityCategory, float]
    sample_count: int
    seed: int | None = None
    tier_shift: int = 0
    baseline: dict[QualityCategory, float] = field(default_factory=dict)
    degenerate: bool = False

    def probability(self, quality: QualityCategory) -> float:
        return self.probabilities.get(quality, 0.0)

    def at_or_above(self, quality: QualityCategory) -> float:
        return sum(p for q, p in self.probabilities.items() if q.rank >= quality.rank)

    def total(self) -> float:
        return sum(self.probabilities.values())

    def validate(self) -> None:
        if any(p < 0.0 or p > 1.0 + 1e-9 for p in self.probabilities.values()):
            raise ValueError("probabilities must lie in [0, 1]")
        total = round(self.total(), 6)
        if abs(total - 1.0) > 1e-4:
            raise ValueError(f"probabilities must sum to 1.0, got {total}")


@dataclass(slots=True)
class QualitySettings:
    logging_enabled: bool = True
    live_estimation_enabled: bool = True
    override_enabled: bool = False
    override_floor: float = 0.02
    sample_count: int = 5000
    prune_by_age: bool = True
    keep_days: int = 60
    prune_by_count: bool = True
    max_entries: int = 5000
    dedup_window_ticks: int = 60
    maintenance_interval_ticks: int = TICKS_PER_HOUR
    correlation_idle_seconds: float = 600.0
    max_export_files: int = 20
    debug_logs: bool = False

    def validate(self) -> list[str]:
        problems: list[str] = []
        if not 0.0 <= self.override_floor <= 0.2:
            problems.append(f"override_floor must be within [0, 0.2], got {self.override_floor}")
        if not 500 <= self.sample_count <= 20000:
            problems.append(f"sample_count must be within [500, 20000], got {self.sample_count}")
        if self.keep_days < 0:
            problems.append("keep_days must be >= 0")
        if self.max_entries < 0:
            problems.append("max_entries must be >= 0")
        if self.dedup_window_ticks <= 0:
            problems.append("dedup_window_ticks must be > 0")
        if self.maintenance_interval_ticks <= 0:
            problems.append("maintenance_interval_ticks must be > 0")
        if self.correlation_idle_seconds <= 0:
            problems.append("correlation_idle_seconds must be > 0")
        if self.max_export_files < 1:
            problems.append("max_export_files must be >= 1")
        return problems


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any]


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]


def normalize_materials(materials: Iterable[str | None] | None) -> frozenset[str]:
    if not materials:
        return frozenset()
    return frozenset(m for m in materials if m)
