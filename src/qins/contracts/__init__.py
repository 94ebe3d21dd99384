from .types import (
    DEFAULT_QUALITY,
    QUALITY_TIERS,
    SPECIALIST_TAG,
    TICKS_PER_DAY,
    TICKS_PER_HOUR,
    TOP_TIER,
    ActionRequest,
    ActionResult,
    ActionType,
    EstimationResult,
    ForensicArtifact,
    LogEntry,
    ModifierSnapshot,
    ProductionActor,
    ProductionEvent,
    QualityCategory,
    QualitySettings,
    RandomSource,
    RollContext,
    RollFunction,
    RollPhase,
    SkillDomain,
    normalize_materials,
)

__all__ = [
    "DEFAULT_QUALITY",
    "QUALITY_TIERS",
    "SPECIALIST_TAG",
    "TICKS_PER_DAY",
    "TICKS_PER_HOUR",
    "TOP_TIER",
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "EstimationResult",
    "ForensicArtifact",
    "LogEntry",
    "ModifierSnapshot",
    "ProductionActor",
    "ProductionEvent",
    "QualityCategory",
    "QualitySettings",
    "RandomSource",
    "RollContext",
    "RollFunction",
    "RollPhase",
    "SkillDomain",
    "normalize_materials",
]
