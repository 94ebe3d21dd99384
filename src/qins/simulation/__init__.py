from .host import Colonist, ColonyHost, CreativityBoost, Item, SKILL_QUALITY_CENTERS, roll_base_quality
from .runtime import QualityRuntime, RuntimePaths

__all__ = [
    "SKILL_QUALITY_CENTERS",
    "Colonist",
    "ColonyHost",
    "CreativityBoost",
    "Item",
    "QualityRuntime",
    "RuntimePaths",
    "roll_base_quality",
]
