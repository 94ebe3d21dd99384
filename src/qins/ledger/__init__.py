from .bridge import FinalizationBridge, assign_quality, infer_skill
from .log import ABSOLUTE_MAX_ENTRIES, PlayClock, QualityLog

__all__ = [
    "ABSOLUTE_MAX_ENTRIES",
    "FinalizationBridge",
    "PlayClock",
    "QualityLog",
    "assign_quality",
    "infer_skill",
]
