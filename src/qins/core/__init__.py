from .errors import (
    QualityEngineError,
    SamplingUnavailableError,
    SettingsValidationError,
    absorb_errors,
    build_forensic_artifact,
    persist_forensic_artifact,
)
from .events import EventBus
from .ids import artifact_id, export_stamp, request_id
from .randomness import PythonRandomSource, derive_seed, gameplay_random, gaussian_asymmetric, seeded_random
from .settings import SettingsStore, apply_patch, configure_logging, validate_settings
from .timefmt import format_ticks_to_period, time_ago

__all__ = [
    "EventBus",
    "PythonRandomSource",
    "QualityEngineError",
    "SamplingUnavailableError",
    "SettingsStore",
    "SettingsValidationError",
    "absorb_errors",
    "apply_patch",
    "artifact_id",
    "build_forensic_artifact",
    "configure_logging",
    "derive_seed",
    "export_stamp",
    "format_ticks_to_period",
    "gameplay_random",
    "gaussian_asymmetric",
    "persist_forensic_artifact",
    "request_id",
    "seeded_random",
    "time_ago",
    "validate_settings",
]
