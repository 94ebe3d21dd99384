from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from qins.contracts import QualitySettings
from qins.core.errors import SettingsValidationError

logger = logging.getLogger(__name__)

_FIELD_TYPES = {f.name: f.type for f in fields(QualitySettings)}


def validate_settings(settings: QualitySettings) -> None:
    problems = settings.validate()
    if problems:
        raise SettingsValidationError(problems)


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ValueError(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(value)


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(value)
    return float(value)


# Field annotations are strings under postponed evaluation.
_COERCE = {"bool": _as_bool, "int": _as_int, "float": _as_float}


def coerce_patch(payload: dict[str, Any]) -> dict[str, Any]:
    """Convert patch values to each setting's declared type.

    Raises SettingsValidationError listing every unknown name and every value
    that cannot be converted.
    """
    problems = [f"unknown setting '{name}'" for name in sorted(set(payload) - set(_FIELD_TYPES))]
    coerced: dict[str, Any] = {}
    for name, value in payload.items():
        kind = _FIELD_TYPES.get(name)
        if kind is None:
            continue
        convert = _COERCE.get(getattr(kind, "__name__", str(kind)))
        if convert is None:
            coerced[name] = value
            continue
        try:
            coerced[name] = convert(value)
        except (TypeError, ValueError):
            problems.append(f"{name} must be {kind}, got {value!r}")
    if problems:
        raise SettingsValidationError(problems)
    return coerced


def apply_patch(settings: QualitySettings, payload: dict[str, Any]) -> QualitySettings:
    merged = QualitySettings(**{**asdict(settings), **coerce_patch(payload)})
    validate_settings(merged)
    return merged


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> QualitySettings:
        if not self.path.exists():
            return QualitySettings()
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        known = {k: v for k, v in raw.items() if k in _FIELD_TYPES}
        dropped = sorted(set(raw) - set(known))
        if dropped:
            logger.warning("ignoring unknown settings keys in %s: %s", self.path, ", ".join(dropped))
        settings = QualitySettings(**known)
        validate_settings(settings)
        return settings

    def save(self, settings: QualitySettings) -> Path:
        validate_settings(settings)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(settings), indent=2, sort_keys=True), encoding="utf-8")
        return self.path


def configure_logging(settings: QualitySettings, level: int | None = None) -> None:
    package_logger = logging.getLogger("qins")
    if level is not None:
        package_logger.setLevel(level)
    else:
        package_logger.setLevel(logging.DEBUG if settings.debug_logs else logging.INFO)
