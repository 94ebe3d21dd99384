from __future__ import annotations

import functools
import json
import logging
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Callable, TypeVar

from qins.contracts import ForensicArtifact
from qins.core.ids import artifact_id

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class QualityEngineError(RuntimeError):
    pass


class SamplingUnavailableError(QualityEngineError):
    pass


class SettingsValidationError(ValueError):
    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


def absorb_errors(default: Any = None, *, scope: str = "hook") -> Callable[[F], F]:
    """Run a hook body and turn any unexpected exception into ``default``.

    Host processing must never be aborted by this subsystem, so public hook
    entry points are wrapped with this decorator.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("%s %s failed; continuing as no-op", scope, func.__qualname__)
                return default

        return wrapper  # type: ignore[return-value]

    return decorator


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    state_snapshot: dict[str, object],
    context: dict[str, object],
    identifiers: dict[str, str],
    causal_fragment: list[str],
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=artifact_id(),
        timestamp=datetime.now(UTC),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot,
        context=context,
        identifiers=identifiers,
        causal_fragment=causal_fragment,
    )


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"forensic_{artifact.artifact_id}.json"
    path.write_text(json.dumps(asdict(artifact), default=str, indent=2), encoding="utf-8")
    return path
