from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

EXPORT_STAMP_FORMAT = "%Y%m%d_%H%M%S_%f"


def request_id(prefix: str = "req") -> str:
    """Short id tying an ActionResult back to the ActionRequest it answers."""
    return f"{prefix}_{uuid4().hex[:12]}"


def artifact_id() -> str:
    return uuid4().hex


def export_stamp(moment: datetime | None = None) -> str:
    """UTC stamp for export file names; lexical order is chronological."""
    return (moment or datetime.now(UTC)).strftime(EXPORT_STAMP_FORMAT)
