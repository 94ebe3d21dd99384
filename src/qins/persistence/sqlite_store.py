from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable

from qins.contracts import LogEntry, QualityCategory, SkillDomain
from qins.persistence.migrations import MigrationRunner

logger = logging.getLogger(__name__)

_PLAY_SECONDS_KEY = "play_seconds"


class LogStore:
    """Authoritative on-disk copy of the quality log."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            MigrationRunner(conn).apply()

    def replace_entries(self, entries: Iterable[LogEntry], play_seconds: float | None = None) -> int:
        rows = [_to_row(seq, entry) for seq, entry in enumerate(entries)]
        with self.connect() as conn:
            conn.execute("DELETE FROM quality_log")
            conn.executemany(
                """
                INSERT INTO quality_log(
                    seq, item_type, quality, actor_name, skill, skill_level, inspired_creativity,
                    production_specialist, game_ticks, stuff, materials_json, play_seconds, overridden
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            if play_seconds is not None:
                self._put_meta(conn, _PLAY_SECONDS_KEY, repr(float(play_seconds)))
        return len(rows)

    def load_entries(self) -> list[LogEntry]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT item_type, quality, actor_name, skill, skill_level, inspired_creativity,
                       production_specialist, game_ticks, stuff, materials_json, play_seconds, overridden
                FROM quality_log ORDER BY seq
                """
            ).fetchall()
        entries: list[LogEntry] = []
        for row in rows:
            try:
                entries.append(_from_row(row))
            except ValueError:
                logger.warning("skipping unreadable log row %r", row[:3])
        return entries

    def load_play_seconds(self) -> float:
        with self.connect() as conn:
            row = conn.execute("SELECT value FROM log_meta WHERE key = ?", (_PLAY_SECONDS_KEY,)).fetchone()
        return float(row[0]) if row else 0.0

    def count(self) -> int:
        with self.connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM quality_log").fetchone()[0])

    def _put_meta(self, conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute("INSERT OR REPLACE INTO log_meta(key, value) VALUES (?, ?)", (key, value))


def _to_row(seq: int, entry: LogEntry) -> tuple:
    return (
        seq,
        entry.item_type,
        entry.quality.value,
        entry.actor_name,
        entry.skill.value,
        entry.skill_level,
        int(entry.inspired_creativity),
        int(entry.production_specialist),
        entry.game_ticks,
        entry.stuff,
        json.dumps(list(entry.materials)),
        entry.play_seconds,
        int(entry.overridden),
    )


def _from_row(row: tuple) -> LogEntry:
    return LogEntry(
        item_type=row[0],
        quality=QualityCategory(row[1]),
        actor_name=row[2],
        skill=SkillDomain(row[3]),
        skill_level=int(row[4]),
        inspired_creativity=bool(row[5]),
        production_specialist=bool(row[6]),
        game_ticks=int(row[7]),
        stuff=row[8],
        materials=tuple(json.loads(row[9])),
        play_seconds=float(row[10]),
        overridden=bool(row[11]),
    )
