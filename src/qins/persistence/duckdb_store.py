from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

try:
    import duckdb
except ModuleNotFoundError:  # pragma: no cover
    duckdb = None  # type: ignore[assignment]


class AnalyticsStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        if duckdb is None:
            raise RuntimeError("duckdb is required for analytics store operations")
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mart_quality_log (
                    seq INTEGER PRIMARY KEY,
                    game_ticks BIGINT,
                    actor_name VARCHAR,
                    skill VARCHAR,
                    skill_level INTEGER,
                    quality VARCHAR,
                    item_type VARCHAR,
                    stuff VARCHAR,
                    inspired_creativity BOOLEAN,
                    production_specialist BOOLEAN,
                    materials_json VARCHAR,
                    play_seconds DOUBLE,
                    overridden BOOLEAN
                );

                CREATE TABLE IF NOT EXISTS mart_quality_rates (
                    actor_name VARCHAR,
                    skill VARCHAR,
                    quality VARCHAR,
                    items INTEGER,
                    rate DOUBLE,
                    PRIMARY KEY(actor_name, skill, quality)
                );
                """
            )

    def refresh_from_sqlite(self, sqlite_path: Path) -> int:
        """Rebuild both marts from the authoritative log. Returns rows loaded."""
        self.initialize_schema()
        with sqlite3.connect(sqlite_path) as sconn, self.connect() as dconn:
            rows = sconn.execute(
                """
                SELECT seq, game_ticks, actor_name, skill, skill_level, quality, item_type, stuff,
                       inspired_creativity, production_specialist, materials_json, play_seconds, overridden
                FROM quality_log ORDER BY seq
                """
            ).fetchall()
            rows = [
                (*r[:8], bool(r[8]), bool(r[9]), r[10], r[11], bool(r[12]))
                for r in rows
            ]
            dconn.execute("DELETE FROM mart_quality_log")
            if rows:
                values_placeholder = ",".join(["?"] * len(rows[0]))
                dconn.executemany(f"INSERT INTO mart_quality_log VALUES ({values_placeholder})", rows)
            self._refresh_rates(dconn)
        return len(rows)

    def _refresh_rates(self, conn: Any) -> None:
        conn.execute("DELETE FROM mart_quality_rates")
        conn.execute(
            """
            INSERT INTO mart_quality_rates
            SELECT actor_name, skill, quality, COUNT(*) AS items,
                   COUNT(*) * 1.0 / SUM(COUNT(*)) OVER (PARTITION BY actor_name, skill) AS rate
            FROM mart_quality_log
            GROUP BY actor_name, skill, quality
            """
        )

    def quality_rates(self, actor_name: str | None = None) -> list[tuple]:
        with self.connect() as conn:
            if actor_name is None:
                return conn.execute(
                    "SELECT actor_name, skill, quality, items, rate FROM mart_quality_rates ORDER BY actor_name, skill, quality"
                ).fetchall()
            return conn.execute(
                "SELECT actor_name, skill, quality, items, rate FROM mart_quality_rates WHERE actor_name = ? ORDER BY skill, quality",
                [actor_name],
            ).fetchall()
