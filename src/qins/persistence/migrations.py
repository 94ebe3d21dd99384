from __future__ import annotations

import sqlite3

MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS quality_log (
            seq INTEGER PRIMARY KEY,
            item_type TEXT NOT NULL,
            quality TEXT NOT NULL,
            actor_name TEXT NOT NULL,
            skill TEXT NOT NULL,
            skill_level INTEGER NOT NULL,
            inspired_creativity INTEGER NOT NULL,
            production_specialist INTEGER NOT NULL,
            game_ticks INTEGER NOT NULL,
            stuff TEXT,
            materials_json TEXT NOT NULL,
            play_seconds REAL NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_quality_log_ticks ON quality_log(game_ticks);

        CREATE TABLE IF NOT EXISTS log_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """,
    ),
    (
        2,
        """
        ALTER TABLE quality_log ADD COLUMN overridden INTEGER NOT NULL DEFAULT 0;
        """,
    ),
]


class MigrationRunner:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def apply(self) -> None:
        self.conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT DEFAULT CURRENT_TIMESTAMP)")
        applied = {
            row[0]
            for row in self.conn.execute("SELECT version FROM schema_migrations").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version in applied:
                continue
            self.conn.executescript(sql)
            self.conn.execute("INSERT INTO schema_migrations(version) VALUES (?)", (version,))
        self.conn.commit()

    def current_version(self) -> int:
        row = self.conn.execute("SELECT MAX(version) FROM schema_migrations").fetchone()
        return int(row[0] or 0)
