from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Iterable

from qins.contracts import LogEntry
from qins.core.ids import export_stamp
from qins.core.timefmt import time_ago

try:
    import duckdb
except ModuleNotFoundError:  # pragma: no cover - exercised via runtime environments without duckdb
    duckdb = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Ticks",
    "TimeAgo",
    "Actor",
    "Skill",
    "Level",
    "Quality",
    "Item",
    "Stuff",
    "Inspired",
    "ProductionSpecialist",
    "Materials",
]
EXPORT_PREFIX = "quality_log_"


def entry_to_row(entry: LogEntry, now_ticks: int) -> list[str]:
    return [
        str(entry.game_ticks),
        time_ago(now_ticks, entry.game_ticks),
        entry.actor_name,
        entry.skill.value,
        str(entry.skill_level),
        entry.quality.value,
        entry.item_type,
        entry.stuff or "",
        str(entry.inspired_creativity).lower(),
        str(entry.production_specialist).lower(),
        ";".join(entry.materials),
    ]


class ExportService:
    def __init__(self, analytics_db: Path | None = None) -> None:
        self.analytics_db = analytics_db

    def export_log(
        self,
        entries: Iterable[LogEntry],
        now_ticks: int,
        output_dir: Path,
        max_files: int = 20,
    ) -> Path:
        """Write the log as CSV and rotate older exports out of ``output_dir``."""
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = f"{EXPORT_PREFIX}{export_stamp()}"
        path = output_dir / f"{stamp}.csv"
        suffix = 0
        while path.exists():
            suffix += 1
            path = output_dir / f"{stamp}_{suffix}.csv"
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(CSV_HEADER)
            for entry in entries:
                writer.writerow(entry_to_row(entry, now_ticks))
        self.rotate(output_dir, max_files)
        logger.info("exported quality log to %s", path)
        return path

    def export_parquet(self, csv_path: Path) -> Path:
        if duckdb is None:
            raise RuntimeError("duckdb is required for exports")
        parquet_path = csv_path.with_suffix(".parquet")
        with duckdb.connect() as conn:
            conn.execute(
                f"COPY (SELECT * FROM read_csv('{csv_path.as_posix()}', header=true, all_varchar=true)) "
                f"TO '{parquet_path.as_posix()}' (FORMAT PARQUET)"
            )
        return parquet_path

    def export_marts(self, output_dir: Path) -> list[Path]:
        if duckdb is None:
            raise RuntimeError("duckdb is required for exports")
        if self.analytics_db is None:
            raise RuntimeError("an analytics database is required for mart exports")
        output_dir.mkdir(parents=True, exist_ok=True)
        outputs: list[Path] = []
        with duckdb.connect(str(self.analytics_db)) as conn:
            outputs.extend(self._export_table(conn, "mart_quality_log", output_dir / "quality_log"))
            outputs.extend(self._export_table(conn, "mart_quality_rates", output_dir / "quality_rates"))
        return outputs

    def rotate(self, output_dir: Path, max_files: int) -> list[Path]:
        exports = sorted(output_dir.glob(f"{EXPORT_PREFIX}*.csv"))
        removed: list[Path] = []
        for stale in exports[: max(0, len(exports) - max(1, max_files))]:
            for path in (stale, stale.with_suffix(".parquet")):
                if path.exists():
                    path.unlink()
                    removed.append(path)
        return removed

    def _export_table(self, conn: Any, table: str, stem: Path) -> list[Path]:
        csv_path = stem.with_suffix(".csv")
        parquet_path = stem.with_suffix(".parquet")
        conn.execute(f"COPY (SELECT * FROM {table}) TO '{csv_path.as_posix()}' (HEADER, DELIMITER ',')")
        conn.execute(f"COPY (SELECT * FROM {table}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
        return [csv_path, parquet_path]
