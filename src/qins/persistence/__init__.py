from .duckdb_store import AnalyticsStore
from .migrations import MIGRATIONS, MigrationRunner
from .sqlite_store import LogStore

__all__ = ["AnalyticsStore", "LogStore", "MIGRATIONS", "MigrationRunner"]
