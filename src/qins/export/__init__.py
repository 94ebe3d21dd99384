from .service import CSV_HEADER, ExportService, entry_to_row

__all__ = ["CSV_HEADER", "ExportService", "entry_to_row"]
