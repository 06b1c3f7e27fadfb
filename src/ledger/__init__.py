"""Ledger persistence: SQLite store plus JSON audit export."""

from .export import default_export_name, export_json, import_json
from .store import LedgerSnapshot, LedgerStore, StorageError

__all__ = [
    "LedgerStore",
    "LedgerSnapshot",
    "StorageError",
    "export_json",
    "import_json",
    "default_export_name",
]
