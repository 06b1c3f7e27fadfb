"""Shared SQLite helpers: connection defaults and raw image (de)serialization."""

import sqlite3
from pathlib import Path

MEMORY = ":memory:"


def connect(db_path: str | Path, wal: bool = False, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection.

    Args:
        db_path: Path to database file, or ":memory:".
        wal: Use WAL journal mode. Leave off for databases that get
            exported as raw images, which must stay in rollback mode.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    if wal and str(db_path) != MEMORY:
        conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


def dump_image(conn: sqlite3.Connection) -> bytes:
    """Serialize the main database of ``conn`` to raw SQLite file bytes."""
    return conn.serialize()


def load_image(data: bytes) -> sqlite3.Connection:
    """Open an in-memory connection over a raw SQLite image.

    Raises sqlite3.DatabaseError if the bytes are not a database.
    """
    conn = sqlite3.connect(MEMORY)
    conn.deserialize(data)
    # Pages are read lazily; force one read so garbage fails here
    conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
    return conn
