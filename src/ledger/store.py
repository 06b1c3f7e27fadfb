"""SQLite persistence for the credibility ledger: profile, history, templates."""

import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

import structlog

from credibility.errors import InvariantViolation
from credibility.models import CustomTemplate, Profile, UsageRecord
from db import connect, dump_image, load_image
from shared_types import Category, Outcome

logger = structlog.get_logger()

REQUIRED_TABLES = {"profile", "overused_categories", "history", "templates"}


class StorageError(Exception):
    """Persistence failure."""


@dataclass
class LedgerSnapshot:
    profile: Profile
    history: list[UsageRecord] = field(default_factory=list)
    templates: list[CustomTemplate] = field(default_factory=list)


class LedgerStore:
    """Durable store for the single profile, its usage history and custom templates."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_tables()

    @contextmanager
    def _connect(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Connection scoped to one operation; commits on success, closes always."""
        try:
            with closing(connect(self.db_path, row_factory=True)) as conn:
                with conn:
                    yield conn
        except sqlite3.Error as e:
            logger.error("ledger_storage_error", operation=operation, error=str(e))
            raise StorageError(f"{operation} failed: {e}") from e
        except (ValueError, IndexError) as e:
            # Rows that no longer parse into models; IndexError is a missing column
            logger.error("ledger_corrupt_row", operation=operation, error=str(e))
            raise StorageError(f"{operation} read invalid data: {e}") from e

    def _init_tables(self):
        with self._connect("init") as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS profile (
                    id INTEGER PRIMARY KEY CHECK (id = 0),
                    overall_credibility REAL NOT NULL,
                    risk_score REAL NOT NULL,
                    honesty_debt INTEGER NOT NULL
                );

                CREATE TABLE IF NOT EXISTS overused_categories (
                    category TEXT PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS history (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    context TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    was_true INTEGER NOT NULL,
                    credibility_impact REAL NOT NULL,
                    outcome TEXT CHECK(outcome IN ('accepted','questioned','rejected')),
                    self_rating REAL,
                    reflection_notes TEXT
                );

                CREATE TABLE IF NOT EXISTS templates (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    text TEXT NOT NULL
                );
            """)
            self._bootstrap_profile(conn)

    @staticmethod
    def _bootstrap_profile(conn: sqlite3.Connection):
        initial = Profile.initial()
        conn.execute(
            """INSERT OR IGNORE INTO profile (id, overall_credibility, risk_score, honesty_debt)
            VALUES (0, ?, ?, ?)""",
            (initial.overall_credibility, initial.risk_score, initial.honesty_debt),
        )

    # --- Profile ---

    def get_profile(self) -> Profile:
        with self._connect("get_profile") as conn:
            return self._read_profile(conn)

    @staticmethod
    def _read_profile(conn: sqlite3.Connection) -> Profile:
        row = conn.execute(
            "SELECT overall_credibility, risk_score, honesty_debt FROM profile WHERE id = 0"
        ).fetchone()
        overused = conn.execute("SELECT category FROM overused_categories").fetchall()
        if row is None:
            return Profile.initial()
        return Profile(
            overall_credibility=row["overall_credibility"],
            risk_score=row["risk_score"],
            honesty_debt=row["honesty_debt"],
            overused_categories=frozenset(Category(r["category"]) for r in overused),
        )

    def save_profile(self, profile: Profile):
        with self._connect("save_profile") as conn:
            self._write_profile(conn, profile)
        logger.debug(
            "profile_saved",
            credibility=profile.overall_credibility,
            debt=profile.honesty_debt,
        )

    @staticmethod
    def _write_profile(conn: sqlite3.Connection, profile: Profile):
        conn.execute(
            """INSERT INTO profile (id, overall_credibility, risk_score, honesty_debt)
            VALUES (0, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                overall_credibility = excluded.overall_credibility,
                risk_score = excluded.risk_score,
                honesty_debt = excluded.honesty_debt""",
            (profile.overall_credibility, profile.risk_score, profile.honesty_debt),
        )
        conn.execute("DELETE FROM overused_categories")
        conn.executemany(
            "INSERT INTO overused_categories (category) VALUES (?)",
            [(str(c),) for c in sorted(profile.overused_categories)],
        )

    # --- History ---

    def get_history(self) -> list[UsageRecord]:
        """All usage records, oldest first."""
        with self._connect("get_history") as conn:
            return self._read_history(conn)

    @classmethod
    def _read_history(cls, conn: sqlite3.Connection) -> list[UsageRecord]:
        rows = conn.execute("SELECT * FROM history ORDER BY rowid ASC").fetchall()
        return [cls._row_to_record(r) for r in rows]

    def get_record(self, record_id: str) -> Optional[UsageRecord]:
        with self._connect("get_record") as conn:
            row = conn.execute("SELECT * FROM history WHERE id = ?", (record_id,)).fetchone()
            return self._row_to_record(row) if row else None

    def save_record(self, record: UsageRecord):
        """Append a new record, or replace an existing one in place."""
        with self._connect("save_record") as conn:
            self._write_record(conn, record)
        logger.debug("record_saved", record_id=record.id, outcome=record.outcome)

    @staticmethod
    def _write_record(conn: sqlite3.Connection, record: UsageRecord):
        # Upsert rather than REPLACE so the rowid, and with it history order, survives
        conn.execute(
            """INSERT INTO history
            (id, category, context, timestamp, confidence, was_true, credibility_impact,
             outcome, self_rating, reflection_notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                outcome = excluded.outcome,
                self_rating = excluded.self_rating,
                reflection_notes = excluded.reflection_notes""",
            (
                record.id,
                str(record.category),
                record.context,
                record.timestamp,
                record.confidence_when_used,
                int(record.was_true),
                record.credibility_impact,
                str(record.outcome) if record.outcome else None,
                record.self_rating_after,
                record.reflection_notes,
            ),
        )

    def save_event(self, record: UsageRecord, profile: Optional[Profile] = None):
        """Write a record and, when given, the profile it produced, atomically."""
        with self._connect("save_event") as conn:
            self._write_record(conn, record)
            if profile is not None:
                self._write_profile(conn, profile)
        logger.debug("event_saved", record_id=record.id, profile_changed=profile is not None)

    @staticmethod
    def _row_to_record(row) -> UsageRecord:
        return UsageRecord(
            id=row["id"],
            category=Category(row["category"]),
            context=row["context"],
            timestamp=row["timestamp"],
            confidence_when_used=row["confidence"],
            was_true=bool(row["was_true"]),
            credibility_impact=row["credibility_impact"],
            outcome=Outcome(row["outcome"]) if row["outcome"] else None,
            self_rating_after=row["self_rating"],
            reflection_notes=row["reflection_notes"],
        )

    # --- Templates ---

    def get_templates(self) -> list[CustomTemplate]:
        with self._connect("get_templates") as conn:
            return self._read_templates(conn)

    @staticmethod
    def _read_templates(conn: sqlite3.Connection) -> list[CustomTemplate]:
        rows = conn.execute("SELECT id, category, text FROM templates ORDER BY rowid").fetchall()
        return [
            CustomTemplate(id=r["id"], category=Category(r["category"]), text=r["text"])
            for r in rows
        ]

    def save_template(self, template: CustomTemplate):
        with self._connect("save_template") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO templates (id, category, text) VALUES (?, ?, ?)",
                (template.id, str(template.category), template.text),
            )

    def delete_template(self, template_id: str) -> bool:
        """Delete a template. Returns False if it did not exist."""
        with self._connect("delete_template") as conn:
            cur = conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
            return cur.rowcount > 0

    # --- Whole store ---

    def load(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            profile=self.get_profile(),
            history=self.get_history(),
            templates=self.get_templates(),
        )

    def replace_all(self, snapshot: LedgerSnapshot):
        """Overwrite every table with the snapshot, in one transaction."""
        with self._connect("replace_all") as conn:
            conn.execute("DELETE FROM history")
            conn.execute("DELETE FROM templates")
            self._write_profile(conn, snapshot.profile)
            for record in snapshot.history:
                self._write_record(conn, record)
            conn.executemany(
                "INSERT INTO templates (id, category, text) VALUES (?, ?, ?)",
                [(t.id, str(t.category), t.text) for t in snapshot.templates],
            )
        logger.info(
            "ledger_replaced",
            records=len(snapshot.history),
            templates=len(snapshot.templates),
        )

    def clear_all(self):
        """Erase history and templates; reset the profile to its defaults."""
        with self._connect("clear_all") as conn:
            conn.execute("DELETE FROM history")
            conn.execute("DELETE FROM templates")
            self._write_profile(conn, Profile.initial())
        logger.info("ledger_cleared", db_path=str(self.db_path))

    def export_binary(self) -> bytes:
        """Raw SQLite image of the whole store."""
        with self._connect("export_binary") as conn:
            return dump_image(conn)

    def import_binary(self, data: bytes):
        """Replace the store with a raw SQLite image produced by export_binary.

        Raises StorageError, leaving the current store untouched, if the bytes
        are not a ledger database or any row fails to load.
        """
        try:
            source = load_image(data)
        except sqlite3.Error as e:
            logger.error("ledger_import_rejected", error=str(e))
            raise StorageError(f"Not a SQLite database: {e}") from e

        with closing(source):
            try:
                tables = {
                    r[0]
                    for r in source.execute(
                        "SELECT name FROM sqlite_master WHERE type = 'table'"
                    ).fetchall()
                }
            except sqlite3.Error as e:
                raise StorageError(f"Unreadable database image: {e}") from e
            missing = REQUIRED_TABLES - tables
            if missing:
                logger.error("ledger_import_rejected", missing=sorted(missing))
                raise StorageError(f"Database image missing tables: {sorted(missing)}")

            # Every row must load before the live database is overwritten
            source.row_factory = sqlite3.Row
            try:
                profile = self._read_profile(source)
                profile.check_invariants()
                records = self._read_history(source)
                templates = self._read_templates(source)
            except (sqlite3.Error, ValueError, IndexError, InvariantViolation) as e:
                logger.error("ledger_import_rejected", error=str(e))
                raise StorageError(f"Database image holds invalid ledger data: {e}") from e
            logger.debug("ledger_image_validated", records=len(records), templates=len(templates))

            with self._connect("import_binary") as conn:
                source.backup(conn)

        self._init_tables()
        logger.info("ledger_imported", size=len(data))
