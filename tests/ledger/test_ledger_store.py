"""Tests for LedgerStore."""

import sqlite3

import pytest

from credibility.models import CustomTemplate, Profile
from ledger.store import LedgerStore, StorageError
from shared_types import Category, Outcome


def test_fresh_store_bootstraps_profile(ledger_db):
    store = LedgerStore(ledger_db)
    snapshot = store.load()
    assert snapshot.profile == Profile.initial()
    assert snapshot.history == []
    assert snapshot.templates == []


def test_profile_roundtrip(ledger_db):
    store = LedgerStore(ledger_db)
    profile = Profile(
        overall_credibility=0.42,
        honesty_debt=7,
        risk_score=0.88,
        overused_categories=frozenset({Category.WORK, Category.TECH}),
    )
    store.save_profile(profile)

    reopened = LedgerStore(ledger_db)
    assert reopened.get_profile() == profile


def test_overused_categories_replaced_wholesale(ledger_db):
    store = LedgerStore(ledger_db)
    store.save_profile(Profile(overused_categories=frozenset({Category.WORK})))
    store.save_profile(Profile(overused_categories=frozenset({Category.HEALTH})))
    assert store.get_profile().overused_categories == frozenset({Category.HEALTH})


def test_history_keeps_insertion_order(ledger_db, make_record):
    store = LedgerStore(ledger_db)
    # Timestamps deliberately out of order
    records = [
        make_record(Category.WORK, timestamp="2024-05-03T10:00:00"),
        make_record(Category.HEALTH, timestamp="2024-05-01T10:00:00"),
        make_record(Category.TECH, timestamp="2024-05-02T10:00:00"),
    ]
    for r in records:
        store.save_record(r)
    assert [r.id for r in store.get_history()] == [r.id for r in records]


def test_replacing_record_keeps_position(ledger_db, make_record):
    store = LedgerStore(ledger_db)
    first, second = make_record(), make_record(Category.FAMILY)
    store.save_record(first)
    store.save_record(second)

    store.save_record(first.resolve(Outcome.QUESTIONED, 0, "hm"))

    history = store.get_history()
    assert [r.id for r in history] == [first.id, second.id]
    assert history[0].outcome == Outcome.QUESTIONED
    # Zero rating survives the roundtrip
    assert history[0].self_rating_after == 0.0
    assert history[0].reflection_notes == "hm"
    assert store.get_record(second.id) == second


def test_save_event_writes_both(ledger_db, make_record):
    store = LedgerStore(ledger_db)
    record = make_record()
    profile = Profile(overall_credibility=0.88, honesty_debt=1, risk_score=0.12)
    store.save_event(record, profile)
    snapshot = store.load()
    assert snapshot.history == [record]
    assert snapshot.profile == profile


def test_templates(ledger_db):
    store = LedgerStore(ledger_db)
    t1 = CustomTemplate(category=Category.HEALTH, text="Mention the dentist")
    t2 = CustomTemplate(category=Category.TECH, text="Blame the VPN")
    store.save_template(t1)
    store.save_template(t2)
    assert store.get_templates() == [t1, t2]

    assert store.delete_template(t1.id) is True
    assert store.delete_template(t1.id) is False
    assert store.get_templates() == [t2]


def test_clear_all(ledger_db, make_record):
    store = LedgerStore(ledger_db)
    store.save_event(make_record(), Profile(overall_credibility=0.3, honesty_debt=9))
    store.save_template(CustomTemplate(category=Category.WORK, text="x"))

    store.clear_all()

    snapshot = store.load()
    assert snapshot.profile == Profile.initial()
    assert snapshot.history == []
    assert snapshot.templates == []


def test_binary_export_import(tmp_path, make_record):
    source = LedgerStore(tmp_path / "a.db")
    record = make_record()
    profile = Profile(overall_credibility=0.7, honesty_debt=2, risk_score=0.3)
    source.save_event(record, profile)
    source.save_template(CustomTemplate(category=Category.WORK, text="traffic"))

    data = source.export_binary()
    assert data[:16] == b"SQLite format 3\x00"

    target = LedgerStore(tmp_path / "b.db")
    target.import_binary(data)
    snapshot = target.load()
    assert snapshot.profile == profile
    assert snapshot.history == [record]
    assert snapshot.templates[0].text == "traffic"


def test_import_rejects_garbage(ledger_db, make_record):
    store = LedgerStore(ledger_db)
    store.save_record(make_record())
    with pytest.raises(StorageError):
        store.import_binary(b"definitely not a database" * 50)
    assert len(store.get_history()) == 1


def test_import_rejects_foreign_database(ledger_db):
    other = sqlite3.connect(":memory:")
    other.execute("CREATE TABLE notes (id INTEGER)")
    data = other.serialize()
    other.close()

    store = LedgerStore(ledger_db)
    with pytest.raises(StorageError, match="missing tables"):
        store.import_binary(data)


def test_sqlite_errors_surface_as_storage_error(ledger_db):
    store = LedgerStore(ledger_db)
    with sqlite3.connect(ledger_db) as conn:
        conn.execute("DROP TABLE history")
    with pytest.raises(StorageError):
        store.get_history()


def _foreign_ledger_image(history_ddl, history_row, profile=(1.0, 0.0, 0)):
    other = sqlite3.connect(":memory:")
    other.executescript(
        f"""
        CREATE TABLE profile (id INTEGER PRIMARY KEY, overall_credibility REAL,
                              risk_score REAL, honesty_debt INTEGER);
        CREATE TABLE overused_categories (category TEXT);
        CREATE TABLE history ({history_ddl});
        CREATE TABLE templates (id TEXT, category TEXT, text TEXT);
        """
    )
    other.execute("INSERT INTO profile VALUES (0, ?, ?, ?)", profile)
    placeholders = ", ".join("?" for _ in history_row)
    other.execute(f"INSERT INTO history VALUES ({placeholders})", history_row)
    other.commit()
    data = other.serialize()
    other.close()
    return data


class TestImportValidation:
    def test_wrong_schema_leaves_store_untouched(self, ledger_db, make_record):
        store = LedgerStore(ledger_db)
        record = make_record()
        store.save_record(record)
        data = _foreign_ledger_image("id TEXT, category TEXT", ("x", "gossip"))

        with pytest.raises(StorageError, match="invalid ledger data"):
            store.import_binary(data)

        assert LedgerStore(ledger_db).load().history == [record]

    def test_missing_column_rejected(self, ledger_db):
        store = LedgerStore(ledger_db)
        data = _foreign_ledger_image("id TEXT, category TEXT", ("x", "work"))
        with pytest.raises(StorageError):
            store.import_binary(data)
        assert store.get_history() == []

    def test_out_of_range_profile_rejected(self, ledger_db):
        store = LedgerStore(ledger_db)
        data = _foreign_ledger_image(
            "id TEXT, category TEXT", ("x", "work"), profile=(1.4, 0.0, -2)
        )
        with pytest.raises(StorageError, match="out of range"):
            store.import_binary(data)
        assert store.get_profile() == Profile.initial()


def test_corrupt_row_surfaces_as_storage_error(ledger_db):
    store = LedgerStore(ledger_db)
    with sqlite3.connect(ledger_db) as conn:
        conn.execute(
            "INSERT INTO templates (id, category, text) VALUES ('t1', 'gossip', 'hi')"
        )
    with pytest.raises(StorageError, match="invalid data"):
        store.get_templates()
