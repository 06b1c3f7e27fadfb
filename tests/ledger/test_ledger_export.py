"""Tests for JSON audit export/import."""

import json
from datetime import datetime

import pytest

from credibility.models import CustomTemplate, Profile
from ledger.export import default_export_name, export_json, import_json
from ledger.store import LedgerStore, StorageError
from shared_types import Category, Outcome


@pytest.fixture
def populated_store(tmp_path, make_record):
    store = LedgerStore(tmp_path / "ledger.db")
    store.save_event(
        make_record(Category.WORK, outcome=Outcome.REJECTED, self_rating_after=0.2),
        Profile(
            overall_credibility=0.63,
            honesty_debt=4,
            risk_score=0.52,
            overused_categories=frozenset({Category.WORK}),
        ),
    )
    store.save_record(make_record(Category.HONESTY, was_true=True))
    store.save_template(CustomTemplate(category=Category.FAMILY, text="Cousin's wedding"))
    return store


def test_export_document(populated_store, tmp_path):
    out = tmp_path / "exports" / "audit.json"
    count = export_json(populated_store, out)
    assert count == 2

    data = json.loads(out.read_text())
    assert set(data) == {"exported_at", "profile", "history", "templates"}
    assert data["profile"]["honesty_debt"] == 4
    assert data["profile"]["overused_categories"] == ["work"]
    assert data["history"][0]["outcome"] == "rejected"
    assert data["templates"][0]["category"] == "family"


def test_import_replaces_content(populated_store, tmp_path):
    out = tmp_path / "audit.json"
    export_json(populated_store, out)
    original = populated_store.load()

    target = LedgerStore(tmp_path / "other.db")
    target.save_template(CustomTemplate(category=Category.TECH, text="stale"))
    imported = import_json(target, out)

    assert imported.profile == original.profile
    assert target.load().history == original.history
    assert [t.text for t in target.get_templates()] == ["Cousin's wedding"]


def test_import_malformed(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"history": [{"category": "aliens"}]}))
    with pytest.raises(StorageError):
        import_json(LedgerStore(tmp_path / "ledger.db"), bad)


def test_import_not_json(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{nope")
    with pytest.raises(StorageError):
        import_json(LedgerStore(tmp_path / "ledger.db"), bad)


def test_default_export_name():
    assert default_export_name(datetime(2024, 5, 1)) == "social-capital-audit-2024-05-01.json"


def test_import_rejects_out_of_range_profile(populated_store, tmp_path):
    bad = tmp_path / "tampered.json"
    bad.write_text(
        json.dumps({"profile": {"overall_credibility": 1.4, "honesty_debt": -2}, "history": []})
    )
    before = populated_store.load()

    with pytest.raises(StorageError, match="out of range"):
        import_json(populated_store, bad)
    assert populated_store.load() == before
