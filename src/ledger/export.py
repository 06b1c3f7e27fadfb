"""JSON audit export/import of the whole ledger."""

import json
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import ValidationError

from credibility.errors import InvariantViolation
from credibility.models import CustomTemplate, Profile, UsageRecord

from .store import LedgerSnapshot, LedgerStore, StorageError

logger = structlog.get_logger()


def default_export_name(now: datetime | None = None) -> str:
    """File name for an audit export, e.g. social-capital-audit-2024-05-01.json."""
    return f"social-capital-audit-{(now or datetime.now()).date().isoformat()}.json"


def snapshot_to_dict(snapshot: LedgerSnapshot) -> dict:
    return {
        "exported_at": datetime.now().isoformat(),
        "profile": snapshot.profile.model_dump(mode="json"),
        "history": [r.model_dump(mode="json") for r in snapshot.history],
        "templates": [t.model_dump(mode="json") for t in snapshot.templates],
    }


def snapshot_from_dict(data: dict) -> LedgerSnapshot:
    """Parse an exported document. Raises StorageError on malformed content."""
    if not isinstance(data, dict):
        raise StorageError("Export document must be a JSON object")
    try:
        profile_data = data.get("profile")
        profile = Profile.model_validate(profile_data) if profile_data else Profile.initial()
        history = [UsageRecord.model_validate(r) for r in data.get("history", [])]
        templates = [CustomTemplate.model_validate(t) for t in data.get("templates", [])]
        profile.check_invariants()
    except (ValidationError, InvariantViolation) as e:
        raise StorageError(f"Invalid export document: {e}") from e
    return LedgerSnapshot(profile=profile, history=history, templates=templates)


def export_json(store: LedgerStore, output_path: Path) -> int:
    """Write the full ledger to a JSON file.

    Returns:
        Number of usage records exported
    """
    snapshot = store.load()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(snapshot_to_dict(snapshot), f, indent=2)

    logger.info("ledger_exported_json", path=str(output_path), records=len(snapshot.history))
    return len(snapshot.history)


def import_json(store: LedgerStore, input_path: Path) -> LedgerSnapshot:
    """Replace the store content with a JSON export. Returns the imported snapshot."""
    try:
        with open(input_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Cannot read export {input_path}: {e}") from e

    snapshot = snapshot_from_dict(data)
    store.replace_all(snapshot)
    return snapshot
