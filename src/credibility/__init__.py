"""Credibility scoring engine and data model."""

from .engine import (
    apply_reflection,
    apply_usage,
    overused_categories,
    risk_score,
    tally_categories,
    usage_impact,
)
from .errors import CredibilityError, InvariantViolation, RecordAlreadyResolved, RecordNotFound
from .models import CustomTemplate, GeneratedExcuse, Profile, UsageRecord, new_id
from .rules import DEFAULT_RULES, ScoringRules
from .summary import LedgerSummary, summarize

__all__ = [
    "Profile",
    "UsageRecord",
    "CustomTemplate",
    "GeneratedExcuse",
    "new_id",
    "ScoringRules",
    "DEFAULT_RULES",
    "apply_usage",
    "apply_reflection",
    "usage_impact",
    "overused_categories",
    "risk_score",
    "tally_categories",
    "LedgerSummary",
    "summarize",
    "CredibilityError",
    "RecordNotFound",
    "RecordAlreadyResolved",
    "InvariantViolation",
]
