"""Shared enums and types for the credibility ledger."""

from enum import StrEnum


class Category(StrEnum):
    HEALTH = "health"
    FAMILY = "family"
    WORK = "work"
    TECH = "tech"
    PERSONAL = "personal"
    HONESTY = "honesty"  # truth-labelled entries only


# Categories a generated fiction may be filed under
FICTIONAL_CATEGORIES = (
    Category.HEALTH,
    Category.FAMILY,
    Category.WORK,
    Category.TECH,
    Category.PERSONAL,
)

CATEGORY_LABELS = {
    Category.HEALTH: "Health",
    Category.FAMILY: "Family",
    Category.WORK: "Professional",
    Category.TECH: "Technical",
    Category.PERSONAL: "Personal",
    Category.HONESTY: "Honesty (Truth)",
}


class Outcome(StrEnum):
    ACCEPTED = "accepted"
    QUESTIONED = "questioned"
    REJECTED = "rejected"


class Tone(StrEnum):
    FORMAL = "formal"
    CASUAL = "casual"


class RiskTolerance(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CredibilityStatus(StrEnum):
    PRISTINE = "pristine"
    QUESTIONABLE = "questionable"
    BANKRUPT = "bankrupt"
