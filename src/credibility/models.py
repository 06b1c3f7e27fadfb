"""Data model for the credibility ledger: profile, usage records, templates."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from shared_types import Category, CredibilityStatus, Outcome

from .errors import InvariantViolation
from .rules import DEFAULT_RULES, ScoringRules


def new_id() -> str:
    """128-bit random identifier."""
    return uuid.uuid4().hex


class Profile(BaseModel):
    """Singleton credibility profile. Snapshots are immutable."""

    model_config = ConfigDict(frozen=True)

    overall_credibility: float = 1.0
    honesty_debt: int = 0
    risk_score: float = 0.0
    overused_categories: frozenset[Category] = frozenset()

    @classmethod
    def initial(cls) -> "Profile":
        return cls()

    def interest_rate(self, rules: ScoringRules = DEFAULT_RULES) -> float:
        """Fiction surcharge implied by the current debt (0.05 per unit by default)."""
        return self.honesty_debt * rules.interest_rate

    @property
    def status(self) -> CredibilityStatus:
        if self.overall_credibility > 0.8:
            return CredibilityStatus.PRISTINE
        if self.overall_credibility > 0.5:
            return CredibilityStatus.QUESTIONABLE
        return CredibilityStatus.BANKRUPT

    def check_invariants(self) -> bool:
        """Raise InvariantViolation if any field is out of range; True otherwise."""
        if not 0.0 <= self.overall_credibility <= 1.0:
            raise InvariantViolation(
                f"overall_credibility out of range: {self.overall_credibility}"
            )
        if not 0.0 <= self.risk_score <= 1.0:
            raise InvariantViolation(f"risk_score out of range: {self.risk_score}")
        if self.honesty_debt < 0:
            raise InvariantViolation(f"honesty_debt negative: {self.honesty_debt}")
        return True


class UsageRecord(BaseModel):
    """One logged excuse. Only the reflection fields are ever filled in later."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    category: Category
    context: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    confidence_when_used: float
    was_true: bool
    credibility_impact: float
    outcome: Optional[Outcome] = None
    self_rating_after: Optional[float] = None
    reflection_notes: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome is not None

    def resolve(self, outcome: Outcome, rating: float, notes: str) -> "UsageRecord":
        """Return a resolved copy. ``rating`` is on the 0-10 scale."""
        return self.model_copy(
            update={
                "outcome": Outcome(outcome),
                "self_rating_after": rating / 10,
                "reflection_notes": notes,
            }
        )


class CustomTemplate(BaseModel):
    """User-authored phrasing hint for one category."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    category: Category
    text: str


class GeneratedExcuse(BaseModel):
    """Candidate excuse returned by the generation provider."""

    model_config = ConfigDict(frozen=True)

    excuse: str
    base_plausibility: float = Field(
        validation_alias=AliasChoices("base_plausibility", "basePlausibility")
    )
    category: Category
    reasoning: str = ""
