"""Tunable constants for the scoring engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ScoringRules:
    truth_bonus: float = 0.06
    fiction_penalty: float = 0.12
    fatigue_step: float = 0.15  # per prior use of the same category
    interest_rate: float = 0.05  # per unit of honesty debt
    overuse_window: int = 20
    overuse_threshold: int = 3  # overused when count exceeds this
    overuse_risk_weight: float = 0.15
    rejection_penalty: float = 0.25
    rejection_debt: int = 3
    bankruptcy_threshold: float = 0.25  # below this, generation is forced to low risk


DEFAULT_RULES = ScoringRules()
