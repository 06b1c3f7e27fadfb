"""Read-only aggregates over a profile and its history, for dashboards."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from shared_types import CATEGORY_LABELS, Category, CredibilityStatus, Outcome

from .engine import tally_categories
from .models import Profile, UsageRecord
from .rules import DEFAULT_RULES, ScoringRules

TREND_LENGTH = 15


@dataclass
class LedgerSummary:
    credibility: float
    status: CredibilityStatus
    honesty_debt: int
    interest_rate_pct: float
    risk_score: float
    overused_categories: list[Category]
    total_events: int = 0
    truthful: int = 0
    fictional: int = 0
    by_category: dict[Category, int] = field(default_factory=dict)
    impact_trend: list[float] = field(default_factory=list)
    pending_reflections: int = 0
    by_outcome: dict[Outcome, int] = field(default_factory=dict)
    rejection_rate: Optional[float] = None

    def labelled_categories(self) -> dict[str, int]:
        """Category counts keyed by display label."""
        return {CATEGORY_LABELS[c]: n for c, n in self.by_category.items()}


def summarize(
    profile: Profile, history: Sequence[UsageRecord], rules: ScoringRules = DEFAULT_RULES
) -> LedgerSummary:
    """Build dashboard stats: counts, category mix, recent impact trend, outcome rates."""
    by_outcome = dict.fromkeys(Outcome, 0)
    pending = 0
    for record in history:
        if record.outcome is None:
            pending += 1
        else:
            by_outcome[record.outcome] += 1

    resolved = sum(by_outcome.values())
    rejection_rate = by_outcome[Outcome.REJECTED] / resolved if resolved else None
    truthful = sum(1 for r in history if r.was_true)

    return LedgerSummary(
        credibility=profile.overall_credibility,
        status=profile.status,
        honesty_debt=profile.honesty_debt,
        interest_rate_pct=round(profile.interest_rate(rules) * 100, 2),
        risk_score=profile.risk_score,
        overused_categories=sorted(profile.overused_categories),
        total_events=len(history),
        truthful=truthful,
        fictional=len(history) - truthful,
        by_category=tally_categories(history),
        # Impact in percentage points
        impact_trend=[r.credibility_impact * 100 for r in history[-TREND_LENGTH:]],
        pending_reflections=pending,
        by_outcome=by_outcome,
        rejection_rate=rejection_rate,
    )
