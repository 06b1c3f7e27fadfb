"""Scoring engine: pure transitions from (profile, history, event) to the next state.

Nothing here touches storage. Callers persist the returned record and profile,
and must serialize calls against the same snapshot themselves.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

import structlog

from shared_types import Category, Outcome

from .errors import RecordAlreadyResolved, RecordNotFound
from .models import GeneratedExcuse, Profile, UsageRecord
from .rules import DEFAULT_RULES, ScoringRules

logger = structlog.get_logger()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def tally_categories(records: Sequence[UsageRecord]) -> dict[Category, int]:
    """Count records per category. Every category is present, defaulting to 0."""
    counts = dict.fromkeys(Category, 0)
    for record in records:
        counts[record.category] += 1
    return counts


def overused_categories(
    history: Sequence[UsageRecord], rules: ScoringRules = DEFAULT_RULES
) -> frozenset[Category]:
    """Categories used more than the threshold within the most recent window."""
    window = history[-rules.overuse_window :]
    counts = tally_categories(window)
    return frozenset(c for c, n in counts.items() if n > rules.overuse_threshold)


def risk_score(
    credibility: float, overused: frozenset[Category], rules: ScoringRules = DEFAULT_RULES
) -> float:
    return min(1.0, (1 - credibility) + len(overused) * rules.overuse_risk_weight)


def usage_impact(
    profile: Profile,
    history: Sequence[UsageRecord],
    category: Category,
    was_true: bool,
    rules: ScoringRules = DEFAULT_RULES,
) -> float:
    """Credibility delta for logging one excuse against the current state.

    Truth earns a flat bonus. Fiction costs the base penalty, inflated by
    category fatigue (prior uses of the same category anywhere in history)
    and by interest on the outstanding honesty debt.
    """
    if was_true:
        return rules.truth_bonus
    interest_multiplier = 1 + profile.interest_rate(rules)
    category_fatigue = sum(1 for r in history if r.category == category) * rules.fatigue_step
    return -rules.fiction_penalty * (1 + category_fatigue) * interest_multiplier


def apply_usage(
    profile: Profile,
    history: Sequence[UsageRecord],
    excuse: GeneratedExcuse,
    was_true: bool,
    rules: ScoringRules = DEFAULT_RULES,
    now: Optional[datetime] = None,
) -> tuple[Profile, UsageRecord]:
    """Log one used excuse.

    Args:
        profile: Current profile snapshot
        history: Current history, oldest first. Not modified.
        excuse: The generated excuse that was actually used
        was_true: User's declaration that the excuse was factual
        rules: Scoring constants
        now: Timestamp override for the new record

    Returns:
        (new profile, new record). The caller appends the record to its history.
    """
    assert profile.check_invariants()

    delta = usage_impact(profile, history, excuse.category, was_true, rules)
    record = UsageRecord(
        category=excuse.category,
        context=excuse.excuse,
        timestamp=(now or datetime.now()).isoformat(),
        confidence_when_used=excuse.base_plausibility,
        was_true=was_true,
        credibility_impact=delta,
    )

    credibility = clamp(profile.overall_credibility + delta)
    if was_true:
        debt = max(0, profile.honesty_debt - 1)
    else:
        debt = profile.honesty_debt + 1
    overused = overused_categories([*history, record], rules)

    updated = Profile(
        overall_credibility=credibility,
        honesty_debt=debt,
        risk_score=risk_score(credibility, overused, rules),
        overused_categories=overused,
    )
    logger.debug(
        "usage_applied",
        record_id=record.id,
        category=str(record.category),
        was_true=was_true,
        impact=round(delta, 4),
        credibility=round(credibility, 4),
        debt=debt,
    )
    return updated, record


def apply_reflection(
    profile: Profile,
    history: Sequence[UsageRecord],
    record_id: str,
    outcome: Outcome,
    rating: float,
    notes: str,
    rules: ScoringRules = DEFAULT_RULES,
) -> tuple[Profile, list[UsageRecord]]:
    """Attach an outcome to a logged record.

    Only a rejection touches the profile: a hard credibility penalty plus
    extra honesty debt. Accepted and questioned outcomes return the profile
    object unchanged.

    Args:
        rating: Self-rating on a 0-10 scale; stored as rating / 10

    Raises:
        RecordNotFound: no record with ``record_id``
        RecordAlreadyResolved: the record already has an outcome
    """
    assert profile.check_invariants()

    outcome = Outcome(outcome)
    index = next((i for i, r in enumerate(history) if r.id == record_id), None)
    if index is None:
        raise RecordNotFound(record_id)
    existing = history[index]
    if existing.is_resolved:
        raise RecordAlreadyResolved(record_id, str(existing.outcome))

    updated_history = list(history)
    updated_history[index] = existing.resolve(outcome, rating, notes)

    if outcome != Outcome.REJECTED:
        logger.debug("reflection_recorded", record_id=record_id, outcome=str(outcome))
        return profile, updated_history

    updated = profile.model_copy(
        update={
            "overall_credibility": max(0.0, profile.overall_credibility - rules.rejection_penalty),
            "honesty_debt": profile.honesty_debt + rules.rejection_debt,
        }
    )
    logger.debug(
        "rejection_penalized",
        record_id=record_id,
        credibility=round(updated.overall_credibility, 4),
        debt=updated.honesty_debt,
    )
    return updated, updated_history
