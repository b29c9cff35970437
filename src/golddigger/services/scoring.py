"""Opportunity scoring: a pure, deterministic function with no model calls.

    score = clamp(50 + growth + competition + min(3 * pain_points, 15), 0, 100)

growth: growing +20, stable 0, declining -20.
competition: low +15, medium 0, high -10.
Tier: strong >= 70, moderate >= 40, otherwise weak.
"""

from __future__ import annotations

from collections.abc import Sequence

from golddigger.domain.enums import CompetitionLevel, GrowthRate, OpportunityTier
from golddigger.domain.values import OpportunityScore, ScoreBreakdown

BASE_SCORE = 50.0
PAIN_POINT_WEIGHT = 3.0
PAIN_POINT_CAP = 15.0
STRONG_THRESHOLD = 70.0
MODERATE_THRESHOLD = 40.0

GROWTH_ADJUSTMENTS: dict[GrowthRate, float] = {
    GrowthRate.GROWING: 20.0,
    GrowthRate.STABLE: 0.0,
    GrowthRate.DECLINING: -20.0,
}

COMPETITION_ADJUSTMENTS: dict[CompetitionLevel, float] = {
    CompetitionLevel.LOW: 15.0,
    CompetitionLevel.MEDIUM: 0.0,
    CompetitionLevel.HIGH: -10.0,
}


def _coerce_growth(value: GrowthRate | str | None) -> GrowthRate | None:
    if isinstance(value, GrowthRate):
        return value
    try:
        return GrowthRate(str(value).strip().lower())
    except ValueError:
        return None


def _coerce_competition(value: CompetitionLevel | str | None) -> CompetitionLevel | None:
    if isinstance(value, CompetitionLevel):
        return value
    try:
        return CompetitionLevel(str(value).strip().lower())
    except ValueError:
        return None


def tier_for_score(score: float) -> OpportunityTier:
    """Map a clamped score to its tier label."""
    if score >= STRONG_THRESHOLD:
        return OpportunityTier.STRONG
    if score >= MODERATE_THRESHOLD:
        return OpportunityTier.MODERATE
    return OpportunityTier.WEAK


def calculate_opportunity_score(
    growth_rate: GrowthRate | str | None,
    competition_level: CompetitionLevel | str | None,
    pain_points: Sequence[object] | int | None,
) -> OpportunityScore:
    """Compute the opportunity score from trend, competition and pain-point signals.

    Unknown signal values contribute no adjustment.

    Parameters
    ----------
    growth_rate:
        ``"growing"``, ``"stable"`` or ``"declining"`` (or the enum).
    competition_level:
        ``"low"``, ``"medium"`` or ``"high"`` (or the enum).
    pain_points:
        The identified pain points, or their count.

    Returns
    -------
    OpportunityScore
        Score clamped to ``[0, 100]`` with its breakdown and tier.
    """
    growth = _coerce_growth(growth_rate)
    competition = _coerce_competition(competition_level)

    if isinstance(pain_points, int):
        count = max(pain_points, 0)
    else:
        count = len(pain_points or ())

    breakdown = ScoreBreakdown(
        base=BASE_SCORE,
        growth_adjustment=GROWTH_ADJUSTMENTS.get(growth, 0.0) if growth else 0.0,
        competition_adjustment=(
            COMPETITION_ADJUSTMENTS.get(competition, 0.0) if competition else 0.0
        ),
        pain_points_adjustment=min(count * PAIN_POINT_WEIGHT, PAIN_POINT_CAP),
    )
    score = max(0.0, min(100.0, breakdown.raw_total))
    return OpportunityScore(score=score, tier=tier_for_score(score), breakdown=breakdown)
