"""Tests for the opportunity scorer."""

from __future__ import annotations

import pytest

from golddigger.domain.enums import CompetitionLevel, GrowthRate, OpportunityTier
from golddigger.services.scoring import calculate_opportunity_score, tier_for_score


class TestOpportunityScore:

    def test_neutral_inputs(self) -> None:
        result = calculate_opportunity_score("stable", "medium", [])
        assert result.score == 50.0
        assert result.tier is OpportunityTier.MODERATE

    def test_best_case_is_clamped(self) -> None:
        result = calculate_opportunity_score("growing", "low", ["a"] * 10)
        # 50 + 20 + 15 + 15 = 100
        assert result.score == 100.0
        assert result.tier is OpportunityTier.STRONG

    def test_worst_case(self) -> None:
        result = calculate_opportunity_score(GrowthRate.DECLINING, CompetitionLevel.HIGH, 0)
        assert result.score == 20.0
        assert result.tier is OpportunityTier.WEAK

    def test_pain_points_are_capped(self) -> None:
        five = calculate_opportunity_score("stable", "medium", 5)
        fifty = calculate_opportunity_score("stable", "medium", 50)
        assert five.score == fifty.score == 65.0
        assert fifty.breakdown.pain_points_adjustment == 15.0

    def test_unknown_values_do_not_adjust(self) -> None:
        result = calculate_opportunity_score("exploding", None, None)
        assert result.score == 50.0
        assert result.breakdown.growth_adjustment == 0.0
        assert result.breakdown.competition_adjustment == 0.0

    def test_case_insensitive(self) -> None:
        assert calculate_opportunity_score(" Growing ", "LOW", 0).score == 85.0

    def test_negative_count_counts_as_zero(self) -> None:
        assert calculate_opportunity_score("stable", "medium", -3).score == 50.0

    def test_breakdown_dict(self) -> None:
        data = calculate_opportunity_score("growing", "high", ["x", "y"]).to_dict()
        assert data["score"] == 66.0
        assert data["tier"] == "moderate"
        assert data["calculationNotes"] == {
            "base": 50.0,
            "growthAdjustment": 20.0,
            "competitionAdjustment": -10.0,
            "painPointsAdjustment": 6.0,
        }

    @pytest.mark.parametrize(
        "growth", ["growing", "stable", "declining", "unknown"]
    )
    @pytest.mark.parametrize("competition", ["low", "medium", "high", "unknown"])
    @pytest.mark.parametrize("pains", [0, 1, 4, 9])
    def test_always_in_bounds(self, growth: str, competition: str, pains: int) -> None:
        result = calculate_opportunity_score(growth, competition, pains)
        assert 0.0 <= result.score <= 100.0
        assert result.tier is tier_for_score(result.score)


class TestTierForScore:

    @pytest.mark.parametrize(
        "score, tier",
        [
            (0.0, OpportunityTier.WEAK),
            (39.9, OpportunityTier.WEAK),
            (40.0, OpportunityTier.MODERATE),
            (69.9, OpportunityTier.MODERATE),
            (70.0, OpportunityTier.STRONG),
            (100.0, OpportunityTier.STRONG),
        ],
    )
    def test_thresholds(self, score: float, tier: OpportunityTier) -> None:
        assert tier_for_score(score) is tier
