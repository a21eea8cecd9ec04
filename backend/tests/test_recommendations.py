"""Unit tests for recommendation generation."""
import pytest

from esta_risk.scorecard.recommendations import (
    RECOMMENDATION_TEMPLATES,
    determine_priority,
    generate_recommendations,
)
from esta_risk.scorecard.types import RecommendationPriority, RiskFactorCategory, RiskLevel
from factories import SequentialIds, make_factor


def test_every_category_has_a_template():
    assert set(RECOMMENDATION_TEMPLATES) == set(RiskFactorCategory)


@pytest.mark.parametrize("score,priority", [
    (90, RecommendationPriority.CRITICAL),
    (70, RecommendationPriority.CRITICAL),
    (69, RecommendationPriority.HIGH),
    (50, RecommendationPriority.HIGH),
    (35, RecommendationPriority.MEDIUM),
    (34, RecommendationPriority.LOW),
])
def test_priority_thresholds(score, priority):
    assert determine_priority(score) == priority


class TestGenerateRecommendations:

    def setup_method(self):
        self.factors = [
            make_factor("denial_rate", 80),
            make_factor("accrual_patterns", 60),
            make_factor("usage_patterns", 10),
            make_factor("documentation_compliance", 45),
            make_factor("timeliness", 20),
            make_factor("employee_complaints", 19.9),
            make_factor("record_keeping", 30),
            make_factor("policy_adherence", 55),
        ]

    def test_at_most_five(self):
        recommendations = generate_recommendations(self.factors, RiskLevel.HIGH)
        assert len(recommendations) == 5

    def test_sorted_by_descending_factor_score(self):
        scores = {f.category: f.score for f in self.factors}
        recommendations = generate_recommendations(self.factors, RiskLevel.HIGH)
        ordered = [scores[r.category] for r in recommendations]
        assert ordered == sorted(ordered, reverse=True)
        assert [r.category for r in recommendations] == [
            RiskFactorCategory.DENIAL_RATE,
            RiskFactorCategory.ACCRUAL_PATTERNS,
            RiskFactorCategory.POLICY_ADHERENCE,
            RiskFactorCategory.DOCUMENTATION_COMPLIANCE,
            RiskFactorCategory.RECORD_KEEPING,
        ]

    def test_skips_factors_below_twenty(self):
        factors = [make_factor("usage_patterns", 10), make_factor("timeliness", 20)]
        recommendations = generate_recommendations(factors, RiskLevel.LOW)
        assert [r.category for r in recommendations] == [RiskFactorCategory.TIMELINESS]

    def test_estimated_reduction_uses_multiplier_and_cap(self):
        recommendations = generate_recommendations(
            [make_factor("denial_rate", 80), make_factor("timeliness", 30)],
            RiskLevel.HIGH,
        )
        by_category = {r.category: r for r in recommendations}
        assert by_category[RiskFactorCategory.DENIAL_RATE].estimated_score_reduction == 15
        assert by_category[RiskFactorCategory.TIMELINESS].estimated_score_reduction == pytest.approx(6.0)

    def test_recommendation_content(self):
        ids = SequentialIds("rec")
        recommendation = generate_recommendations([make_factor("denial_rate", 75)], RiskLevel.HIGH, ids)[0]
        assert recommendation.id == "rec-1"
        assert recommendation.priority == RecommendationPriority.CRITICAL
        assert recommendation.title == "Reduce Sick Time Request Denials"
        assert len(recommendation.action_items) == 4
        assert recommendation.resources == ["ESTA Compliance Guide", "Manager Training Materials"]

    def test_no_significant_factors(self):
        factors = [make_factor(c, 5) for c in RiskFactorCategory]
        assert generate_recommendations(factors, RiskLevel.LOW) == []
