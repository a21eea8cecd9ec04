"""Unit tests for risk factor scoring, aggregation and classification."""
import math

import pytest

from esta_risk.scorecard.factor_config import FACTOR_WEIGHTS, get_factors_config, get_model_info
from esta_risk.scorecard.factor_engine import (
    calculate_accrual_patterns_factor,
    calculate_denial_rate_factor,
    calculate_overall_score,
    calculate_policy_adherence_factor,
    calculate_risk_factors,
    calculate_timeliness_factor,
    calculate_usage_patterns_factor,
    determine_risk_bracket,
    determine_risk_level,
    identify_primary_risk_drivers,
)
from esta_risk.scorecard.types import RiskFactorCategory, RiskLevel, Trend
from factories import make_factor, make_features


def test_factor_weights_sum_to_one():
    assert len(FACTOR_WEIGHTS) == 8
    assert math.isclose(sum(FACTOR_WEIGHTS.values()), 1.0)


class TestFactorCalculators:
    """Per-category formulas."""

    def test_all_categories_scored_in_order(self):
        factors = calculate_risk_factors(make_features())
        assert [f.category for f in factors] == list(RiskFactorCategory)
        assert all(0 <= f.score <= 100 for f in factors)
        assert all(f.data_points == 1 for f in factors)

    def test_denial_rate_factor(self):
        features = make_features(
            denial_rate_30_days=0.5,
            denial_rate_90_days=0.4,
            denial_rate_year=0.2,
            consecutive_denials=2,
            denial_trend=0.2,
        )
        factor = calculate_denial_rate_factor(features)
        # (0.25 + 0.12 + 0.04) * 100 + 10 + 3
        assert math.isclose(factor.score, 54.0)
        assert factor.trend == Trend.WORSENING
        assert factor.description == "Denial rate: 41.0% (2 consecutive denials)"

    def test_denial_rate_factor_clamped_and_penalty_capped(self):
        features = make_features(
            denial_rate_30_days=1.0,
            denial_rate_90_days=1.0,
            denial_rate_year=1.0,
            consecutive_denials=10,
            denial_trend=1.0,
        )
        assert calculate_denial_rate_factor(features).score == 100

    def test_denial_rate_factor_improving_trend_has_no_penalty(self):
        factor = calculate_denial_rate_factor(make_features(denial_rate_30_days=0.2, denial_trend=-0.5))
        assert math.isclose(factor.score, 10.0)
        assert factor.trend == Trend.IMPROVING

    @pytest.mark.parametrize("utilization,expected", [(0.05, 50), (0.5, 0), (0.95, 30)])
    def test_accrual_utilization_bands(self, utilization, expected):
        factor = calculate_accrual_patterns_factor(make_features(avg_accrual_utilization=utilization))
        assert factor.score == expected

    def test_accrual_errors_and_late_updates_are_capped(self):
        factor = calculate_accrual_patterns_factor(make_features(
            avg_accrual_utilization=0.5,
            accrual_calculation_errors=5,
            late_accrual_updates=10,
        ))
        assert factor.score == 50

    @pytest.mark.parametrize("per_employee,expected", [(0.2, 20), (3, 0), (12, 30)])
    def test_usage_request_bands(self, per_employee, expected):
        factor = calculate_usage_patterns_factor(make_features(avg_requests_per_employee=per_employee))
        assert factor.score == expected

    @pytest.mark.parametrize("latency,expected", [(10, 0), (24, 0), (30, 20), (50, 40), (100, 60)])
    def test_timeliness_steps(self, latency, expected):
        factor = calculate_timeliness_factor(make_features(request_approval_latency=latency))
        assert factor.score == expected

    def test_policy_adherence(self):
        factor = calculate_policy_adherence_factor(make_features(
            policy_violations_30_days=2,
            policy_violations_90_days=3,
            unresolved_alerts=1,
        ))
        assert factor.score == 30 + 15 + 10
        assert factor.trend == Trend.WORSENING

    def test_placeholder_features_score_zero(self):
        scores = {f.category: f.score for f in calculate_risk_factors(make_features())}
        assert scores[RiskFactorCategory.DOCUMENTATION_COMPLIANCE] == 0
        assert scores[RiskFactorCategory.EMPLOYEE_COMPLAINTS] == 0
        assert scores[RiskFactorCategory.RECORD_KEEPING] == 0


class TestAggregation:

    def test_weighted_mean(self):
        factors = [
            make_factor("denial_rate", 50, 0.25),
            make_factor("accrual_patterns", 30, 0.15),
            make_factor("usage_patterns", 20, 0.10),
            make_factor("documentation_compliance", 40, 0.15),
            make_factor("timeliness", 60, 0.10),
            make_factor("employee_complaints", 10, 0.10),
            make_factor("record_keeping", 25, 0.10),
            make_factor("policy_adherence", 35, 0.05),
        ]
        assert math.isclose(calculate_overall_score(factors), 36.25)

    def test_empty_factor_list_is_nan(self):
        assert math.isnan(calculate_overall_score([]))

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.LOW),
        (24, RiskLevel.LOW),
        (25, RiskLevel.MEDIUM),
        (49, RiskLevel.MEDIUM),
        (50, RiskLevel.HIGH),
        (74, RiskLevel.HIGH),
        (75, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ])
    def test_risk_level_boundaries(self, score, level):
        assert determine_risk_level(score) == level

    def test_nan_classifies_low(self):
        assert determine_risk_level(math.nan) == RiskLevel.LOW
        assert determine_risk_bracket(math.nan).bracket == "low risk"

    def test_bracket_top(self):
        bracket = determine_risk_bracket(85)
        assert bracket.percentile == 92
        assert bracket.bracket == "top 8%"

    def test_bracket_bottom(self):
        bracket = determine_risk_bracket(10)
        assert bracket.percentile == 10
        assert bracket.bracket == "low risk"

    @pytest.mark.parametrize("score,percentile", [(65, 85), (50, 75), (35, 50), (20, 25), (19.9, 10)])
    def test_bracket_triggers(self, score, percentile):
        assert determine_risk_bracket(score).percentile == percentile


class TestPrimaryDrivers:

    def test_sorted_by_contribution_and_limited(self):
        factors = [
            make_factor("denial_rate", 40),             # 10.0
            make_factor("accrual_patterns", 80),        # 12.0
            make_factor("timeliness", 60),              # 6.0
            make_factor("policy_adherence", 90),        # 4.5
            make_factor("record_keeping", 15),
        ]
        drivers = identify_primary_risk_drivers(factors)
        assert drivers == [
            "High accrual patterns: test factor",
            "High denial rate: test factor",
            "High timeliness: test factor",
        ]

    def test_scores_at_threshold_are_not_drivers(self):
        assert identify_primary_risk_drivers([make_factor("denial_rate", 20)]) == []


class TestPublishedConfig:

    def test_factors_config(self):
        config = get_factors_config()
        assert len(config["factors"]) == 8
        assert config["risk_levels"]["critical"]["threshold"] == 75
        assert config["risk_brackets"][0] == {"percentile": 92, "bracket": "top 8%", "trigger_score": 80}

    def test_model_info(self):
        info = get_model_info()
        assert info["version"] == "1.0.0"
        assert info["capabilities"]["feature_count"] == 24
        assert info["capabilities"]["deterministic"] is True
