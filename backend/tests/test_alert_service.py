"""Tests for alert rule evaluation against computed scores."""
from datetime import timedelta

import pytest

from esta_risk.rules import AlertRuleDefinition
from esta_risk.scorecard.factor_engine import (
    calculate_overall_score,
    determine_risk_bracket,
    determine_risk_level,
)
from esta_risk.scorecard.types import (
    AlertSeverity,
    AlertType,
    AnalysisPeriod,
    RiskFactorCategory,
    RiskScore,
)
from esta_risk.services.alert_service import (
    DEFAULT_ALERT_RULES,
    alert_metric_names,
    build_alert_context,
    generate_alerts,
    validate_alert_rules,
)
from factories import NOW, SequentialIds, make_factor


def build_score(**factor_scores):
    """RiskScore over all eight categories; unspecified factors score 0."""
    factors = [make_factor(c, factor_scores.get(c.value, 0)) for c in RiskFactorCategory]
    overall = calculate_overall_score(factors)
    return RiskScore(
        id="score-1",
        tenant_id="tenant-1",
        overall_score=overall,
        risk_level=determine_risk_level(overall),
        risk_bracket=determine_risk_bracket(overall),
        factors=factors,
        analysis_period=AnalysisPeriod(NOW - timedelta(days=90), NOW, "Q4 2025"),
        primary_risk_drivers=[],
        recommendations=[],
        confidence=0.9,
        model_version="1.0.0",
        calculated_at=NOW,
    )


def alert_types(alerts):
    return [a.alert_type for a in alerts]


class TestBuildAlertContext:

    def test_context_metrics(self):
        score = build_score(denial_rate=60)
        context = build_alert_context(score, previous_score=5.0)

        assert context["overall_score"] == pytest.approx(15.0)
        assert context["has_previous_score"] is True
        assert context["score_change"] == pytest.approx(10.0)
        assert context["denial_rate_score"] == 60
        assert context["denial_rate_contribution"] == 15.0
        assert context["bracket"] == "low risk"

    def test_no_previous_score(self):
        context = build_alert_context(build_score(), previous_score=None)
        assert context["has_previous_score"] is False
        assert context["score_change"] == 0.0


class TestGenerateAlerts:

    def setup_method(self):
        self.ids = SequentialIds("alert")

    def test_quiet_score_raises_nothing(self):
        assert generate_alerts(build_score(denial_rate=10)) == []

    def test_denial_spike_warning(self):
        alerts = generate_alerts(build_score(denial_rate=55), id_factory=self.ids)

        assert alert_types(alerts) == [AlertType.DENIAL_SPIKE]
        alert = alerts[0]
        assert alert.id == "alert-1"
        assert alert.severity == AlertSeverity.WARNING
        assert alert.related_factors == [RiskFactorCategory.DENIAL_RATE]
        assert alert.score_impact == 55 * 0.25
        assert alert.triggered_at == NOW
        assert alert.is_active is True

    def test_denial_spike_critical(self):
        alerts = generate_alerts(build_score(denial_rate=70))
        assert alerts[0].severity == AlertSeverity.CRITICAL

    def test_score_increase_needs_previous_score(self):
        score = build_score(denial_rate=40, accrual_patterns=40)  # overall 16
        assert generate_alerts(score, previous_score=None) == []

        alerts = generate_alerts(score, previous_score=5.0)
        assert alert_types(alerts) == [AlertType.SCORE_INCREASE]
        assert alerts[0].severity == AlertSeverity.WARNING
        assert alerts[0].score_impact == pytest.approx(11.0)
        assert "increased by 11.0 points" in alerts[0].message
        assert alerts[0].related_factors == [
            RiskFactorCategory.DENIAL_RATE,
            RiskFactorCategory.ACCRUAL_PATTERNS,
        ]

    def test_threshold_breach(self):
        score = build_score(**{c.value: 90 for c in RiskFactorCategory})
        alerts = generate_alerts(score, previous_score=85.0)

        assert alert_types(alerts) == [AlertType.DENIAL_SPIKE, AlertType.THRESHOLD_BREACH]
        breach = alerts[1]
        assert breach.severity == AlertSeverity.CRITICAL
        assert breach.title == "You're in the top 8% Risk Bracket"
        assert breach.message == score.risk_bracket.description
        assert len(breach.related_factors) == 8

    def test_broken_rule_is_skipped(self):
        rules = [
            AlertRuleDefinition(
                alert_type="pattern_anomaly",
                title="Broken",
                message="Broken",
                condition="no_such_metric > 1",
                impact_metric="overall_score",
            ),
            AlertRuleDefinition(
                alert_type="compliance_violation",
                title="Unresolved alerts",
                message="Policy adherence at {policy_adherence_score:.0f}",
                condition="policy_adherence_score >= 40",
                related_category="policy_adherence",
                impact_metric="policy_adherence_contribution",
            ),
        ]
        alerts = generate_alerts(build_score(policy_adherence=50), rules=rules)

        assert alert_types(alerts) == [AlertType.COMPLIANCE_VIOLATION]
        assert alerts[0].message == "Policy adherence at 50"
        assert alerts[0].severity == AlertSeverity.CRITICAL

    def test_inactive_rules_ignored(self):
        rules = [
            AlertRuleDefinition(
                alert_type="pattern_anomaly",
                title="Always",
                message="Always",
                condition="True",
                impact_metric="overall_score",
                is_active=False,
            ),
        ]
        assert generate_alerts(build_score(), rules=rules) == []


class TestValidateAlertRules:

    def test_default_rules_are_valid(self):
        assert validate_alert_rules(DEFAULT_ALERT_RULES) == []

    def test_metric_names_match_context(self):
        assert set(alert_metric_names()) == set(build_alert_context(build_score(), 1.0))

    def test_problems_reported_per_rule(self):
        rule = AlertRuleDefinition(
            alert_type="denial_surge",
            title="t",
            message="m",
            condition="denial_score >= 50",
            critical_when="overall_score >=",
            related_category="denials",
            impact_metric="denial_impact",
        )
        errors = validate_alert_rules([rule])

        assert errors[0] == "denial_surge: unknown alert type"
        assert "denial_surge: unknown factor category 'denials'" in errors
        assert "denial_surge.impact_metric: Unknown metric 'denial_impact'" in errors
        assert "denial_surge.condition: Unknown metric 'denial_score'" in errors
        assert any(e.startswith("denial_surge.critical_when: Invalid syntax") for e in errors)
