"""
Alert generation for freshly computed risk scores.

Each alert rule is an expression evaluated with simpleeval against a flat
dictionary of score metrics, the same way decision rules are evaluated
elsewhere in the codebase. A rule that fails to evaluate is skipped with a
warning so it can never block a score calculation.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from esta_risk.rules import AlertRuleDefinition, RuleEvaluator
from esta_risk.scorecard.types import (
    AlertSeverity,
    AlertType,
    RiskAlert,
    RiskFactorCategory,
    RiskScore,
)
from esta_risk.utils import new_id

logger = logging.getLogger(__name__)

DEFAULT_ALERT_RULES: List[AlertRuleDefinition] = [
    AlertRuleDefinition(
        alert_type=AlertType.SCORE_INCREASE.value,
        title="Risk Score Increased Significantly",
        message=(
            "Your ESTA audit risk score increased by {score_change:.1f} points. "
            "Review the recommendations to reduce your risk."
        ),
        condition="has_previous_score and score_change >= 10",
        critical_when="overall_score >= 50",
        related_factor_min_score=30,
        impact_metric="score_change",
    ),
    AlertRuleDefinition(
        alert_type=AlertType.DENIAL_SPIKE.value,
        title="High Denial Rate Detected",
        message=(
            "Your sick time request denial rate is unusually high, which is a primary "
            "indicator for ESTA audit triggers."
        ),
        condition="denial_rate_score >= 50",
        critical_when="denial_rate_score >= 70",
        related_category=RiskFactorCategory.DENIAL_RATE.value,
        impact_metric="denial_rate_contribution",
    ),
    AlertRuleDefinition(
        alert_type=AlertType.THRESHOLD_BREACH.value,
        title="You're in the {bracket} Risk Bracket",
        message="{bracket_description}",
        condition="bracket_percentile >= 85",
        critical_when="True",
        related_factor_min_score=40,
        impact_metric="overall_score",
    ),
]


def build_alert_context(score: RiskScore, previous_score: Optional[float] = None) -> Dict[str, Any]:
    """Flatten a score into the metric names alert rules can reference."""
    context: Dict[str, Any] = {
        "overall_score": score.overall_score,
        "risk_level": score.risk_level.value,
        "bracket": score.risk_bracket.bracket,
        "bracket_percentile": score.risk_bracket.percentile,
        "bracket_description": score.risk_bracket.description,
        "has_previous_score": previous_score is not None,
        "score_change": score.overall_score - previous_score if previous_score is not None else 0.0,
    }
    for factor in score.factors:
        context[f"{factor.category.value}_score"] = factor.score
        context[f"{factor.category.value}_contribution"] = factor.contribution
    return context


SCORE_METRICS = [
    "overall_score",
    "risk_level",
    "bracket",
    "bracket_percentile",
    "bracket_description",
    "has_previous_score",
    "score_change",
]


def alert_metric_names() -> List[str]:
    """Every name build_alert_context provides."""
    names = list(SCORE_METRICS)
    for category in RiskFactorCategory:
        names.append(f"{category.value}_score")
        names.append(f"{category.value}_contribution")
    return names


def validate_alert_rules(
    rules: List[AlertRuleDefinition],
    evaluator: Optional[RuleEvaluator] = None,
) -> List[str]:
    """
    Static checks on rule definitions: known alert type and category,
    parseable expressions over known metrics.

    Returns a list of problems, empty when every rule is usable.
    """
    evaluator = evaluator or RuleEvaluator()
    available = alert_metric_names()
    alert_types = {t.value for t in AlertType}
    categories = {c.value for c in RiskFactorCategory}

    errors = []
    for rule in rules:
        if rule.alert_type not in alert_types:
            errors.append(f"{rule.alert_type}: unknown alert type")
        if rule.related_category and rule.related_category not in categories:
            errors.append(f"{rule.alert_type}: unknown factor category '{rule.related_category}'")
        if rule.impact_metric not in available:
            errors.append(f"{rule.alert_type}.impact_metric: Unknown metric '{rule.impact_metric}'")
        for field_name in ("condition", "critical_when"):
            for problem in evaluator.check_expression(getattr(rule, field_name), available):
                errors.append(f"{rule.alert_type}.{field_name}: {problem}")
    return errors


def _related_factors(rule: AlertRuleDefinition, score: RiskScore) -> List[RiskFactorCategory]:
    if rule.related_category:
        return [RiskFactorCategory(rule.related_category)]
    if rule.related_factor_min_score is None:
        return []
    return [f.category for f in score.factors if f.score > rule.related_factor_min_score]


def generate_alerts(
    score: RiskScore,
    previous_score: Optional[float] = None,
    rules: Optional[List[AlertRuleDefinition]] = None,
    evaluator: Optional[RuleEvaluator] = None,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_id,
) -> List[RiskAlert]:
    """
    Evaluate alert rules against a score.

    Args:
        score: Freshly computed score
        previous_score: Overall score of the prior calculation, if any
        rules: Rules to evaluate (defaults to DEFAULT_ALERT_RULES)
        evaluator: Expression evaluator
        now: Trigger timestamp (defaults to the score's calculated_at)
        id_factory: Alert id generator

    Returns:
        Newly raised alerts, active and unacknowledged
    """
    rules = DEFAULT_ALERT_RULES if rules is None else rules
    evaluator = evaluator or RuleEvaluator()
    triggered_at = now or score.calculated_at
    context = build_alert_context(score, previous_score)

    alerts = []
    for rule in rules:
        if not rule.is_active:
            continue
        if not evaluator.evaluate_safe(rule.condition, context, default=False):
            continue

        critical = evaluator.evaluate_safe(rule.critical_when, context, default=False)
        try:
            title = rule.title.format(**context)
            message = rule.message.format(**context)
        except (KeyError, ValueError) as e:
            logger.warning(f"Alert template for {rule.alert_type} could not be rendered: {e}")
            title, message = rule.title, rule.message

        alerts.append(RiskAlert(
            id=id_factory(),
            tenant_id=score.tenant_id,
            alert_type=AlertType(rule.alert_type),
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
            title=title,
            message=message,
            triggered_at=triggered_at,
            related_factors=_related_factors(rule, score),
            score_impact=float(context.get(rule.impact_metric, 0.0)),
            is_active=True,
        ))

    if alerts:
        logger.info(
            f"Raised {len(alerts)} alert(s) for tenant {score.tenant_id}: "
            f"{[a.alert_type.value for a in alerts]}"
        )
    return alerts
