"""
Risk Factor Engine - Expert Rules Factor Scoring

Turns a feature vector into the eight weighted risk factors, aggregates them
into one overall score and classifies that score. All functions are pure.
"""

from typing import Callable, Dict, List
import math

from esta_risk.scorecard.factor_config import (
    ACCRUAL_UTILIZATION_THRESHOLDS,
    FACTOR_WEIGHTS,
    LATENCY_STEPS,
    MAX_PRIMARY_DRIVERS,
    MIN_SIGNIFICANT_SCORE,
    RISK_BRACKETS,
    RISK_THRESHOLDS,
    TURNOVER_THRESHOLDS,
)
from esta_risk.scorecard.types import (
    FeatureVector,
    RiskBracket,
    RiskFactor,
    RiskFactorCategory,
    RiskLevel,
    Trend,
)


def _clamp_score(value: float) -> float:
    return min(100.0, max(0.0, value))


def calculate_denial_rate_factor(features: FeatureVector) -> RiskFactor:
    # Weight recent denials more heavily
    weighted_rate = (
        features.denial_rate_30_days * 0.5
        + features.denial_rate_90_days * 0.3
        + features.denial_rate_year * 0.2
    )
    consecutive_penalty = min(features.consecutive_denials * 5, 20)
    trend_penalty = features.denial_trend * 15 if features.denial_trend > 0 else 0

    score = _clamp_score(weighted_rate * 100 + consecutive_penalty + trend_penalty)

    trend = Trend.STABLE
    if features.denial_trend > 0.1:
        trend = Trend.WORSENING
    elif features.denial_trend < -0.1:
        trend = Trend.IMPROVING

    return RiskFactor(
        category=RiskFactorCategory.DENIAL_RATE,
        score=score,
        weight=FACTOR_WEIGHTS[RiskFactorCategory.DENIAL_RATE],
        description=(
            f"Denial rate: {weighted_rate * 100:.1f}% "
            f"({features.consecutive_denials} consecutive denials)"
        ),
        data_points=1,
        trend=trend,
        details={
            "denial_rate_30_days": features.denial_rate_30_days,
            "denial_rate_90_days": features.denial_rate_90_days,
            "denial_rate_year": features.denial_rate_year,
            "consecutive_denials": features.consecutive_denials,
            "denial_trend": features.denial_trend,
        },
    )


def calculate_accrual_patterns_factor(features: FeatureVector) -> RiskFactor:
    utilization = features.avg_accrual_utilization
    if utilization < ACCRUAL_UTILIZATION_THRESHOLDS["very_low"]:
        # Almost nothing used: accruals may not be tracked at all
        utilization_score = ACCRUAL_UTILIZATION_THRESHOLDS["very_low_score"]
    elif utilization > ACCRUAL_UTILIZATION_THRESHOLDS["very_high"]:
        utilization_score = ACCRUAL_UTILIZATION_THRESHOLDS["very_high_score"]
    else:
        utilization_score = 0

    error_score = min(features.accrual_calculation_errors * 10, 30)
    late_update_score = min(features.late_accrual_updates * 5, 20)

    return RiskFactor(
        category=RiskFactorCategory.ACCRUAL_PATTERNS,
        score=_clamp_score(utilization_score + error_score + late_update_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.ACCRUAL_PATTERNS],
        description=f"Accrual utilization: {utilization * 100:.1f}%",
        data_points=1,
        trend=Trend.STABLE,
        details={
            "avg_accrual_utilization": utilization,
            "accrual_calculation_errors": features.accrual_calculation_errors,
            "late_accrual_updates": features.late_accrual_updates,
        },
    )


def calculate_usage_patterns_factor(features: FeatureVector) -> RiskFactor:
    request_score = 0
    if features.avg_requests_per_employee > 10:
        request_score = 30
    elif features.avg_requests_per_employee < 0.5:
        request_score = 20

    variance_score = min(features.peak_usage_variance * 10, 30)

    return RiskFactor(
        category=RiskFactorCategory.USAGE_PATTERNS,
        score=_clamp_score(request_score + variance_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.USAGE_PATTERNS],
        description=f"Avg requests per employee: {features.avg_requests_per_employee:.2f}",
        data_points=1,
        trend=Trend.STABLE,
        details={
            "avg_requests_per_employee": features.avg_requests_per_employee,
            "peak_usage_variance": features.peak_usage_variance,
        },
    )


def calculate_documentation_factor(features: FeatureVector) -> RiskFactor:
    documentation_score = (1 - features.documentation_rate) * 50
    missing_penalty = min(features.missing_documentation_count * 5, 30)
    late_penalty = features.documentation_late_rate * 20

    return RiskFactor(
        category=RiskFactorCategory.DOCUMENTATION_COMPLIANCE,
        score=_clamp_score(documentation_score + missing_penalty + late_penalty),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.DOCUMENTATION_COMPLIANCE],
        description=f"Documentation rate: {features.documentation_rate * 100:.1f}%",
        data_points=1,
        trend=Trend.STABLE,
        details={
            "documentation_rate": features.documentation_rate,
            "missing_documentation_count": features.missing_documentation_count,
            "documentation_late_rate": features.documentation_late_rate,
        },
    )


def calculate_timeliness_factor(features: FeatureVector) -> RiskFactor:
    latency_score = 0
    for hours, step_score in LATENCY_STEPS:
        if features.request_approval_latency > hours:
            latency_score = step_score
            break

    return RiskFactor(
        category=RiskFactorCategory.TIMELINESS,
        score=_clamp_score(latency_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.TIMELINESS],
        description=f"Avg approval time: {features.request_approval_latency:.1f} hours",
        data_points=1,
        trend=Trend.STABLE,
        details={"request_approval_latency": features.request_approval_latency},
    )


def calculate_employee_complaints_factor(features: FeatureVector) -> RiskFactor:
    complaint_score = features.employee_complaint_rate * 100

    turnover = features.employee_turnover_rate
    if turnover > TURNOVER_THRESHOLDS["high"]:
        turnover_score = TURNOVER_THRESHOLDS["high_score"]
    elif turnover > TURNOVER_THRESHOLDS["medium"]:
        turnover_score = TURNOVER_THRESHOLDS["medium_score"]
    else:
        turnover_score = 0

    return RiskFactor(
        category=RiskFactorCategory.EMPLOYEE_COMPLAINTS,
        score=_clamp_score(complaint_score + turnover_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.EMPLOYEE_COMPLAINTS],
        description=f"Complaint rate: {features.employee_complaint_rate * 100:.1f}%",
        data_points=1,
        trend=Trend.STABLE,
        details={
            "employee_complaint_rate": features.employee_complaint_rate,
            "employee_turnover_rate": turnover,
        },
    )


def calculate_record_keeping_factor(features: FeatureVector) -> RiskFactor:
    retention_score = (1 - features.record_retention_compliance) * 50
    gap_score = min(features.audit_trail_gaps * 10, 30)
    integrity_score = min(features.data_integrity_issues * 10, 20)

    return RiskFactor(
        category=RiskFactorCategory.RECORD_KEEPING,
        score=_clamp_score(retention_score + gap_score + integrity_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.RECORD_KEEPING],
        description=(
            f"Record retention compliance: {features.record_retention_compliance * 100:.1f}%"
        ),
        data_points=1,
        trend=Trend.STABLE,
        details={
            "record_retention_compliance": features.record_retention_compliance,
            "audit_trail_gaps": features.audit_trail_gaps,
            "data_integrity_issues": features.data_integrity_issues,
        },
    )


def calculate_policy_adherence_factor(features: FeatureVector) -> RiskFactor:
    violation_score_30 = min(features.policy_violations_30_days * 15, 40)
    violation_score_90 = min(features.policy_violations_90_days * 5, 20)
    unresolved_score = min(features.unresolved_alerts * 10, 40)

    # More than a third of the quarter's violations landed in the last month
    worsening = features.policy_violations_30_days > features.policy_violations_90_days / 3

    return RiskFactor(
        category=RiskFactorCategory.POLICY_ADHERENCE,
        score=_clamp_score(violation_score_30 + violation_score_90 + unresolved_score),
        weight=FACTOR_WEIGHTS[RiskFactorCategory.POLICY_ADHERENCE],
        description=(
            f"Policy violations (30d): {features.policy_violations_30_days}, "
            f"Unresolved alerts: {features.unresolved_alerts}"
        ),
        data_points=1,
        trend=Trend.WORSENING if worsening else Trend.STABLE,
        details={
            "policy_violations_30_days": features.policy_violations_30_days,
            "policy_violations_90_days": features.policy_violations_90_days,
            "unresolved_alerts": features.unresolved_alerts,
        },
    )


FACTOR_CALCULATORS: Dict[RiskFactorCategory, Callable[[FeatureVector], RiskFactor]] = {
    RiskFactorCategory.DENIAL_RATE: calculate_denial_rate_factor,
    RiskFactorCategory.ACCRUAL_PATTERNS: calculate_accrual_patterns_factor,
    RiskFactorCategory.USAGE_PATTERNS: calculate_usage_patterns_factor,
    RiskFactorCategory.DOCUMENTATION_COMPLIANCE: calculate_documentation_factor,
    RiskFactorCategory.TIMELINESS: calculate_timeliness_factor,
    RiskFactorCategory.EMPLOYEE_COMPLAINTS: calculate_employee_complaints_factor,
    RiskFactorCategory.RECORD_KEEPING: calculate_record_keeping_factor,
    RiskFactorCategory.POLICY_ADHERENCE: calculate_policy_adherence_factor,
}


def calculate_risk_factors(features: FeatureVector) -> List[RiskFactor]:
    """Score all eight categories, in the fixed category order."""
    return [calculator(features) for calculator in FACTOR_CALCULATORS.values()]


def calculate_overall_score(factors: List[RiskFactor]) -> float:
    """
    Weighted mean of factor scores.

    An empty factor list has no weight to divide by; the result is NaN,
    which classifies as 'low' downstream. This mirrors 0/0 rather than
    inventing a score.
    """
    total_weight = sum(f.weight for f in factors)
    weighted_sum = sum(f.score * f.weight for f in factors)
    if total_weight == 0:
        return math.nan
    return weighted_sum / total_weight


def determine_risk_level(score: float) -> RiskLevel:
    for level, threshold in RISK_THRESHOLDS.items():
        if score >= threshold:
            return level
    return RiskLevel.LOW


def determine_risk_bracket(score: float) -> RiskBracket:
    for trigger, bracket in RISK_BRACKETS[:-1]:
        if score >= trigger:
            return bracket
    # Lowest bracket also catches NaN and negative scores
    return RISK_BRACKETS[-1][1]


def identify_primary_risk_drivers(factors: List[RiskFactor]) -> List[str]:
    """Top weighted contributors with a significant score, as display strings."""
    ranked = sorted(factors, key=lambda f: f.contribution, reverse=True)
    drivers = []
    for factor in ranked:
        if factor.score <= MIN_SIGNIFICANT_SCORE:
            continue
        category_name = factor.category.value.replace("_", " ")
        drivers.append(f"High {category_name}: {factor.description}")
        if len(drivers) == MAX_PRIMARY_DRIVERS:
            break
    return drivers
