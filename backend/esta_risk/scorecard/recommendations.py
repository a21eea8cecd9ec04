"""
Recommendation Generator

Turns significant risk factors into prioritized remediation items. Each
category maps to exactly one hand-authored template; the set of categories
is closed, so dispatch is a plain dict lookup.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from esta_risk.scorecard.factor_config import MAX_RECOMMENDATIONS, MIN_SIGNIFICANT_SCORE
from esta_risk.scorecard.types import (
    Recommendation,
    RecommendationPriority,
    RiskFactor,
    RiskFactorCategory,
    RiskLevel,
)
from esta_risk.utils import new_id


@dataclass(frozen=True)
class RecommendationTemplate:
    title: str
    description: str
    impact: str
    reduction_multiplier: float
    reduction_cap: float
    action_items: tuple
    resources: Optional[tuple] = None

    def build(
        self,
        factor: RiskFactor,
        priority: RecommendationPriority,
        id_factory: Callable[[], str] = new_id,
    ) -> Recommendation:
        return Recommendation(
            id=id_factory(),
            category=factor.category,
            priority=priority,
            title=self.title,
            description=self.description,
            impact=self.impact,
            estimated_score_reduction=min(factor.score * self.reduction_multiplier, self.reduction_cap),
            action_items=list(self.action_items),
            resources=list(self.resources) if self.resources else None,
        )


RECOMMENDATION_TEMPLATES: Dict[RiskFactorCategory, RecommendationTemplate] = {
    RiskFactorCategory.DENIAL_RATE: RecommendationTemplate(
        title="Reduce Sick Time Request Denials",
        description=(
            "High denial rates are a primary indicator of potential ESTA violations "
            "and audit triggers."
        ),
        impact="Reducing denial rate by 10% could lower your risk score significantly.",
        reduction_multiplier=0.3,
        reduction_cap=15,
        action_items=(
            "Review denial reasons and ensure they comply with ESTA requirements",
            "Train managers on valid grounds for denial under Michigan ESTA",
            "Implement pre-approval documentation requirements",
            "Consider automatic approval for requests meeting documentation criteria",
        ),
        resources=("ESTA Compliance Guide", "Manager Training Materials"),
    ),
    RiskFactorCategory.ACCRUAL_PATTERNS: RecommendationTemplate(
        title="Improve Accrual Tracking Accuracy",
        description=(
            "Irregular accrual patterns may indicate calculation errors or policy "
            "inconsistencies."
        ),
        impact="Accurate accrual tracking ensures compliance and reduces audit risk.",
        reduction_multiplier=0.25,
        reduction_cap=10,
        action_items=(
            "Audit current accrual calculations against ESTA requirements",
            "Verify accrual rates match employer size requirements",
            "Implement automated accrual tracking if not already in place",
            "Review carryover policies for compliance",
        ),
    ),
    RiskFactorCategory.USAGE_PATTERNS: RecommendationTemplate(
        title="Monitor Unusual Usage Patterns",
        description="Unusual usage patterns may indicate policy confusion or abuse.",
        impact="Understanding usage helps optimize policies and reduce abuse.",
        reduction_multiplier=0.15,
        reduction_cap=8,
        action_items=(
            "Review requests with unusual patterns",
            "Communicate sick time policies clearly to all employees",
            "Analyze peak usage periods for staffing planning",
            "Consider seasonal policy adjustments if appropriate",
        ),
    ),
    RiskFactorCategory.DOCUMENTATION_COMPLIANCE: RecommendationTemplate(
        title="Strengthen Documentation Practices",
        description="Missing or late documentation increases audit risk and compliance exposure.",
        impact="Complete documentation is required for ESTA record-keeping compliance.",
        reduction_multiplier=0.25,
        reduction_cap=12,
        action_items=(
            "Require documentation upload at time of request submission",
            "Set up automated reminders for pending documentation",
            "Create standardized documentation templates",
            "Implement document retention policies meeting ESTA requirements",
        ),
    ),
    RiskFactorCategory.TIMELINESS: RecommendationTemplate(
        title="Reduce Request Processing Time",
        description=(
            "Slow response times to sick time requests may indicate process inefficiencies."
        ),
        impact="Faster processing improves employee experience and reduces complaints.",
        reduction_multiplier=0.2,
        reduction_cap=8,
        action_items=(
            "Set up automated notifications for pending requests",
            "Establish maximum response time SLAs",
            "Enable mobile approval for managers",
            "Consider delegated approval authority",
        ),
    ),
    RiskFactorCategory.EMPLOYEE_COMPLAINTS: RecommendationTemplate(
        title="Address Employee Concerns",
        description="Employee complaints are tracked by regulators and increase audit likelihood.",
        impact="Proactive complaint resolution demonstrates good faith compliance.",
        reduction_multiplier=0.3,
        reduction_cap=15,
        action_items=(
            "Review and respond to all pending complaints within 48 hours",
            "Implement anonymous feedback mechanism",
            "Conduct exit interviews focusing on sick time policies",
            "Train HR on complaint handling procedures",
        ),
    ),
    RiskFactorCategory.RECORD_KEEPING: RecommendationTemplate(
        title="Enhance Record Keeping Practices",
        description="Record keeping gaps expose employers to significant compliance risk.",
        impact="ESTA requires 3+ years of record retention with audit trail.",
        reduction_multiplier=0.25,
        reduction_cap=12,
        action_items=(
            "Verify all records meet ESTA retention requirements",
            "Implement immutable audit logging for all changes",
            "Set up automated backup and archival procedures",
            "Conduct quarterly record-keeping audits",
        ),
    ),
    RiskFactorCategory.POLICY_ADHERENCE: RecommendationTemplate(
        title="Resolve Outstanding Policy Violations",
        description="Unresolved policy violations compound audit risk over time.",
        impact="Prompt violation resolution demonstrates compliance commitment.",
        reduction_multiplier=0.2,
        reduction_cap=10,
        action_items=(
            "Review and resolve all unresolved compliance alerts",
            "Update policies to match current ESTA requirements",
            "Communicate policy changes to all employees",
            "Schedule regular policy compliance reviews",
        ),
    ),
}


def determine_priority(score: float) -> RecommendationPriority:
    if score >= 70:
        return RecommendationPriority.CRITICAL
    if score >= 50:
        return RecommendationPriority.HIGH
    if score >= 35:
        return RecommendationPriority.MEDIUM
    return RecommendationPriority.LOW


def generate_recommendations(
    factors: List[RiskFactor],
    risk_level: RiskLevel,
    id_factory: Callable[[], str] = new_id,
) -> List[Recommendation]:
    """
    Build up to five recommendations, highest-scoring factor first.

    `risk_level` is accepted so callers can pass the overall classification;
    priorities are currently derived from each factor's own score.
    """
    recommendations = []
    for factor in sorted(factors, key=lambda f: f.score, reverse=True):
        if factor.score < MIN_SIGNIFICANT_SCORE:
            continue
        template = RECOMMENDATION_TEMPLATES[factor.category]
        recommendations.append(template.build(factor, determine_priority(factor.score), id_factory))

    return recommendations[:MAX_RECOMMENDATIONS]
