"""
Risk Engine Types

Plain dataclasses shared by the feature extractor, the factor engine and the
orchestrator. They carry already-parsed values only (datetimes, floats); the
HTTP layer converts its pydantic schemas into these before calling the engine.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional
import enum


class RiskFactorCategory(str, enum.Enum):
    DENIAL_RATE = "denial_rate"
    ACCRUAL_PATTERNS = "accrual_patterns"
    USAGE_PATTERNS = "usage_patterns"
    DOCUMENTATION_COMPLIANCE = "documentation_compliance"
    TIMELINESS = "timeliness"
    EMPLOYEE_COMPLAINTS = "employee_complaints"
    RECORD_KEEPING = "record_keeping"
    POLICY_ADHERENCE = "policy_adherence"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecommendationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Trend(str, enum.Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"


# =========================
# ACTIVITY INPUT
# =========================
@dataclass
class LeaveRequest:
    id: str
    status: RequestStatus
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    denial_reason: Optional[str] = None


@dataclass
class AccrualBalance:
    employee_id: str
    current_balance: float
    yearly_accrued: float
    yearly_used: float
    last_updated: datetime


@dataclass
class ComplianceAlert:
    id: str
    alert_type: str
    severity: str
    created_at: datetime
    resolved_at: Optional[datetime] = None


@dataclass
class PreviousScore:
    score: float
    calculated_at: datetime


@dataclass
class ActivityInput:
    """Raw per-tenant activity handed to the engine by the caller."""
    tenant_id: str
    employer_id: str
    employer_size: str = "large"  # 'small' or 'large'
    employee_count: int = 0
    requests: List[LeaveRequest] = field(default_factory=list)
    accrual_balances: List[AccrualBalance] = field(default_factory=list)
    compliance_alerts: List[ComplianceAlert] = field(default_factory=list)
    previous_scores: List[PreviousScore] = field(default_factory=list)


# =========================
# FEATURES
# =========================
@dataclass
class FeatureVector:
    tenant_id: str
    extracted_at: datetime

    # Denial metrics
    denial_rate_30_days: float = 0.0
    denial_rate_90_days: float = 0.0
    denial_rate_year: float = 0.0
    denial_trend: float = 0.0  # -1 to 1, positive = increasing denials
    consecutive_denials: int = 0

    # Accrual metrics
    avg_accrual_utilization: float = 0.0
    accrual_calculation_errors: int = 0
    late_accrual_updates: int = 0

    # Usage metrics
    avg_requests_per_employee: float = 0.0
    request_approval_latency: float = 0.0  # hours
    peak_usage_variance: float = 0.0

    # Documentation metrics
    documentation_rate: float = 1.0
    missing_documentation_count: int = 0
    documentation_late_rate: float = 0.0

    # Compliance metrics
    policy_violations_30_days: int = 0
    policy_violations_90_days: int = 0
    compliance_alert_count: int = 0
    unresolved_alerts: int = 0

    # Record keeping metrics
    record_retention_compliance: float = 1.0
    audit_trail_gaps: int = 0
    data_integrity_issues: int = 0

    # Historical metrics
    previous_audit_findings: int = 0
    previous_penalties: int = 0
    years_in_business: float = 1.0

    # Employee metrics
    employee_count: int = 0
    employee_turnover_rate: float = 0.0
    employee_complaint_rate: float = 0.0

    is_small_employer: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FeatureValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


# =========================
# SCORING OUTPUT
# =========================
@dataclass
class RiskFactor:
    category: RiskFactorCategory
    score: float  # 0-100, 100 is highest risk
    weight: float
    description: str
    data_points: int
    trend: Trend
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def contribution(self) -> float:
        return self.score * self.weight


@dataclass(frozen=True)
class RiskBracket:
    percentile: int
    bracket: str
    description: str


@dataclass
class Recommendation:
    id: str
    category: RiskFactorCategory
    priority: RecommendationPriority
    title: str
    description: str
    impact: str
    estimated_score_reduction: float
    action_items: List[str] = field(default_factory=list)
    deadline: Optional[datetime] = None
    resources: Optional[List[str]] = None


@dataclass
class AnalysisPeriod:
    start_date: datetime
    end_date: datetime
    quarter_label: str  # e.g. "Q4 2025"


@dataclass
class PreviousScoreDelta:
    score: float
    calculated_at: datetime
    change: float  # positive = risk increased


@dataclass
class RiskScore:
    id: str
    tenant_id: str
    overall_score: float
    risk_level: RiskLevel
    risk_bracket: RiskBracket
    factors: List[RiskFactor]
    analysis_period: AnalysisPeriod
    primary_risk_drivers: List[str]
    recommendations: List[Recommendation]
    confidence: float
    model_version: str
    calculated_at: datetime
    previous_score: Optional[PreviousScoreDelta] = None

    def factor(self, category: RiskFactorCategory) -> Optional[RiskFactor]:
        for f in self.factors:
            if f.category == category:
                return f
        return None


# =========================
# ORCHESTRATOR RECORDS
# =========================
class AlertType(str, enum.Enum):
    DENIAL_SPIKE = "denial_spike"
    COMPLIANCE_VIOLATION = "compliance_violation"
    PATTERN_ANOMALY = "pattern_anomaly"
    SCORE_INCREASE = "score_increase"
    THRESHOLD_BREACH = "threshold_breach"


class AlertSeverity(str, enum.Enum):
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass
class RiskAlert:
    id: str
    tenant_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    triggered_at: datetime
    related_factors: List[RiskFactorCategory] = field(default_factory=list)
    score_impact: float = 0.0
    is_active: bool = True
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None


@dataclass
class ScoreHistoryEntry:
    date: datetime
    score: float
    risk_level: RiskLevel
    primary_drivers: List[str] = field(default_factory=list)


@dataclass
class ScoreHistory:
    tenant_id: str
    scores: List[ScoreHistoryEntry]
    trend: Trend
    avg_score_90_days: float
    avg_score_365_days: float
