from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from esta_risk.scorecard.types import (
    AccrualBalance,
    ActivityInput,
    AlertSeverity,
    AlertType,
    ComplianceAlert,
    LeaveRequest,
    PreviousScore,
    RecommendationPriority,
    RequestStatus,
    RiskFactorCategory,
    RiskLevel,
    Trend,
)
from esta_risk.utils import to_naive_utc


# =========================
# ACTIVITY INPUT SCHEMAS
# =========================
class LeaveRequestIn(BaseModel):
    id: str
    status: RequestStatus
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    denial_reason: Optional[str] = None


class AccrualBalanceIn(BaseModel):
    employee_id: str
    current_balance: float
    yearly_accrued: float
    yearly_used: float
    last_updated: datetime


class ComplianceAlertIn(BaseModel):
    id: str
    alert_type: str
    severity: str
    created_at: datetime
    resolved_at: Optional[datetime] = None


class PreviousScoreIn(BaseModel):
    score: float
    calculated_at: datetime


class ActivityInputIn(BaseModel):
    """
    Request body for a risk calculation.

    Timestamps arrive as ISO strings and are parsed here; the engine only
    ever sees naive UTC datetimes. Identifiers are optional at the schema
    level so the endpoint can answer a missing one with 400.
    """
    tenant_id: Optional[str] = None
    employer_id: Optional[str] = None
    employer_size: Literal["small", "large"] = "large"
    employee_count: int = Field(default=0, ge=0)
    requests: List[LeaveRequestIn] = Field(default_factory=list)
    accrual_balances: List[AccrualBalanceIn] = Field(default_factory=list)
    compliance_alerts: List[ComplianceAlertIn] = Field(default_factory=list)
    previous_scores: List[PreviousScoreIn] = Field(default_factory=list)

    def to_domain(self) -> ActivityInput:
        return ActivityInput(
            tenant_id=self.tenant_id,
            employer_id=self.employer_id,
            employer_size=self.employer_size,
            employee_count=self.employee_count,
            requests=[
                LeaveRequest(
                    id=r.id,
                    status=r.status,
                    requested_at=to_naive_utc(r.requested_at),
                    reviewed_at=to_naive_utc(r.reviewed_at),
                    denial_reason=r.denial_reason,
                )
                for r in self.requests
            ],
            accrual_balances=[
                AccrualBalance(
                    employee_id=b.employee_id,
                    current_balance=b.current_balance,
                    yearly_accrued=b.yearly_accrued,
                    yearly_used=b.yearly_used,
                    last_updated=to_naive_utc(b.last_updated),
                )
                for b in self.accrual_balances
            ],
            compliance_alerts=[
                ComplianceAlert(
                    id=a.id,
                    alert_type=a.alert_type,
                    severity=a.severity,
                    created_at=to_naive_utc(a.created_at),
                    resolved_at=to_naive_utc(a.resolved_at),
                )
                for a in self.compliance_alerts
            ],
            previous_scores=[
                PreviousScore(score=p.score, calculated_at=to_naive_utc(p.calculated_at))
                for p in self.previous_scores
            ],
        )


# =========================
# SCORE SCHEMAS
# =========================
class RiskBracketOut(BaseModel):
    percentile: int
    bracket: str
    description: str

    model_config = {"from_attributes": True}


class RiskFactorOut(BaseModel):
    category: RiskFactorCategory
    score: float
    weight: float
    description: str
    data_points: int
    trend: Trend
    details: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class RecommendationOut(BaseModel):
    id: str
    category: RiskFactorCategory
    priority: RecommendationPriority
    title: str
    description: str
    impact: str
    estimated_score_reduction: float
    action_items: List[str]
    deadline: Optional[datetime] = None
    resources: Optional[List[str]] = None

    model_config = {"from_attributes": True}


class AnalysisPeriodOut(BaseModel):
    start_date: datetime
    end_date: datetime
    quarter_label: str

    model_config = {"from_attributes": True}


class PreviousScoreOut(BaseModel):
    score: float
    calculated_at: datetime
    change: float

    model_config = {"from_attributes": True}


class RiskScoreOut(BaseModel):
    id: str
    tenant_id: str
    overall_score: float
    risk_level: RiskLevel
    risk_bracket: RiskBracketOut
    analysis_period: AnalysisPeriodOut
    primary_risk_drivers: List[str]
    recommendations: List[RecommendationOut]
    confidence: float
    model_version: str
    calculated_at: datetime
    previous_score: Optional[PreviousScoreOut] = None

    model_config = {
        "from_attributes": True,
        "protected_namespaces": (),
    }


class RiskAlertOut(BaseModel):
    id: str
    tenant_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    triggered_at: datetime
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    related_factors: List[RiskFactorCategory]
    score_impact: float
    is_active: bool

    model_config = {"from_attributes": True}


class CalculateResponse(BaseModel):
    success: bool = True
    score: RiskScoreOut
    factors: List[RiskFactorOut]
    alerts: List[RiskAlertOut]
    from_cache: bool
    message: str


# =========================
# HISTORY / SUMMARY SCHEMAS
# =========================
class ScoreHistoryEntryOut(BaseModel):
    date: datetime
    score: float
    risk_level: RiskLevel
    primary_drivers: List[str]

    model_config = {"from_attributes": True}


class ScoreHistoryOut(BaseModel):
    tenant_id: str
    scores: List[ScoreHistoryEntryOut]
    trend: Trend
    avg_score_90_days: float
    avg_score_365_days: float

    model_config = {"from_attributes": True}


class HistoryResponse(BaseModel):
    success: bool = True
    history: Optional[ScoreHistoryOut] = None
    message: Optional[str] = None


class RiskSummaryOut(BaseModel):
    has_score: bool
    score: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    risk_bracket: Optional[str] = None
    last_calculated: Optional[datetime] = None
    active_alerts: int = 0
    trend: Optional[Trend] = None


class SummaryResponse(BaseModel):
    success: bool = True
    summary: RiskSummaryOut


class AlertListResponse(BaseModel):
    success: bool = True
    alerts: List[RiskAlertOut]
    count: int


class AlertResponse(BaseModel):
    success: bool = True
    alert: RiskAlertOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str
