"""Pydantic schemas for alert rule definitions."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional


class AlertRuleDefinition(BaseModel):
    """Schema for one alert rule evaluated after every fresh score."""

    alert_type: str = Field(..., description="Alert type raised when the rule matches")
    title: str = Field(..., description="Alert title template (str.format over the metrics)")
    message: str = Field(..., description="Alert message template (str.format over the metrics)")
    condition: str = Field(..., description="Expression that raises the alert when true")
    critical_when: str = Field(default="True", description="Expression selecting 'critical' over 'warning'")
    related_factor_min_score: Optional[float] = Field(
        default=None,
        description="Link factors scoring above this; None links only `related_category`",
    )
    related_category: Optional[str] = Field(default=None, description="Single factor category to link")
    impact_metric: str = Field(..., description="Metric reported as the alert's score impact")
    is_active: bool = Field(default=True, description="Whether rule is active")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "alert_type": "denial_spike",
                "title": "High Denial Rate Detected",
                "message": "Your sick time request denial rate is unusually high.",
                "condition": "denial_rate_score >= 50",
                "critical_when": "denial_rate_score >= 70",
                "related_category": "denial_rate",
                "impact_metric": "denial_rate_contribution",
                "is_active": True,
            }
        }
    )
