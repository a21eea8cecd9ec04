"""
Risk Factor Configuration - Expert-Defined Weights and Thresholds

This module contains the hand-weighted configuration of the ESTA audit risk
model. Every number here is a domain judgement, not a fitted parameter:
the factor weights decide how much each compliance dimension moves the
overall score, and the threshold tables decide how an overall score is
labelled for the employer.
"""

from typing import Dict, Any, List

from esta_risk.scorecard.types import RiskBracket, RiskFactorCategory, RiskLevel

MODEL_VERSION = "1.0.0"
MODEL_NAME = "ESTA Score Predictive Risk Engine"
FEATURE_COUNT = 24

# Factor weights for the weighted average (sum to 1.0)
FACTOR_WEIGHTS: Dict[RiskFactorCategory, float] = {
    RiskFactorCategory.DENIAL_RATE: 0.25,  # High denials are the major audit trigger
    RiskFactorCategory.ACCRUAL_PATTERNS: 0.15,
    RiskFactorCategory.USAGE_PATTERNS: 0.10,
    RiskFactorCategory.DOCUMENTATION_COMPLIANCE: 0.15,
    RiskFactorCategory.TIMELINESS: 0.10,
    RiskFactorCategory.EMPLOYEE_COMPLAINTS: 0.10,
    RiskFactorCategory.RECORD_KEEPING: 0.10,
    RiskFactorCategory.POLICY_ADHERENCE: 0.05,
}

FACTOR_DESCRIPTIONS: Dict[RiskFactorCategory, str] = {
    RiskFactorCategory.DENIAL_RATE: "Sick time request denial rate - primary audit trigger indicator",
    RiskFactorCategory.ACCRUAL_PATTERNS: "Accrual calculation accuracy and patterns",
    RiskFactorCategory.USAGE_PATTERNS: "Request frequency and distribution patterns",
    RiskFactorCategory.DOCUMENTATION_COMPLIANCE: "Documentation completeness and timeliness",
    RiskFactorCategory.TIMELINESS: "Request approval response times",
    RiskFactorCategory.EMPLOYEE_COMPLAINTS: "Employee complaint and turnover rates",
    RiskFactorCategory.RECORD_KEEPING: "Record retention and audit trail completeness",
    RiskFactorCategory.POLICY_ADHERENCE: "Policy violation and alert resolution rates",
}

# Minimum overall score for each level, checked from the top down
RISK_THRESHOLDS: Dict[RiskLevel, float] = {
    RiskLevel.CRITICAL: 75,
    RiskLevel.HIGH: 50,
    RiskLevel.MEDIUM: 25,
}

RISK_LEVEL_DISPLAY: Dict[RiskLevel, Dict[str, Any]] = {
    RiskLevel.LOW: {"threshold": 0, "label": "Low Risk", "color": "#22c55e"},
    RiskLevel.MEDIUM: {"threshold": 25, "label": "Medium Risk", "color": "#eab308"},
    RiskLevel.HIGH: {"threshold": 50, "label": "High Risk", "color": "#f97316"},
    RiskLevel.CRITICAL: {"threshold": 75, "label": "Critical Risk", "color": "#ef4444"},
}

ACCRUAL_UTILIZATION_THRESHOLDS = {
    "very_low": 0.1,  # Below this = potential tracking issues
    "very_high": 0.9,  # Above this = heavy but plausible usage
    "very_low_score": 50,
    "very_high_score": 30,
}

TURNOVER_THRESHOLDS = {
    "high": 0.3,
    "medium": 0.2,
    "high_score": 30,
    "medium_score": 15,
}

# (hours, score) checked from the longest latency down
LATENCY_STEPS = [
    (72, 60),
    (48, 40),
    (24, 20),
]

# (trigger score, bracket) checked from the top down
RISK_BRACKETS: List[tuple] = [
    (80, RiskBracket(
        percentile=92,
        bracket="top 8%",
        description="You are in the top 8% risk bracket for an ESTA audit this quarter",
    )),
    (65, RiskBracket(
        percentile=85,
        bracket="top 15%",
        description="You are in the top 15% risk bracket for an ESTA audit this quarter",
    )),
    (50, RiskBracket(
        percentile=75,
        bracket="top 25%",
        description="You are in the top 25% risk bracket for an ESTA audit this quarter",
    )),
    (35, RiskBracket(
        percentile=50,
        bracket="above average",
        description="Your audit risk is above average compared to other employers",
    )),
    (20, RiskBracket(
        percentile=25,
        bracket="below average",
        description="Your audit risk is below average - good compliance practices",
    )),
    (0, RiskBracket(
        percentile=10,
        bracket="low risk",
        description="Excellent compliance - you are in the lowest risk bracket",
    )),
]

# Factors scoring below this are neither drivers nor recommendation sources
MIN_SIGNIFICANT_SCORE = 20
MAX_PRIMARY_DRIVERS = 3
MAX_RECOMMENDATIONS = 5
ANALYSIS_PERIOD_DAYS = 90


def get_factors_config() -> Dict[str, Any]:
    """Return the static weight and threshold tables in a serializable form."""
    return {
        "factors": [
            {
                "category": category.value,
                "weight": weight,
                "description": FACTOR_DESCRIPTIONS[category],
            }
            for category, weight in FACTOR_WEIGHTS.items()
        ],
        "risk_levels": {level.value: dict(info) for level, info in RISK_LEVEL_DISPLAY.items()},
        "risk_brackets": [
            {
                "percentile": bracket.percentile,
                "bracket": bracket.bracket,
                "trigger_score": trigger,
            }
            for trigger, bracket in RISK_BRACKETS
        ],
    }


def get_model_info() -> Dict[str, Any]:
    """Return model version and descriptive metadata."""
    return {
        "name": MODEL_NAME,
        "version": MODEL_VERSION,
        "description": (
            "Analyzes employer accrual patterns, denial rates, and compliance "
            "behaviors to predict ESTA audit risk"
        ),
        "last_updated": "2025-01-01",
        "features": [
            "Denial rate analysis with trend detection",
            "Accrual pattern anomaly detection",
            "Compliance alert correlation",
            "Risk bracket percentile comparison",
            "Actionable recommendation generation",
            "Historical trend analysis",
        ],
        "capabilities": {
            "deterministic": True,
            "feature_count": FEATURE_COUNT,
            "factor_count": len(FACTOR_WEIGHTS),
        },
    }
