# backend/esta_risk/services/scoring_service.py

from datetime import datetime, timedelta
from typing import Callable, Optional
import math

from esta_risk.scorecard.factor_config import ANALYSIS_PERIOD_DAYS, MODEL_VERSION
from esta_risk.scorecard.factor_engine import (
    calculate_overall_score,
    calculate_risk_factors,
    determine_risk_bracket,
    determine_risk_level,
    identify_primary_risk_drivers,
)
from esta_risk.scorecard.recommendations import generate_recommendations
from esta_risk.scorecard.types import (
    AnalysisPeriod,
    FeatureVector,
    PreviousScore,
    PreviousScoreDelta,
    RiskScore,
)
from esta_risk.utils import new_id, utcnow


def quarter_label(moment: datetime) -> str:
    """'Q4 2025' style label for the quarter containing `moment`."""
    quarter = math.ceil(moment.month / 3)
    return f"Q{quarter} {moment.year}"


def compute_confidence(total_data_points: int) -> float:
    return min(0.95, 0.5 + total_data_points * 0.05)


def calculate_score(
    features: FeatureVector,
    previous_score: Optional[PreviousScore] = None,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = new_id,
    clock: Callable[[], datetime] = utcnow,
) -> RiskScore:
    """
    Compute the ESTA audit risk score from a feature vector.

    Steps:
    1. Score the eight risk factors
    2. Aggregate into the overall score
    3. Classify level and percentile bracket
    4. Extract primary drivers and build recommendations
    5. Attach analysis period, confidence and previous-score delta

    The features are not validated here; callers that need strict input run
    validate_features first.
    """
    calculated_at = now or clock()

    factors = calculate_risk_factors(features)
    overall_score = calculate_overall_score(factors)
    risk_level = determine_risk_level(overall_score)

    data_points = sum(f.data_points for f in factors)

    delta = None
    if previous_score is not None:
        delta = PreviousScoreDelta(
            score=previous_score.score,
            calculated_at=previous_score.calculated_at,
            change=overall_score - previous_score.score,
        )

    return RiskScore(
        id=id_factory(),
        tenant_id=features.tenant_id,
        overall_score=overall_score,
        risk_level=risk_level,
        risk_bracket=determine_risk_bracket(overall_score),
        factors=factors,
        analysis_period=AnalysisPeriod(
            start_date=calculated_at - timedelta(days=ANALYSIS_PERIOD_DAYS),
            end_date=calculated_at,
            quarter_label=quarter_label(calculated_at),
        ),
        primary_risk_drivers=identify_primary_risk_drivers(factors),
        recommendations=generate_recommendations(factors, risk_level, id_factory),
        confidence=compute_confidence(data_points),
        model_version=MODEL_VERSION,
        calculated_at=calculated_at,
        previous_score=delta,
    )
