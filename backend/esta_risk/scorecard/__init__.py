"""Package init for scorecard module."""

from esta_risk.scorecard.factor_config import (
    FACTOR_WEIGHTS,
    MODEL_VERSION,
    get_factors_config,
    get_model_info,
)
from esta_risk.scorecard.factor_engine import (
    calculate_overall_score,
    calculate_risk_factors,
    determine_risk_bracket,
    determine_risk_level,
    identify_primary_risk_drivers,
)
from esta_risk.scorecard.recommendations import generate_recommendations

__all__ = [
    'FACTOR_WEIGHTS',
    'MODEL_VERSION',
    'get_factors_config',
    'get_model_info',
    'calculate_overall_score',
    'calculate_risk_factors',
    'determine_risk_bracket',
    'determine_risk_level',
    'identify_primary_risk_drivers',
    'generate_recommendations',
]
