"""Package init for extractors module."""

from esta_risk.extractors.activity_extractor import (
    extract_risk_features,
    normalize_activity,
    validate_features,
)

__all__ = ["extract_risk_features", "normalize_activity", "validate_features"]
