"""Cache key generation logic."""

from typing import Optional

from esta_risk.scorecard.factor_config import MODEL_VERSION


def generate_score_cache_key(tenant_id: str, model_version: str = MODEL_VERSION) -> str:
    """
    Generate a cache key for a tenant's risk score.

    Args:
        tenant_id: The tenant identifier
        model_version: The risk model version

    Returns:
        Cache key string

    Example:
        >>> generate_score_cache_key("acme", "1.0.0")
        "tenant:acme:score:1.0.0"
    """
    return f"tenant:{tenant_id}:score:{model_version}"


def tenant_from_cache_key(key: str) -> Optional[str]:
    """
    Recover the tenant id from a score cache key.

    Tenant ids may themselves contain colons, so the id is everything
    between the `tenant:` prefix and the last `:score:` separator.

    Example:
        >>> tenant_from_cache_key("tenant:acme:eu:score:1.0.0")
        "acme:eu"
    """
    if not key.startswith("tenant:"):
        return None
    head, sep, _ = key.rpartition(":score:")
    if not sep:
        return None
    return head[len("tenant:"):]
