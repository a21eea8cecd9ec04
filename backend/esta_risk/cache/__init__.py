"""TTL cache module for per-tenant risk scores."""
from .ttl_cache import TTLCache
from .cache_key import generate_score_cache_key, tenant_from_cache_key

__all__ = ["TTLCache", "generate_score_cache_key", "tenant_from_cache_key"]
