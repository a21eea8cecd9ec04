"""
Runtime settings read from the environment.

Values come from environment variables, optionally loaded from a .env file
in the working directory.
"""
from dataclasses import dataclass, field
from typing import List
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    database_url: str = "sqlite:///./esta_risk.db"
    store_backend: str = "memory"  # 'memory' or 'sql'
    cache_ttl_seconds: int = 3600
    cache_max_size: int = 1000
    history_retention_days: int = 365
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS")
        store_backend = os.getenv("RISK_STORE_BACKEND", "memory").strip().lower()
        if store_backend not in ("memory", "sql"):
            raise ValueError(f"RISK_STORE_BACKEND must be 'memory' or 'sql', got {store_backend!r}")

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./esta_risk.db"),
            store_backend=store_backend,
            cache_ttl_seconds=_env_int("RISK_CACHE_TTL_SECONDS", 3600),
            cache_max_size=_env_int("RISK_CACHE_MAX_SIZE", 1000),
            history_retention_days=_env_int("RISK_HISTORY_RETENTION_DAYS", 365),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else list(DEFAULT_CORS_ORIGINS)
            ),
        )


_settings = None


def get_settings() -> Settings:
    """Process-wide settings, read once."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
