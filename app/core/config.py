"""Application configuration using environment-aware settings."""

from __future__ import annotations

import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration pulled from environment variables."""

    model_config = SettingsConfigDict(env_prefix="GH_")

    session_secret: str = os.environ.get("GH_SESSION_SECRET", "dev-secret-change-me")
    db_url: str = os.environ.get("GH_DB_URL", "sqlite:///./greenhouse.db")
    claim_token_secret: str = os.environ.get("GH_JWT_SECRET", "dev-claim-token-secret-change-in-production")
    claim_token_ttl_seconds: int = int(os.environ.get("GH_CLAIM_TOKEN_TTL", "600"))
    xp_day_timezone: str = os.environ.get("GH_XP_DAY_TZ", "UTC")
    level_formula: str = os.environ.get("GH_LEVEL_FORMULA", "linear")
    xp_award_max_attempts: int = int(os.environ.get("GH_XP_AWARD_MAX_ATTEMPTS", "10"))
    rate_limit_sweep_seconds: float = float(os.environ.get("GH_RATE_LIMIT_SWEEP_SECONDS", "300"))
    log_level: str = os.environ.get("GH_LOG_LEVEL", "INFO")
    log_json: bool = os.environ.get("GH_LOG_JSON", "true").lower() in {"1", "true", "yes"}


settings = Settings()
