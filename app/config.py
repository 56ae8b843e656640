from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis settings (unset = in-memory record store and rate limiter)
    REDIS_URL: str | None = None
    REDIS_MAX_CONNECTIONS: int = 20
    RECORD_STORE_NAMESPACE: str = "career"
    LOCK_TIMEOUT_SECONDS: float = 10.0

    # =================================================================
    # ADVISOR FEEDBACK SETTINGS
    # =================================================================
    ADVISOR_MAX_PER_SESSION: int = 4
    ADVISOR_MIN_RECOMMENDED: int = 3
    ADVISOR_INVITATION_EXPIRY_DAYS: int = 30
    ADVISOR_MAX_REMINDERS: int = 3
    ADVISOR_REMINDER_MIN_DAYS: int = 3
    ADVISOR_RESPONSE_BASE_URL: str = "https://wigu.career"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_FAIL_OPEN: bool = True
    INVITATION_RATE_LIMIT: int = 10
    INVITATION_RATE_LIMIT_WINDOW_SECONDS: int = 3600
    RESPONSE_RATE_LIMIT: int = 5
    RESPONSE_RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # Email dispatch
    SENDGRID_API_KEY: str | None = None
    EMAIL_FROM_ADDRESS: str = "noreply@wigu.career"
    EMAIL_FROM_NAME: str = "Career Insight Platform"
    EMAIL_DISPATCH_TIMEOUT_SECONDS: float = 10.0

    # Proxy handling for client IP extraction
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_rate_limits(self) -> dict:
        """Get rate limit configuration for advisor endpoints."""
        return {
            "invitation_per_window": self.INVITATION_RATE_LIMIT,
            "invitation_window_seconds": self.INVITATION_RATE_LIMIT_WINDOW_SECONDS,
            "response_per_window": self.RESPONSE_RATE_LIMIT,
            "response_window_seconds": self.RESPONSE_RATE_LIMIT_WINDOW_SECONDS,
        }

    def use_redis(self) -> bool:
        return bool(self.REDIS_URL)


settings = Settings()

# =================================================================
# QUICK CONFIGURATION REFERENCE
# =================================================================
"""
Advisor cap and rate limits are plain settings; override via environment:

STRICT (production default):
    ADVISOR_MAX_PER_SESSION=4
    INVITATION_RATE_LIMIT=10 per INVITATION_RATE_LIMIT_WINDOW_SECONDS=3600

LOAD TESTING (temporary high limits):
    RATE_LIMIT_ENABLED=false
"""
