from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str = "postgresql://localhost:5432/pulse"

    # Supabase auth (JWT verification for the HTTP boundary)
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_JWKS_URL: str | None = None

    # Google OAuth settings
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None

    ENCRYPTION_KEY: str | None = None

    # =================================================================
    # SYNC WINDOWS AND PROVIDER LIMITS
    # =================================================================
    EMAIL_LOOKBACK_DAYS: int = 90
    EMAIL_BATCH_SIZE: int = 50
    EMAIL_BATCH_DELAY_SECONDS: float = 0.2
    CALENDAR_LOOKBACK_DAYS: int = 90
    CALENDAR_LOOKAHEAD_DAYS: int = 30
    GOOGLE_REQUEST_TIMEOUT_SECONDS: float = 30.0
    TOKEN_REFRESH_TIMEOUT_SECONDS: float = 10.0

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("EMAIL_BATCH_SIZE")
    @classmethod
    def _check_batch_size(cls, value: int) -> int:
        # Gmail tolerates 25-50 concurrent metadata reads per user comfortably
        if not 25 <= value <= 50:
            raise ValueError("EMAIL_BATCH_SIZE must be between 25 and 50")
        return value

    def jwks_url(self) -> str:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 5, "timeout": 15.0})

        return config


settings = Settings()
