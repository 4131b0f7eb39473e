# app/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
import json
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "CVC Intake"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./cvc_intake.db"
    AUTO_CREATE_TABLES: bool = False

    # JWT Authentication
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12

    # Cases
    DEFAULT_STATE_CODE: str = "IL"
    INTAKE_SHARE_PATH: str = "/compensation/intake"

    @field_validator("DEFAULT_STATE_CODE", mode="before")
    @classmethod
    def normalize_state_code(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    # Idempotency (POST /cases with Idempotency-Key)
    IDEMPOTENCY_TTL_HOURS: int = 24
    IDEMPOTENCY_CLEANUP_ENABLED: bool = True

    # CORS
    CORS_ORIGINS: str = '["http://localhost:3000"]'
    CORS_ORIGIN_REGEX: str | None = None

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from string to list"""
        try:
            if isinstance(self.CORS_ORIGINS, str):
                return json.loads(self.CORS_ORIGINS)
            return self.CORS_ORIGINS
        except json.JSONDecodeError:
            return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Create settings instance
settings = Settings()
