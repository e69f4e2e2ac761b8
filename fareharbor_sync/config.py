from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./fareharbor.db",
        alias="DATABASE_URL"
    )

    # ==============================================
    # FareHarbor Webhook Settings
    # ==============================================
    # Shared secret used to sign webhook bodies (HMAC-SHA256)
    fareharbor_webhook_secret: str = Field(default="", alias="FAREHARBOR_WEBHOOK_SECRET")

    # Header carrying the signature, optionally prefixed with "sha256="
    webhook_signature_header: str = Field(
        default="X-FareHarbor-Signature",
        alias="WEBHOOK_SIGNATURE_HEADER"
    )

    # When true, a missing secret rejects every webhook instead of skipping verification
    webhook_signature_required: bool = Field(default=False, alias="WEBHOOK_SIGNATURE_REQUIRED")

    # Write an audit entry for requests that fail signature verification
    audit_rejected_webhooks: bool = Field(default=False, alias="AUDIT_REJECTED_WEBHOOKS")

    # Label stored on bookings whose payload carries no source
    default_booking_source: str = Field(default="fareharbor", alias="DEFAULT_BOOKING_SOURCE")

    # Max webhook body size (bytes)
    max_payload_bytes: int = Field(default=50 * 1024 * 1024, alias="MAX_PAYLOAD_BYTES")

    # CORS - comma-separated, "*" allows any origin
    allowed_origins: str = Field(default="*", alias="ALLOWED_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: Optional[bool] = Field(default=None, alias="LOG_JSON")

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosted Postgres providers hand out postgres://, SQLAlchemy needs postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def use_json_logs(self) -> bool:
        if self.log_json is None:
            return self.is_production
        return self.log_json

    @property
    def signature_verification_enabled(self) -> bool:
        return bool(self.fareharbor_webhook_secret)

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        if not origins or "*" in origins:
            return ["*"]
        return origins

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
