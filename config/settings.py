"""Centralized configuration using Pydantic Settings."""

import logging
import secrets
from functools import lru_cache
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Runtime ====================
    # "development" adds stack traces to error responses
    environment: str = "production"

    # ==================== Server ====================
    host: str = "0.0.0.0"
    port: int = 8083

    # ==================== MongoDB ====================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "credential_core"
    mongodb_max_pool_size: int = 10
    mongodb_server_selection_timeout_ms: int = 5000
    mongodb_socket_timeout_ms: int = 45000

    # ==================== Session Tokens ====================
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 24 * 60

    # ==================== Verification ====================
    otp_expiry_minutes: int = 10
    unverified_user_ttl_seconds: int = 600
    require_verified_login: bool = True
    bcrypt_rounds: int = 12

    # ==================== Password Reset ====================
    reset_token_expiry_minutes: int = 60
    reset_token_retention_hours: int = 24
    app_base_url: str = "http://localhost:3000"

    # ==================== Cleanup ====================
    otp_cleanup_interval_seconds: int = 600
    reset_cleanup_interval_seconds: int = 3600

    # ==================== Rate Limiting ====================
    rate_limit_enabled: bool = True

    # ==================== Admin ====================
    admin_email: Optional[str] = None  # Recipient of admin-role passcodes
    admin_api_key: Optional[str] = None  # If None, /admin routes are disabled

    # ==================== SMTP (Email) ====================
    smtp_host: Optional[str] = None  # If None, print messages to console
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: Optional[str] = None
    mail_sender_name: str = "TruPath Services"

    # Handle empty strings for optional string fields
    @field_validator(
        "jwt_secret",
        "admin_email",
        "admin_api_key",
        "smtp_host",
        "smtp_user",
        "smtp_password",
        "smtp_from_email",
        mode="before",
    )
    @classmethod
    def parse_optional_str(cls, v):
        if v == "":
            return None
        return v

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def resolve_jwt_secret(self) -> str:
        """Return the signing secret, generating a throwaway one in development."""
        if self.jwt_secret:
            return self.jwt_secret
        if not self.is_development:
            raise RuntimeError("JWT_SECRET must be set outside development")
        logger.warning("JWT_SECRET not set, using a random per-process secret")
        self.jwt_secret = secrets.token_hex(32)
        return self.jwt_secret

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
