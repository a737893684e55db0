"""
Configuration management for the UniLedger payments service.

Loads settings from .env via pydantic-settings.

Security notes:
    - validate_production_settings() enforces strict CORS in production
    - expose_error_details must stay off outside development: node and
      database messages are only logged server-side
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Algorand TestNet ────────────────────────────────────────────
    algorand_algod_address: str = "https://testnet-api.algonode.cloud"
    algorand_algod_token: str = ""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/uniledger.db"

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    expose_error_details: bool = False  # pass node/DB messages through to clients
    params_cache_seconds: int = 60

    # ── Rate limiting (per client IP) ───────────────────────────────
    verify_rate_limit: int = 10
    verify_rate_window_seconds: int = 60

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "uniledger-api"
    jwt_access_ttl_minutes: int = 60

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. Misconfiguration in production is fatal;
        anywhere else it is only logged.
        """
        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if not self.jwt_secret:
                raise ValueError(
                    "JWT_SECRET must be set in production. "
                    "It is used to validate session access tokens."
                )
            if self.expose_error_details:
                raise ValueError(
                    "EXPOSE_ERROR_DETAILS must be false in production. "
                    "Raw node and database errors would leak to clients."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if self.expose_error_details:
                warnings.append("EXPOSE_ERROR_DETAILS=true (raw error messages returned)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if not self.jwt_secret:
                warnings.append("JWT_SECRET not set (authenticated routes will fail)")
            for w in warnings:
                logger.warning(f"{w}")


# Global settings instance
settings = Settings()
