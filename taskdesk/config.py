"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "http://localhost:3000"

    # ==========================================================================
    # Identity provider
    # ==========================================================================

    # Shared-secret verification (HS256) unless a JWKS URL is configured
    identity_jwt_secret: str = "dev-identity-secret-change-in-production"
    identity_jwt_algorithm: str = "HS256"
    identity_jwks_url: str = ""
    identity_issuer: str = ""
    identity_audience: str = ""
    identity_timeout_seconds: float = 5.0
    identity_token_expire_minutes: int = 60

    # ==========================================================================
    # Listing
    # ==========================================================================

    default_page_size: int = 10
    max_page_size: int = 100

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    seed_file: str = ""
    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_jwks(self) -> bool:
        """Whether tokens are verified against a remote key set."""
        return bool(self.identity_jwks_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
