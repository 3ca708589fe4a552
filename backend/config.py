"""
Configuration management for the Kilo Thrift storefront backend.

Loads settings from .env via pydantic-settings.

Notes:
    - Provider secrets (Stripe, Paystack) are never logged.
    - validate_production_settings() enforces strict CORS and required
      secrets when ENVIRONMENT=production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/kilo_thrift.db"

    # ── Storefront ──────────────────────────────────────────────────
    # Public URL of the storefront; redirects and provider return URLs are built from it.
    app_url: str = "http://localhost:3000"
    # Public URL of this API; Paystack sends shoppers back to its callback route.
    api_url: str = "http://localhost:8000"
    currency: str = "GBP"

    # ── Stripe (card checkout) ──────────────────────────────────────
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300  # seconds

    # ── Paystack ────────────────────────────────────────────────────
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_timeout_seconds: float = 15.0

    # ── Provider SDK thread pool ───────────────────────────────────
    provider_executor_workers: int = 4

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── Auth (JWT issued by the hosted identity provider) ──────────
    jwt_secret: str = ""
    jwt_audience: str = "authenticated"
    jwt_access_ttl_minutes: int = 60

    # ── Rate limits ─────────────────────────────────────────────────
    checkout_rate_limit: int = 10  # checkout attempts per minute per client

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def public_url(self) -> str:
        """Storefront URL without a trailing slash."""
        return self.app_url.rstrip("/")

    @property
    def public_api_url(self) -> str:
        return self.api_url.rstrip("/")

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
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
                    "It is used to validate shopper and admin access tokens."
                )
            if not self.stripe_webhook_secret or not self.stripe_secret_key:
                raise ValueError(
                    "STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET must be set in production."
                )
            if not self.paystack_secret_key:
                raise ValueError(
                    "PAYSTACK_SECRET_KEY must be set in production. "
                    "It signs Paystack webhooks and authenticates API calls."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            if not self.stripe_webhook_secret:
                warnings.append("STRIPE_WEBHOOK_SECRET not set (Stripe webhooks will be rejected)")
            if not self.paystack_secret_key:
                warnings.append("PAYSTACK_SECRET_KEY not set (Paystack webhooks will be rejected)")
            for w in warnings:
                logger.warning(w)


# Global settings instance
settings = Settings()
