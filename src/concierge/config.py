"""
Concierge - Configuration and settings.

Settings are read from the environment (and .env) with the CONCIERGE_,
PROFILE_ and SHOPIFY_ names below. Nothing is required: the defaults run the
interview locally against a profile service on localhost.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    concierge_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Profile service (POST/GET /api/user)
    profile_api_base_url: str = "http://localhost:3000"

    # Shopify Storefront (catalog search)
    shopify_store_domain: str = ""
    shopify_storefront_token: str = ""
    shopify_api_version: str = "2023-10"

    # Shared HTTP timeout for both external services
    http_timeout_seconds: float = 15.0

    # Override for the onboarding synonym tables (defaults to the bundled file)
    concierge_lexicon_path: str | None = None

    # Number of products returned per recommendation
    ranking_limit: int = 3

    # JSONL session logs (CLI --log)
    session_log_dir: str = "session_logs"

    @property
    def lexicon_path(self) -> str | None:
        return self.concierge_lexicon_path

    @property
    def is_development(self) -> bool:
        return self.concierge_env == "development"

    @property
    def is_production(self) -> bool:
        return self.concierge_env == "production"

    @property
    def storefront_configured(self) -> bool:
        return bool(self.shopify_store_domain and self.shopify_storefront_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
