from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    stripe_api_key: SecretStr | None = None
    billing_gateway: str | None = None
    catalog: str | None = None
    submission_timeout: float = 30.0
    currency_symbol: str = "$"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
