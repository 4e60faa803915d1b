from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Valuation provider
    accu_trade_api_key: str = Field(default="", alias="ACCU_TRADE_API_KEY")
    accu_trade_base_url: str = Field(default="https://api.accu-trade.com", alias="ACCU_TRADE_BASE_URL")
    provider_timeout_seconds: float = Field(default=10.0, alias="PROVIDER_TIMEOUT_SECONDS")

    # Mileage adjustment
    mileage_policy: str = Field(default="linear", alias="MILEAGE_POLICY")
    mileage_rate_per_thousand: float = Field(default=100.0, alias="MILEAGE_RATE_PER_THOUSAND")
    mileage_flat_amount: int = Field(default=750, alias="MILEAGE_FLAT_AMOUNT")
    default_average_mileage: int = Field(default=100_000, alias="DEFAULT_AVERAGE_MILEAGE")

    # Wizard sessions
    wizard_session_ttl_seconds: float = Field(default=3600.0, alias="WIZARD_SESSION_TTL_SECONDS")

    # CORS
    allowed_origins: str = Field(default="*", alias="ALLOWED_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def provider_api_key() -> str:
    """Read the provider credential fresh from the environment."""
    return ServiceSettings().accu_trade_api_key.strip()
