"""Application configuration."""
from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Goal validation
    GOAL_TOLERANCE: Decimal = Decimal("0.05")
    COGS_WARNING_LOW: Decimal = Decimal("5")
    COGS_WARNING_HIGH: Decimal = Decimal("95")
    MIN_REVENUE_GOAL: Decimal = Decimal("10000")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
