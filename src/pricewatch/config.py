# src/pricewatch/config.py
"""
Application settings, loaded from the environment and an optional .env file.
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment / DB
    ENV: str = Field(default="dev")
    DATABASE_URL: str = Field(default="sqlite:///./dev.db")
    LOG_LEVEL: str | None = None

    # API
    API_KEY: str | None = None
    CORS_ORIGINS: str = "*"

    # Alert policy
    ALERT_DEDUP_WINDOW_HOURS: int = Field(default=24, ge=1)
    MINOR_CHANGE_ABSOLUTE: Decimal = Decimal("1.00")
    MINOR_CHANGE_PERCENT: Decimal = Decimal("1.0")
    MAX_ALERTS_PER_DAY: int = Field(default=10, ge=0)
    MAX_DELIVERY_RETRIES: int = Field(default=3, ge=1)

    # Price fetching / sweep
    FETCH_TIMEOUT_SECONDS: float = 10.0
    FETCH_MAX_RETRIES: int = Field(default=2, ge=0)
    FETCH_BACKOFF_SECONDS: float = 1.0
    SWEEP_ENABLED: bool = False
    SWEEP_INTERVAL_SECONDS: int = Field(default=3600, ge=1)

    # Telegram
    TELEGRAM_BOT_TOKEN: str | None = None

    # Email (SMTP)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASS: str | None = None
    SMTP_FROM: str | None = None

    # Observability
    METRICS_ENABLED: bool = True


settings = Settings()
