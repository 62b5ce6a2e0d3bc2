"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "CivicSense Priority Engine"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/civicsense"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:5173"

    # Wall-clock zone for the streetlight night rule and rate-limit boundaries.
    MUNICIPAL_TIMEZONE: str = "UTC"

    PRIORITY_DEFAULT_BASE_WEIGHT: float = 0.5
    PRIORITY_NIGHT_MULTIPLIER: float = 1.3
    PRIORITY_DAY_START_HOUR: int = 6
    PRIORITY_DAY_END_HOUR: int = 18

    DUPLICATE_RADIUS_METERS: int = 100
    DUPLICATE_WINDOW_HOURS: int = 72

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_HOURLY: int = 3
    RATE_LIMIT_DAILY: int = 10
    RATE_LIMIT_TRUSTED_HOURLY: int = 10
    RATE_LIMIT_TRUSTED_DAILY: int = 50

    ESCALATION_SWEEP_ENABLED: bool = False
    ESCALATION_SWEEP_INTERVAL_SECONDS: int = 3600
    ESCALATION_SWEEP_STARTUP_DELAY_SECONDS: int = 30
    ESCALATION_SWEEP_LEASE_SECONDS: int = 900

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
