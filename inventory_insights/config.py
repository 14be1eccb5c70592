from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Inventory Variance Insights"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./inventory.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Variance Alerts
    # ==============================
    VARIANCE_MIN_QTY: float = 1.0
    VARIANCE_REPEATED_OCCURRENCES: int = 2
    VARIANCE_SPIKE_PERCENT: float = 0.5
    VARIANCE_TREND_WEEKS: int = 4
    VARIANCE_WORSENING_PERCENT: float = 0.25
    ALERT_LOOKBACK_DAYS: int = 60

    # ==============================
    # Baseline / Operational Insights
    # ==============================
    BASELINE_DAYS: int = 7
    MIN_ACTIVE_DAYS_FOR_INSIGHTS: int = 3
    INSIGHT_DEVIATION_PERCENT: float = 50.0

    # ==============================
    # Caching / Concurrency
    # ==============================
    VARIANCE_CACHE_SECONDS: int = 120
    ALERTS_CACHE_SECONDS: int = 600
    TRENDS_CACHE_SECONDS: int = 300
    READ_WORKERS: int = 4


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
