from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Nail Salon Inventory"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./salon_inventory.db"

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    OWNER_API_KEY: Optional[str] = None
    API_KEYS: Optional[str] = None
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_REQUIRED: bool = False
    JWT_EXPIRES_DAYS: int = 7
    PASSWORD_PBKDF2_ROUNDS: int = 200_000

    # ==============================
    # Inventory
    # ==============================
    LOW_STOCK_DEFAULT: int = 1

    # ==============================
    # Dashboard
    # ==============================
    DASHBOARD_RECENT_ACTIVITY_LIMIT: int = 10
    DASHBOARD_RECENTLY_USED_LIMIT: int = 5
    DASHBOARD_TOP_LIMIT: int = 5
    FORECAST_MONTHS: int = 6


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
