from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Inventory POS Backend"
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
    LOG_SQL: bool = False

    # ==============================
    # Security
    # ==============================
    FOUNDER_API_KEY: Optional[str] = None
    API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    JWT_REQUIRED: bool = False

    # ==============================
    # Session login (dashboard)
    # ==============================
    DASHBOARD_USERNAME: Optional[str] = None
    DASHBOARD_PASSWORD: Optional[str] = None
    DASHBOARD_PASSWORD_HASH: Optional[str] = None
    DASHBOARD_PASSWORD_SALT: Optional[str] = None
    DASHBOARD_PBKDF2_ROUNDS: int = 200_000
    DASHBOARD_SESSION_SECRET: Optional[str] = None
    DASHBOARD_SESSION_COOKIE: str = "pos_session"

    # ==============================
    # Product images
    # ==============================
    PRODUCT_IMAGE_MAX_BYTES: int = 5 * 1024 * 1024

    # ==============================
    # Stock thresholds
    # ==============================
    STOCK_LOW_MAX: int = 20
    STOCK_CRITICAL_MAX: int = 10

    # ==============================
    # Purchases
    # ==============================
    PURCHASE_REFERENCE_PREFIX: str = "PUR"


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
