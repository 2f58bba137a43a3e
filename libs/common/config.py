from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "order_service"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Placeholder secret keeps local/test runs working; deployments override via env.
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Pricing policy
    TAX_RATE: Decimal = Decimal("0.18")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("500")
    FLAT_SHIPPING_FEE: Decimal = Decimal("50")
    DEFAULT_CURRENCY: str = "INR"

    # Checkout
    DEFAULT_SHIPPING_METHOD: str = "standard"
    SHIPPING_DAYS: int = 5
    ORDER_NUMBER_ATTEMPTS: int = 5

    # Downstream services (optional; side effects are skipped when unset)
    COMMUNICATIONS_SERVICE_URL: Optional[str] = None
    COMMUNICATIONS_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @field_validator("DEFAULT_CURRENCY")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3:
            raise ValueError("DEFAULT_CURRENCY must be a 3-letter code")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
