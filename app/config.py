from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from decimal import Decimal
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Vendor Settlement Back Office"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    # Email/SMTP Settings
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "no-reply@marketplace.test"
    SMTP_FROM_NAME: str = "Marketplace Seller Desk"

    # Seller portal URL for access emails
    PORTAL_URL: str = "http://localhost:3001"

    # Cache Settings
    REDIS_URL: Optional[str] = None  # e.g., "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    PLATFORM_SETTINGS_CACHE_TTL: int = 300  # 5 minutes for platform defaults

    # Commission
    PLATFORM_DEFAULT_COMMISSION_TYPE: str = "PERCENTAGE"
    PLATFORM_DEFAULT_COMMISSION_VALUE: Decimal = Decimal("5")

    # Category tree
    MAX_CATEGORY_DEPTH: int = 5  # Maximum number of ancestors a category may have

    # Settlement
    PAYMENT_CYCLE_DAYS: int = 7  # Weekly statements
    PAYOUT_MINIMUM_AMOUNT: Decimal = Decimal("100")
    PAYOUT_PROCESSING_DAYS: int = 3

    # Auto-suspension thresholds (reported, not enforced by a scheduler)
    MAX_FAILED_PAYOUTS: int = 3
    MAX_PENDING_KYC_DAYS: int = 30
    INACTIVITY_DAYS: int = 90

    # Onboarding / payout policy defaults (overridable via platform_settings)
    KYC_REQUIRED_DOCUMENTS: list[str] = ["GST_CERTIFICATE", "PAN_CARD", "BANK_STATEMENT"]
    KYC_AUTO_APPROVAL: bool = False
    PRODUCT_AUTO_APPROVAL: bool = False
    PAYOUT_AUTO_PROCESSING: bool = False

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('PLATFORM_DEFAULT_COMMISSION_TYPE', mode='before')
    @classmethod
    def normalize_commission_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
