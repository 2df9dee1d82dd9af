# sneakerhead/core/config.py
from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// for local runs)
      - JWT_SECRET (HS256 signing secret for access tokens)

    Optional:
      - ESEWA_* (payment gateway endpoints and merchant code)
      - pricing knobs (TAX_RATE, SHIPPING_FEE, FREE_SHIPPING_THRESHOLD)
    """

    PROJECT_NAME: str = "SneakerHead API"
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False

    # Access tokens
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    FRONTEND_URL: str = "http://localhost:3000"

    # eSewa ePay (v1). Production hosts: https://esewa.com.np/epay/main and
    # https://esewa.com.np/epay/transrec
    ESEWA_MERCHANT_ID: str = "EPAYTEST"
    ESEWA_PAYMENT_URL: str = "https://uat.esewa.com.np/epay/main"
    ESEWA_VERIFY_URL: str = "https://uat.esewa.com.np/epay/transrec"
    ESEWA_VERIFY_PAYMENTS: bool = True
    ESEWA_TIMEOUT_SECONDS: float = 10.0
    MERCHANT_REFERENCE_PREFIX: str = "SNEAKERHEAD"

    # Checkout rules
    ENFORCE_CATALOG_PRICING: bool = True
    STRICT_ORDER_STATUS_TRANSITIONS: bool = True
    TAX_RATE: Decimal = Decimal("0.13")
    SHIPPING_FEE: Decimal = Decimal("10.00")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("100.00")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
