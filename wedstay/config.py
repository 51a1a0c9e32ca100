"""All settings, loaded from the .env file."""

import os
from functools import lru_cache

from pydantic_settings import BaseSettings

APP_VERSION = "0.4.0"


class Settings(BaseSettings):
    # App
    app_url: str = "http://localhost:8000"
    secret_key: str = "change-me"
    database_url: str = "sqlite:///./wedstay.db"
    log_level: str = "INFO"
    testing: bool = bool(os.environ.get("TESTING"))

    # Marketplace
    default_commission_rate: float = 15.00
    order_number_prefix: str = "WS"
    max_inquiry_items: int = 50

    # Counter reconciliation
    scheduler_enabled: bool = True
    reconcile_interval_min: int = 60

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_inquiry: str = "10/minute"
    rate_limit_tracking: str = "60/minute"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
