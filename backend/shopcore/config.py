import os
import tempfile
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    DB_MAX_OPEN: int = 10
    DB_MAX_IDLE: int = 5
    DB_CONN_MAX_LIFETIME_SECONDS: int = 1800
    DB_ECHO: bool = False
    RESET_DB: bool = False

    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    STRIPE_PUBLIC_KEY: str = ""
    STRIPE_SECRET_KEY: str = ""

    SHIPPING_CURRENCY: str = "EUR"
    ORDERS_DEFAULT_LIMIT: int = 20
    ORDERS_MAX_LIMIT: int = 100

    LOCKS_DIR: str = os.path.join(tempfile.gettempdir(), "shopcore_locks")
    CART_LOCK_TIMEOUT_SECONDS: int = 10

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
