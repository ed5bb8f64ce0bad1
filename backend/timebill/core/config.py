"""
Configuration for the billing service.

Values come from the environment or a ``.env`` file; names are matched
case-insensitively. Nothing here is secret: the engine holds no
credentials of its own beyond the database URL.
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Service
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Time & Billing Engine"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Storage
    # Local runs use a SQLite file; deployments set a postgresql:// URL,
    # which is switched to the asyncpg driver below.
    DATABASE_URL: str = "sqlite+aiosqlite:///./timebill.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 15.0

    # Invoicing
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30

    # Letterhead printed on invoice PDFs
    FIRM_NAME: str = "Law Office"
    FIRM_ADDRESS: str = "100 Main Street, Suite 200"
    FIRM_CITY_STATE_ZIP: str = "Springfield, IL 62701"
    FIRM_PHONE: str = "(555) 010-0000"
    FIRM_EMAIL: str = "billing@example.com"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept any standard level name, in any case."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def async_database_url(self) -> str:
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")


settings = Settings()
