"""Settings for Freelance Ledger, read from FLG_* environment variables.

A .env file in the working directory is honoured as well. Use
get_settings() rather than constructing Settings directly so the process
shares one instance.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings.

    Examples:
        FLG_SQLITE_PATH=/var/lib/freelance/ledger.db
        FLG_LOG_LEVEL=DEBUG
        FLG_ALLOW_FUTURE_HOUR_RECORDS=true
    """

    model_config = SettingsConfigDict(
        env_prefix="FLG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Freelance Ledger"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(
        default=False, description="FastAPI debug mode; forced on in development"
    )

    sqlite_path: Path = Field(
        default=Path("freelance_ledger.db"),
        description="SQLite database file (':memory:' for a throwaway store)",
    )

    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] | None = Field(
        default=None,
        description="'json' or 'console'; defaults to json in production",
    )
    log_file: Path | None = None

    api_host: str = "127.0.0.1"
    api_port: int = Field(default=8000, ge=1, le=65535)

    allow_future_hour_records: bool = Field(
        default=False,
        description="Accept hour records whose work date is after today (UTC)",
    )
    money_decimal_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places used when presenting monetary amounts",
    )

    @model_validator(mode="after")
    def apply_environment_defaults(self) -> "Settings":
        if self.environment == Environment.DEVELOPMENT:
            self.debug = True
        if self.log_format is None:
            self.log_format = "json" if self.is_production else "console"
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings; get_settings.cache_clear() reloads them."""
    return Settings()
