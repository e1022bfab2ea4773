from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, blank_to_none

class Settings(BaseSettings):
    """
    Settings loaded from the environment (or a .env file in the working directory).
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database connection (SQLAlchemy URL, e.g. "mysql+aiomysql://db.local/shop")
    DATABASE_DSN: str | None = None
    DATABASE_USERNAME: str | None = None
    DATABASE_PASSWORD: str | None = None

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("logs")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before the Literal check, so that
        LOG_LEVEL=debug is accepted.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    @field_validator("DATABASE_DSN", "DATABASE_USERNAME", "DATABASE_PASSWORD", mode="before")
    def empty_means_unset(cls, v: str | None) -> str | None:
        return blank_to_none(v)

    # --- ConfigDict settings ---
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

# Cached: every caller shares one Settings read from the environment.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
