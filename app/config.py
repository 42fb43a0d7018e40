"""Application configuration via pydantic-settings.

Loads all settings from environment variables (or .env file).
See .env.example for documented variable names and defaults.

Numeric variables that do not parse as finite numbers fall back to their
defaults instead of aborting startup.
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Inclusive bounds for numeric settings; anything outside uses the default.
_NUMERIC_RANGES: dict[str, tuple[float, float]] = {
    "port": (1, 65535),
    "db_port": (1, 65535),
    "db_pool_size": (1, math.inf),
    "db_queue_limit": (0, math.inf),
    "db_pool_timeout": (0.001, math.inf),
    "client_timeout": (0.001, math.inf),
}


class Settings(BaseSettings):
    """Central configuration for the Stackpulse backend and client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # --- Server ---
    port: int = 3000
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "environment"),
    )
    api_prefix: str = "/api"

    # --- Database ---
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "app_user"
    db_password: str = "app_password"
    db_name: str = "app_db"
    db_pool_size: int = 10
    db_queue_limit: int = 50  # 0 = unbounded
    db_pool_timeout: float = 10.0

    # --- Client ---
    api_base_url: str = Field(
        default="http://localhost:3000/api",
        validation_alias=AliasChoices("VITE_API_BASE_URL", "api_base_url"),
    )
    client_timeout: float = 10.0

    # --- Application ---
    log_level: str = "INFO"

    @field_validator(
        "port",
        "db_port",
        "db_pool_size",
        "db_queue_limit",
        "db_pool_timeout",
        "client_timeout",
        mode="before",
    )
    @classmethod
    def _number_or_default(cls, value: Any, info: ValidationInfo) -> Any:
        """Replace unparseable or out-of-range numbers with the field default."""
        default = cls.model_fields[info.field_name].default
        low, high = _NUMERIC_RANGES[info.field_name]
        try:
            parsed = math.nan if isinstance(value, bool) else float(value)
        except (TypeError, ValueError):
            parsed = math.nan

        valid = math.isfinite(parsed) and low <= parsed <= high
        if isinstance(default, int):
            valid = valid and parsed.is_integer()
        if not valid:
            logger.warning(
                "Invalid numeric setting %s=%r, using default %r",
                info.field_name,
                value,
                default,
            )
            return default
        return int(parsed) if isinstance(default, int) else parsed

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def database_url(self) -> URL:
        """SQLAlchemy URL for the async MySQL driver."""
        return URL.create(
            "mysql+aiomysql",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton."""
    return Settings()


def configure_logging(level: str) -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
