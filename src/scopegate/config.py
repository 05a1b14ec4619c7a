"""Configuration contract for scopegate.

Pydantic-validated settings shared by the stores, the resolver and logging.
Direct os.environ/os.getenv usage is limited to ``load_config_from_env``;
everything else receives a ``ScopeGateConfig`` instance.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

_TRUTHY = ("true", "1", "yes", "on")

_DATABASE_SCHEMES = (
    "postgresql://",
    "postgresql+psycopg://",
    "postgresql+psycopg2://",
    "sqlite://",
    "sqlite+pysqlite://",
)


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ScopeGateConfig(BaseModel):
    """Settings for the access-resolution engine.

    ``location_first`` switches the resolver into the mode where principals
    holding only location grants must pick a location before any project is
    listed.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name attached to the package logger",
    )

    # Storage
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL for the relational store (None = in-memory only)",
    )
    default_page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Page size for assignment listings when the caller gives none",
    )

    # Resolution policy
    location_first: bool = Field(
        default=False,
        description="Require an explicit location before listing projects for location-level principals",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate database URL scheme."""
        if v is None:
            return v
        if not v.startswith(_DATABASE_SCHEMES):
            raise ValueError("Database URL must be a postgresql:// or sqlite:// SQLAlchemy URL")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


def load_config_from_env() -> ScopeGateConfig:
    """Load configuration from environment variables.

    Environment variables:
    - SCOPEGATE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - SCOPEGATE_LOG_JSON: Use JSON log format (true/false, default: false)
    - SCOPEGATE_SERVICE_NAME: Service name for logging
    - SCOPEGATE_DATABASE_URL: SQLAlchemy database URL
    - SCOPEGATE_DEFAULT_PAGE_SIZE: Assignment listing page size (1-100)
    - SCOPEGATE_LOCATION_FIRST: Enable location-first resolution (true/false)

    Returns:
        ScopeGateConfig instance with values from environment or defaults.
    """
    import os

    return ScopeGateConfig(
        log_level=os.getenv("SCOPEGATE_LOG_LEVEL", "INFO"),
        log_json=os.getenv("SCOPEGATE_LOG_JSON", "false").lower() in _TRUTHY,
        service_name=os.getenv("SCOPEGATE_SERVICE_NAME"),
        database_url=os.getenv("SCOPEGATE_DATABASE_URL"),
        default_page_size=int(os.getenv("SCOPEGATE_DEFAULT_PAGE_SIZE", "50")),
        location_first=os.getenv("SCOPEGATE_LOCATION_FIRST", "false").lower() in _TRUTHY,
    )


def build_engine(config: ScopeGateConfig) -> Engine:
    """Create the SQLAlchemy engine for ``config.database_url``.

    Raises:
        ConfigurationError: No database URL is configured.
    """
    from sqlalchemy import create_engine

    from .exceptions import ConfigurationError

    if not config.database_url:
        raise ConfigurationError("database_url is not configured")
    return create_engine(config.database_url, pool_pre_ping=True, future=True)


__all__ = [
    "LogLevel",
    "ScopeGateConfig",
    "build_engine",
    "load_config_from_env",
]
