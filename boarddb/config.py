"""Configuration management for BoardDB.

This module provides centralized configuration using Pydantic Settings,
read from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, SQL echo allowed, safe defaults
    - PRODUCTION: JSON logging, no SQL echo, optimized for stability
    - TESTING: In-memory database, minimal logging, fast password hashing

Example:
    >>> from boarddb.config import settings, Environment
    >>> print(settings.database_url)
    sqlite:////.../data/board.db
    >>> if settings.is_production:
    ...     print("Running in production mode")
"""

from enum import StrEnum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PostSort(StrEnum):
    """Sorting options for post listings."""

    LATEST = "LATEST"
    LIKES = "LIKES"
    VIEWS = "VIEWS"


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles.

    Attributes:
        DEVELOPMENT: Verbose logging, human-readable output
        PRODUCTION: Structured logging, conservative settings
        TESTING: In-memory database, minimal logging, fast execution
        STAGING: Pre-production validation environment
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Runtime profile
        data_dir: Base directory for the database file and logs
        database_path: Path to SQLite database file
        database_url_override: Full SQLAlchemy URL, takes precedence over database_path
        sql_echo: Echo emitted SQL through the engine logger
        default_page_size: Page size used when a listing does not specify one
        max_page_size: Upper bound for requested page sizes
        bcrypt_rounds: Work factor for password hashing
        log_level: Minimum log level
        log_to_file: Also write logs to data_dir/boarddb.log
        log_json: Emit JSON log lines
        metrics_enabled: Record Prometheus metrics
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Runtime environment (development, production, testing, staging)",
    )

    # Data Directory Configuration
    data_dir: Path = Field(
        Path("./data"),
        description="Base directory for all data files (database, logs)",
    )

    # Database Configuration
    database_path: Path = Field(
        Path("board.db"),  # Will be updated to data_dir/board.db by validator
        description="Path to SQLite database file (defaults to data_dir/board.db)",
    )
    database_url_override: Optional[str] = Field(
        None,
        alias="DATABASE_URL",
        description="SQLAlchemy database URL (overrides database_path)",
    )
    sql_echo: bool = Field(
        default=False,
        description="Log every SQL statement emitted by the engine",
    )

    # Listing Parameters
    default_page_size: int = Field(
        10,
        ge=1,
        le=100,
        description="Default number of posts per page",
    )
    max_page_size: int = Field(
        100,
        ge=1,
        le=500,
        description="Maximum number of posts per page",
    )

    # Security
    bcrypt_rounds: int = Field(
        12,
        ge=4,
        le=31,
        description="bcrypt work factor for password hashes",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=True,
        description="Enable file logging in addition to console",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (recommended for production)",
    )

    # Observability
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for board actions",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand and resolve data directory path."""
        path = Path(v).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case and validate the log level name."""
        level = str(v).upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def set_database_path_default(self) -> "Settings":
        """Set database_path to data_dir/board.db if not explicitly provided."""
        if self.database_path == Path("board.db"):
            self.database_path = self.data_dir / "board.db"
        return self

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific defaults.

        Profiles:
            - PRODUCTION: INFO logging at least, JSON logs, no SQL echo
            - DEVELOPMENT: DEBUG logging, human-readable logs
            - TESTING: In-memory database, ERROR logging, no file logging,
              minimum bcrypt work factor
            - STAGING: Production-like but with INFO logging

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            if self.log_level in ("TRACE", "DEBUG"):
                self.log_level = "INFO"
            self.log_json = True
            self.sql_echo = False

        elif self.environment == Environment.DEVELOPMENT:
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.database_path = Path(":memory:")
            self.log_level = "ERROR"
            self.log_to_file = False
            self.log_json = False
            self.sql_echo = False
            self.bcrypt_rounds = 4

        elif self.environment == Environment.STAGING:
            self.log_level = "INFO"
            self.log_json = True

        if self.default_page_size > self.max_page_size:
            self.default_page_size = self.max_page_size

        return self

    @property
    def database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        if self.database_url_override:
            return self.database_url_override
        if str(self.database_path) == ":memory:":
            return "sqlite://"
        return f"sqlite:///{self.database_path}"

    @property
    def log_file(self) -> Optional[Path]:
        """Get log file path, or None when file logging is disabled."""
        return self.data_dir / "boarddb.log" if self.log_to_file else None

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @property
    def is_staging(self) -> bool:
        """Check if running in staging environment."""
        return self.environment == Environment.STAGING


def get_settings() -> Settings:
    """Get settings instance built from the environment.

    Returns:
        Configured Settings instance
    """
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
