"""Configuration management for the Lending Ledger.

Settings are loaded from the environment (``LENDING_LEDGER_`` prefix) or a
local ``.env`` file and validated with Pydantic v2:
1. Storage - where the ledger database lives
2. Logging - level and SQL echo for troubleshooting
"""

import logging
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LedgerConfig(BaseSettings):
    """Lending ledger configuration.

    Every field can be overridden with an environment variable, e.g.
    ``LENDING_LEDGER_DATABASE_PATH=/var/lib/ledger.db``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LENDING_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Storage ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; takes precedence over database_path",
    )

    echo_sql: bool = Field(
        default=False,
        description="Log every SQL statement emitted by the engine",
    )

    # === Development ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure the database directory exists.

        The ledger must be able to create its database file on first use.
        """
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)

        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")

        return abs_path

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug or self.log_level == "DEBUG"

    @property
    def effective_log_level(self) -> int:
        """Numeric level handed to the logging module."""
        if self.is_development:
            return logging.DEBUG
        return logging.getLevelName(self.log_level)

    def get_database_url(self) -> str:
        """Get the SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: LedgerConfig | None = None


def get_config() -> LedgerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = LedgerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]


def configure_logging(config: LedgerConfig | None = None) -> None:
    """Configure root logging for an application embedding the ledger.

    Logs go to stderr so stdout stays free for whatever front end drives
    the ledger.
    """
    config = config or get_config()

    logging.basicConfig(
        level=config.effective_log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(config.effective_log_level)

    # SQLAlchemy has its own logger hierarchy; keep it quiet unless asked
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if config.echo_sql else logging.WARNING
    )
