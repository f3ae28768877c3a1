"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment variables, .env files and an optional YAML config file.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from app.exceptions import ConfigError, ParsingConfigError

logger = logging.getLogger("productdb.config")


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class PostgresConfig(BaseModel):
    """Connection settings for the PostgreSQL store."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    user: str = Field(default="postgres", description="Database user")
    password: SecretStr = Field(
        default=SecretStr("postgres"), description="Database password"
    )
    dbname: str = Field(default="postgres", description="Database name")
    max_connections: int = Field(
        default=5, ge=1, description="Size of the connection pool"
    )
    pool_timeout: float = Field(
        default=30.0, gt=0, description="Seconds to wait for a pooled connection"
    )
    connect_timeout: int = Field(
        default=10, ge=1, description="Seconds to wait when opening a connection"
    )
    echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")

    def url(self) -> URL:
        """SQLAlchemy URL for the psycopg2 driver. Renders the password masked."""
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.dbname,
        )


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables (prefix PRODUCTDB_),
    a .env file, or a YAML file passed to load_settings().
    """

    app_name: str = Field(default="product-db", description="Application name")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )

    # Database
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    db_init_attempts: int = Field(
        default=8, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay between DB init attempts"
    )

    # Queries
    max_query_limit: int = Field(
        default=100, ge=1, le=200, description="Upper bound for page sizes"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    model_config = SettingsConfigDict(
        env_prefix="PRODUCTDB_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return level

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING

    def log_summary(self) -> None:
        """Log the effective configuration. The password stays masked."""
        pg = self.postgres
        logger.info("Configuration: app=%s env=%s", self.app_name, self.environment.value)
        logger.info(
            "Postgres: host=%s port=%d user=%s password=%s dbname=%s max_connections=%d",
            pg.host,
            pg.port,
            pg.user,
            pg.password,
            pg.dbname,
            pg.max_connections,
        )
        logger.info(
            "Queries: max_limit=%d, Logging: level=%s",
            self.max_query_limit,
            self.log_level,
        )


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load the settings, optionally from a YAML config file.

    Values from the YAML file take precedence over environment variables.

    Args:
        config_path: Path to a YAML configuration file

    Returns:
        Validated Settings instance

    Raises:
        ParsingConfigError: If the file cannot be read or is not valid YAML
        ConfigError: If the values do not pass validation
    """
    overrides = {}
    if config_path is not None:
        path = Path(config_path)
        try:
            with path.open("r", encoding="utf-8") as fh:
                overrides = yaml.safe_load(fh) or {}
        except OSError as e:
            raise ParsingConfigError(
                f"Cannot read config file '{path}': {e}", details={"path": str(path)}
            ) from e
        except yaml.YAMLError as e:
            raise ParsingConfigError(
                f"Failed parsing the config: {e}", details={"path": str(path)}
            ) from e

        if not isinstance(overrides, dict):
            raise ParsingConfigError(
                "Config file must contain a mapping at the top level",
                details={"path": str(path)},
            )

    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigError(
            "Invalid config",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
