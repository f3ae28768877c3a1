"""
App package - Application configuration and core utilities.
Contains settings, exceptions, and logging setup.
"""

from app.config import Settings, PostgresConfig, load_settings
from app.exceptions import (
    ProductDBError,
    ConfigError,
    ParsingConfigError,
    SerializationError,
    InvalidSortingError,
    DBError,
    InternalError,
    NotFoundError,
)

__all__ = [
    "Settings",
    "PostgresConfig",
    "load_settings",
    "ProductDBError",
    "ConfigError",
    "ParsingConfigError",
    "SerializationError",
    "InvalidSortingError",
    "DBError",
    "InternalError",
    "NotFoundError",
]
