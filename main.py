"""
Product DB bootstrap.
Loads the configuration, sets up logging, connects to PostgreSQL and
initializes the schema before handing out the backend.
"""

import argparse
import logging
import time
from pathlib import Path
from typing import Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings, load_settings
from app.logging_setup import configure_logging
from domain.models import init_database
from repositories.postgres_backend import PostgresBackend

_logger = logging.getLogger("productdb.main")


def initialize_schema(backend: PostgresBackend, settings: Settings) -> None:
    """
    Initialize the schema, retrying while the database is not reachable yet.

    Raises:
        SQLAlchemyError: If the last attempt fails
    """
    for attempt in range(1, settings.db_init_attempts + 1):
        try:
            init_database(backend.engine)
            _logger.info("Database initialization succeeded")
            return
        except SQLAlchemyError as exc:
            _logger.warning(
                "Database init attempt %d/%d failed: %s",
                attempt,
                settings.db_init_attempts,
                exc,
            )
            if attempt < settings.db_init_attempts:
                time.sleep(settings.db_init_delay_sec)
            else:
                _logger.error(
                    "Database initialization failed after %d attempts", attempt
                )
                raise


def bootstrap(config_path: Optional[Union[str, Path]] = None) -> PostgresBackend:
    """Build a ready to use Postgres backend from the configuration."""
    settings = load_settings(config_path)
    configure_logging(settings)

    _logger.info("Starting %s in %s mode", settings.app_name, settings.environment.value)
    settings.log_summary()

    backend = PostgresBackend.from_settings(settings)
    try:
        initialize_schema(backend, settings)
    except SQLAlchemyError:
        backend.close()
        raise
    return backend


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Initialize the product database schema"
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="Path to a YAML config file"
    )
    args = parser.parse_args(argv)

    backend = bootstrap(args.config)
    backend.close()
    _logger.info("Shutting down")


if __name__ == "__main__":
    main()
