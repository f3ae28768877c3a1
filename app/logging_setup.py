"""
Process logging setup.
"""

import logging

from app.config import Settings

_SQLALCHEMY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def configure_logging(settings: Settings) -> None:
    """Configure root logging from the settings' level and format.

    SQL statement logging is only enabled at DEBUG level.
    """
    level = getattr(logging, settings.log_level.upper())
    logging.basicConfig(level=level, format=settings.log_format, force=True)

    sql_level = logging.INFO if level <= logging.DEBUG else logging.WARNING
    for name in _SQLALCHEMY_LOGGERS:
        logging.getLogger(name).setLevel(sql_level)
