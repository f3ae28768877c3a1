"""
Database configuration and schema management.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.config import PostgresConfig

logger = logging.getLogger("productdb.database")

# Create SQLAlchemy Base
Base = declarative_base()


def create_db_engine(config: PostgresConfig) -> Engine:
    """
    Create the pooled engine shared by all backend operations.

    Args:
        config: Postgres connection settings

    Returns:
        Engine with a pool of config.max_connections connections
    """
    logger.info(
        "Creating Postgres connection pool: host=%s port=%d dbname=%s size=%d",
        config.host,
        config.port,
        config.dbname,
        config.max_connections,
    )
    return create_engine(
        config.url(),
        echo=config.echo,
        pool_size=config.max_connections,
        max_overflow=0,
        pool_timeout=config.pool_timeout,
        pool_pre_ping=True,
        connect_args={"connect_timeout": config.connect_timeout},
        future=True,
    )


def init_database(engine: Engine) -> None:
    """Initialize database schema: extensions, tables, indices and cleanup triggers"""
    # Import models so they are registered on Base.metadata
    import domain.models.product  # noqa: F401

    with engine.begin() as conn:
        # pg_trgm provides similarity() used for similarity sorting
        conn.exec_driver_sql("CREATE EXTENSION IF NOT EXISTS pg_trgm;")
        logger.info("PostgreSQL extension 'pg_trgm' ensured")

        Base.metadata.create_all(bind=conn)
        logger.info("Database tables created successfully")
