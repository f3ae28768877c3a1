"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    create_db_engine,
    init_database,
)
from domain.models.product import (
    NutrientsRecord,
    ProductImageRecord,
    ProductDescriptionRecord,
    ProductRecord,
    RequestedProductRecord,
    MissingProductRecord,
)

__all__ = [
    # Database
    "Base",
    "create_db_engine",
    "init_database",
    # Product models
    "NutrientsRecord",
    "ProductImageRecord",
    "ProductDescriptionRecord",
    "ProductRecord",
    "RequestedProductRecord",
    "MissingProductRecord",
]
