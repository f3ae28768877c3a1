"""
Domain schemas package - Pydantic models for entities and queries.
"""

from domain.schemas.product_schemas import (
    ProductID,
    DBId,
    Weight,
    Volume,
    Nutrients,
    ProductImage,
    ProductInfo,
    ProductDescription,
    ProductRequest,
    MissingProduct,
)
from domain.schemas.query_schemas import (
    MissingProductQuery,
    SearchFilter,
    Sorting,
    ProductQuery,
)

__all__ = [
    # Product schemas
    "ProductID",
    "DBId",
    "Weight",
    "Volume",
    "Nutrients",
    "ProductImage",
    "ProductInfo",
    "ProductDescription",
    "ProductRequest",
    "MissingProduct",
    # Query schemas
    "MissingProductQuery",
    "SearchFilter",
    "Sorting",
    "ProductQuery",
]
