"""
Domain mappers package.
Transforms relational rows into domain entities and back.
"""

from domain.mappers.product_mapper import ProductMapper, NUTRIENT_COLUMNS

__all__ = ["ProductMapper", "NUTRIENT_COLUMNS"]
