"""
Domain layer - product entities, queries, relational models and mappers.
"""

from domain import enums, mappers, models, schemas

__all__ = ["enums", "mappers", "models", "schemas"]
