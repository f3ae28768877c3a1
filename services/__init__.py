"""Services package - Business logic layer"""

from services.catalog_service import CatalogService

__all__ = ["CatalogService"]
