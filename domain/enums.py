"""
Domain enums for the product database.
Contains all enumeration types used across the domain models and queries.
"""

import enum


class QuantityType(str, enum.Enum):
    """Quantity in which portion and nutrients of a product are expressed"""

    WEIGHT = "weight"
    VOLUME = "volume"


class SortingOrder(str, enum.Enum):
    """Sorting order for query results"""

    ASCENDING = "asc"
    DESCENDING = "desc"


class SortingField(str, enum.Enum):
    """Fields query results can be sorted by"""

    REPORTED_DATE = "reported_date"
    NAME = "product_name"
    PRODUCT_ID = "product_id"
    SIMILARITY = "similarity"
