"""Pydantic schemas describing queries on products, requests and missing products."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.enums import SortingField, SortingOrder
from domain.schemas.product_schemas import ProductID


class MissingProductQuery(BaseModel):
    """Query on the reported missing products, always sorted by report date."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    limit: int = Field(..., ge=0)
    product_id: Optional[ProductID] = None
    order: SortingOrder = SortingOrder.ASCENDING


class SearchFilter(BaseModel):
    """
    Filter of a product query.

    At most one of the two fields may be set. Neither set means no filter.
    """

    model_config = ConfigDict(frozen=True)

    search: Optional[str] = None
    product_id: Optional[ProductID] = None

    @model_validator(mode="after")
    def check_single_filter(self) -> "SearchFilter":
        if self.search is not None and self.product_id is not None:
            raise ValueError("search and product_id filters are mutually exclusive")
        return self

    @classmethod
    def no_filter(cls) -> "SearchFilter":
        return cls()

    @classmethod
    def by_search(cls, search: str) -> "SearchFilter":
        return cls(search=search)

    @classmethod
    def by_product_id(cls, product_id: ProductID) -> "SearchFilter":
        return cls(product_id=product_id)

    def search_term(self) -> Optional[str]:
        """Lower-cased search string or None if this is not a search filter."""
        if self.search is None:
            return None
        return self.search.lower()


class Sorting(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: SortingField
    order: SortingOrder = SortingOrder.ASCENDING


class ProductQuery(BaseModel):
    """Query on catalog products or product requests."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(default=0, ge=0)
    limit: int = Field(..., ge=0)
    filter: SearchFilter = Field(default_factory=SearchFilter)
    sorting: Optional[Sorting] = None
