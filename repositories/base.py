"""
Backend port for the product database.
Every consumer depends on DataBackend; the concrete store is injected.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from domain.schemas.product_schemas import (
    DBId,
    MissingProduct,
    ProductDescription,
    ProductID,
    ProductImage,
    ProductRequest,
)
from domain.schemas.query_schemas import MissingProductQuery, ProductQuery


class DataBackend(ABC):
    """
    Storage operations for missing-product reports, product requests and
    catalog products.

    Implementations hold no per-call state and may be shared between callers.
    Lookups of unknown ids return None; deletes of unknown ids are no-ops.
    """

    # ------------------------------------------------------------------
    # Missing products
    # ------------------------------------------------------------------

    @abstractmethod
    def report_missing_product(self, missing_product: MissingProduct) -> DBId:
        """
        Report a missing product.

        Args:
            missing_product: The product id and the date of the report

        Returns:
            Internal id of the report
        """

    @abstractmethod
    def get_missing_product(self, id: DBId) -> Optional[MissingProduct]:
        """Get a missing product report by its internal id"""

    @abstractmethod
    def query_missing_products(
        self, query: MissingProductQuery
    ) -> List[Tuple[DBId, MissingProduct]]:
        """Query missing product reports sorted by report date"""

    @abstractmethod
    def delete_reported_missing_product(self, id: DBId) -> None:
        """Delete a missing product report. Unknown ids are ignored."""

    # ------------------------------------------------------------------
    # Product requests
    # ------------------------------------------------------------------

    @abstractmethod
    def request_new_product(self, product_request: ProductRequest) -> DBId:
        """
        Store a request to add a product to the catalog.

        Args:
            product_request: Product description, including images, and request date

        Returns:
            Internal id of the request
        """

    @abstractmethod
    def get_product_request(
        self, id: DBId, with_preview: bool
    ) -> Optional[ProductRequest]:
        """
        Get a product request by its internal id.

        Args:
            id: Internal id of the request
            with_preview: Whether to load the preview image

        Returns:
            The request without full image, or None if the id is unknown
        """

    @abstractmethod
    def get_product_request_image(self, id: DBId) -> Optional[ProductImage]:
        """Get the full image of a product request"""

    @abstractmethod
    def query_product_requests(
        self, query: ProductQuery, with_preview: bool
    ) -> List[Tuple[DBId, ProductRequest]]:
        """
        Query product requests.

        Raises:
            InvalidSortingError: If the sorting does not apply to the query
        """

    @abstractmethod
    def delete_requested_product(self, id: DBId) -> None:
        """Delete a product request. Unknown ids are ignored."""

    # ------------------------------------------------------------------
    # Catalog products
    # ------------------------------------------------------------------

    @abstractmethod
    def new_product(self, product_description: ProductDescription) -> bool:
        """
        Add a product to the catalog.

        Returns:
            True if the product was added, False if a product with the same
            product id already exists
        """

    @abstractmethod
    def get_product(
        self, product_id: ProductID, with_preview: bool
    ) -> Optional[ProductDescription]:
        """Get a catalog product by its product id"""

    @abstractmethod
    def get_product_image(self, product_id: ProductID) -> Optional[ProductImage]:
        """Get the full image of a catalog product"""

    @abstractmethod
    def query_products(
        self, query: ProductQuery, with_preview: bool
    ) -> List[ProductDescription]:
        """
        Query catalog products.

        Raises:
            InvalidSortingError: If the sorting does not apply to the query
        """

    @abstractmethod
    def delete_product(self, product_id: ProductID) -> None:
        """Delete a catalog product. Unknown product ids are ignored."""
