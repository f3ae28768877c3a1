from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from app.exceptions import NotFoundError
from domain.schemas.product_schemas import (
    DBId,
    MissingProduct,
    ProductDescription,
    ProductID,
    ProductImage,
    ProductRequest,
)
from domain.schemas.query_schemas import MissingProductQuery, ProductQuery
from repositories.base import DataBackend

logger = logging.getLogger("productdb.service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """
    Workflows of the product catalog on top of a data backend.

    Users report products they could not find and submit descriptions of new
    products; curators approve requests, which moves them into the catalog.
    """

    def __init__(self, backend: DataBackend):
        self.backend = backend

    # Missing products

    def report_missing(
        self, product_id: ProductID, now: Optional[datetime] = None
    ) -> Tuple[DBId, datetime]:
        """
        Report that a product id could not be found.

        Args:
            product_id: The product id that was looked up
            now: Report date, defaults to the current time

        Returns:
            Tuple of the report id and the stored report date
        """
        missing_product = MissingProduct(product_id=product_id, date=now or _utcnow())
        db_id = self.backend.report_missing_product(missing_product)
        return db_id, missing_product.date

    def list_missing(
        self, query: MissingProductQuery
    ) -> List[Tuple[DBId, MissingProduct]]:
        return self.backend.query_missing_products(query)

    def dismiss_missing(self, id: DBId) -> None:
        self.backend.delete_reported_missing_product(id)

    # Product requests

    def submit_request(
        self, description: ProductDescription, now: Optional[datetime] = None
    ) -> Tuple[DBId, datetime]:
        """
        Store a request to add a new product to the catalog.

        Returns:
            Tuple of the request id and the stored request date
        """
        request = ProductRequest(product_description=description, date=now or _utcnow())
        db_id = self.backend.request_new_product(request)
        logger.debug(
            "Submitted request %d for product %s", db_id, description.product_id
        )
        return db_id, request.date

    def get_request(
        self, request_id: DBId, with_preview: bool = False
    ) -> Optional[ProductRequest]:
        return self.backend.get_product_request(request_id, with_preview)

    def get_request_image(self, request_id: DBId) -> Optional[ProductImage]:
        return self.backend.get_product_request_image(request_id)

    def list_requests(
        self, query: ProductQuery, with_preview: bool = False
    ) -> List[Tuple[DBId, ProductRequest]]:
        return self.backend.query_product_requests(query, with_preview)

    def reject_request(self, request_id: DBId) -> None:
        self.backend.delete_requested_product(request_id)

    def approve_request(self, request_id: DBId) -> bool:
        """
        Move a product request into the catalog.

        The request is deleted once the product is stored. If the catalog
        already holds a product with the same id the request is kept.

        Returns:
            True if the product was added, False if the product id exists

        Raises:
            NotFoundError: If there is no request with the given id
        """
        request = self.backend.get_product_request(request_id, with_preview=True)
        if request is None:
            raise NotFoundError(
                f"Product request {request_id} not found",
                details={"request_id": request_id},
            )

        full_image = self.backend.get_product_request_image(request_id)
        description = request.product_description.model_copy(
            update={"full_image": full_image}
        )

        if not self.backend.new_product(description):
            logger.info(
                "Request %d not approved, product %s already exists",
                request_id,
                description.product_id,
            )
            return False

        self.backend.delete_requested_product(request_id)
        logger.info(
            "Approved request %d as product %s", request_id, description.product_id
        )
        return True

    # Catalog products

    def get_product(
        self, product_id: ProductID, with_preview: bool = False
    ) -> Optional[ProductDescription]:
        return self.backend.get_product(product_id, with_preview)

    def get_product_image(self, product_id: ProductID) -> Optional[ProductImage]:
        return self.backend.get_product_image(product_id)

    def search_products(
        self, query: ProductQuery, with_preview: bool = False
    ) -> List[ProductDescription]:
        return self.backend.query_products(query, with_preview)

    def remove_product(self, product_id: ProductID) -> None:
        self.backend.delete_product(product_id)
