"""
Postgres Backend - DataBackend implementation on a pooled SQLAlchemy engine.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from psycopg2 import errorcodes
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql.base import Executable

from app.config import Settings
from app.exceptions import DBError
from domain.mappers.product_mapper import ProductMapper
from domain.models.database import create_db_engine
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
from repositories.query_builder import QueryBuilder

logger = logging.getLogger("productdb.postgres")


@contextmanager
def _db_errors(action: str) -> Iterator[None]:
    """Translate driver and pool errors into DBError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Failed to %s: %s", action, e)
        raise DBError(f"Failed to {action}: {e}") from e


def _is_unique_violation(error: IntegrityError) -> bool:
    return getattr(error.orig, "pgcode", None) == errorcodes.UNIQUE_VIOLATION


class PostgresBackend(DataBackend):
    """
    Postgres based implementation of the data backend.

    The backend only holds the engine (and thereby the connection pool), so a
    single instance can serve all callers. Each operation borrows a pooled
    connection for its duration. Writes of product descriptions span several
    tables and run in one transaction.
    """

    def __init__(self, engine: Engine, query_builder: Optional[QueryBuilder] = None):
        self.engine = engine
        self.queries = query_builder or QueryBuilder()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgresBackend":
        """Create the backend with its own connection pool from the settings."""
        engine = create_db_engine(settings.postgres)
        return cls(engine, QueryBuilder(settings.max_query_limit))

    def close(self) -> None:
        """Close all pooled connections"""
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def _fetch_optional(self, stmt: Executable, action: str) -> Optional[Row]:
        with _db_errors(action), self.engine.connect() as conn:
            return conn.execute(stmt).first()

    def _fetch_all(self, stmt: Executable, action: str) -> List[Row]:
        with _db_errors(action), self.engine.connect() as conn:
            return list(conn.execute(stmt).all())

    def _execute_write(self, stmt: Executable, action: str) -> None:
        with _db_errors(action), self.engine.begin() as conn:
            conn.execute(stmt)

    # ------------------------------------------------------------------
    # Missing products
    # ------------------------------------------------------------------

    def report_missing_product(self, missing_product: MissingProduct) -> DBId:
        logger.info(
            "Report missing product with id: %s with timestamp %s",
            missing_product.product_id,
            missing_product.date,
        )

        stmt = self.queries.insert_missing_product(missing_product)
        with _db_errors("report missing product"), self.engine.begin() as conn:
            db_id = conn.execute(stmt).scalar_one()

        logger.info(
            "Reported missing product with id: %s as %d",
            missing_product.product_id,
            db_id,
        )
        return db_id

    def get_missing_product(self, id: DBId) -> Optional[MissingProduct]:
        logger.debug("Get missing product with id: %d", id)

        row = self._fetch_optional(
            self.queries.get_missing_product(id), "get missing product"
        )
        if row is None:
            logger.debug("No missing product with id: %d", id)
            return None

        _, missing_product = ProductMapper.missing_product_from_row(row)
        return missing_product

    def query_missing_products(
        self, query: MissingProductQuery
    ) -> List[Tuple[DBId, MissingProduct]]:
        logger.debug("Query missing products: %s", query)

        rows = self._fetch_all(
            self.queries.query_missing_products(query), "query missing products"
        )
        return [ProductMapper.missing_product_from_row(row) for row in rows]

    def delete_reported_missing_product(self, id: DBId) -> None:
        logger.info("Delete reported missing product with id: %d", id)

        self._execute_write(
            self.queries.delete_missing_product(id), "delete reported missing product"
        )

        logger.info("Deleted reported missing product with id: %d", id)

    # ------------------------------------------------------------------
    # Product requests
    # ------------------------------------------------------------------

    def request_new_product(self, product_request: ProductRequest) -> DBId:
        description = product_request.product_description
        logger.info("Request new product with name: %s", description.info.name)

        with _db_errors("request new product"), self.engine.begin() as conn:
            description_id = self._create_product_description(conn, description)
            db_id = conn.execute(
                self.queries.insert_request(description_id, product_request.date)
            ).scalar_one()

        logger.info(
            "Requested new product with name: %s as %d", description.info.name, db_id
        )
        return db_id

    def get_product_request(
        self, id: DBId, with_preview: bool
    ) -> Optional[ProductRequest]:
        logger.debug("Get product request with id: %d [Preview=%s]", id, with_preview)

        row = self._fetch_optional(
            self.queries.get_request(id, with_preview), "get product request"
        )
        if row is None:
            logger.debug("No product request with id: %d", id)
            return None

        _, request = ProductMapper.request_from_row(row, with_preview)
        return request

    def get_product_request_image(self, id: DBId) -> Optional[ProductImage]:
        logger.debug("Get product image for product request id: %d", id)

        row = self._fetch_optional(
            self.queries.get_request_image(id), f"get image of product request {id}"
        )
        if row is None:
            logger.debug("No image for product request with id: %d", id)
            return None
        return ProductMapper.image_from_row(row)

    def query_product_requests(
        self, query: ProductQuery, with_preview: bool
    ) -> List[Tuple[DBId, ProductRequest]]:
        logger.debug("Query product requests: %s [Preview=%s]", query, with_preview)

        # Building the statement validates the sorting before any round trip
        stmt = self.queries.query_requests(query, with_preview)
        rows = self._fetch_all(stmt, "query product requests")
        return [ProductMapper.request_from_row(row, with_preview) for row in rows]

    def delete_requested_product(self, id: DBId) -> None:
        logger.info("Delete requested product with id: %d", id)

        self._execute_write(
            self.queries.delete_request(id), "delete requested product"
        )

        logger.info("Deleted requested product with id: %d", id)

    # ------------------------------------------------------------------
    # Catalog products
    # ------------------------------------------------------------------

    def new_product(self, product_description: ProductDescription) -> bool:
        product_id = product_description.info.id
        logger.info("New product with id: %s", product_id)

        try:
            with self.engine.begin() as conn:
                description_id = self._create_product_description(
                    conn, product_description
                )
                conn.execute(self.queries.insert_product(description_id, product_id))
        except IntegrityError as e:
            if not _is_unique_violation(e):
                logger.error("Failed to add product with id %s: %s", product_id, e)
                raise DBError(f"Failed to add product {product_id}: {e}") from e
            # The rollback discarded the description, nutrients and image rows
            logger.info(
                "Product with id %s already exists in the database", product_id
            )
            return False
        except SQLAlchemyError as e:
            logger.error("Failed to add product with id %s: %s", product_id, e)
            raise DBError(f"Failed to add product {product_id}: {e}") from e

        logger.info("New product %s added", product_id)
        return True

    def get_product(
        self, product_id: ProductID, with_preview: bool
    ) -> Optional[ProductDescription]:
        logger.debug("Get product with id: %s [Preview=%s]", product_id, with_preview)

        row = self._fetch_optional(
            self.queries.get_product(product_id, with_preview),
            f"get product {product_id}",
        )
        if row is None:
            logger.debug("No product with id: %s", product_id)
            return None
        return ProductMapper.description_from_row(row, with_preview)

    def get_product_image(self, product_id: ProductID) -> Optional[ProductImage]:
        logger.debug("Get product image for product id: %s", product_id)

        row = self._fetch_optional(
            self.queries.get_product_image(product_id),
            f"get image of product {product_id}",
        )
        if row is None:
            logger.debug("No product image with id: %s", product_id)
            return None
        return ProductMapper.image_from_row(row)

    def query_products(
        self, query: ProductQuery, with_preview: bool
    ) -> List[ProductDescription]:
        logger.debug("Query products: %s [Preview=%s]", query, with_preview)

        stmt = self.queries.query_products(query, with_preview)
        rows = self._fetch_all(stmt, "query products")
        return [ProductMapper.description_from_row(row, with_preview) for row in rows]

    def delete_product(self, product_id: ProductID) -> None:
        logger.info("Delete product with id: %s", product_id)

        self._execute_write(self.queries.delete_product(product_id), "delete product")

        logger.info("Deleted product with id: %s", product_id)

    # ------------------------------------------------------------------
    # Composite write
    # ------------------------------------------------------------------

    def _create_image_entry(
        self, conn: Connection, image: Optional[ProductImage]
    ) -> Optional[DBId]:
        if image is None:
            logger.debug("No image available for product")
            return None

        logger.debug(
            "Create new entry for image: Size=%d, content-type=%s",
            len(image.data),
            image.content_type,
        )
        db_id = conn.execute(
            self.queries.insert_image(ProductMapper.image_params(image))
        ).scalar_one()
        logger.debug("Create new entry for image DONE: Id=%d", db_id)
        return db_id

    def _create_product_description(
        self, conn: Connection, description: ProductDescription
    ) -> DBId:
        """
        Insert nutrients, images and the description row on conn.

        Returns:
            Internal id of the product_description row
        """
        info = description.info
        logger.debug(
            "Create new product description: id=%s, name=%s", info.id, info.name
        )

        nutrients_id = conn.execute(
            self.queries.insert_nutrients(
                ProductMapper.nutrients_to_params(description.nutrients)
            )
        ).scalar_one()
        preview_id = self._create_image_entry(conn, description.preview)
        photo_id = self._create_image_entry(conn, description.full_image)

        db_id = conn.execute(
            self.queries.insert_description(
                ProductMapper.description_params(
                    description, nutrients_id, preview_id, photo_id
                )
            )
        ).scalar_one()

        logger.debug(
            "Create new product description: id=%s, name=%s, DB-Id=%d DONE",
            info.id,
            info.name,
            db_id,
        )
        return db_id
