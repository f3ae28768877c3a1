"""
Query builder - assembles the parameterized statements used by the Postgres backend.

All caller supplied values end up as bound parameters. Sorting only ever uses
column expressions from a fixed allow-list, never caller supplied text.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    ColumnElement,
    Delete,
    FromClause,
    Insert,
    Select,
    delete,
    func,
    insert,
    select,
)

from app.exceptions import InvalidSortingError
from domain.enums import SortingField, SortingOrder
from domain.mappers.product_mapper import NUTRIENT_COLUMNS
from domain.models.product import (
    MissingProductRecord,
    NutrientsRecord,
    ProductDescriptionRecord,
    ProductImageRecord,
    ProductRecord,
    RequestedProductRecord,
)
from domain.schemas.product_schemas import DBId, MissingProduct, ProductID
from domain.schemas.query_schemas import MissingProductQuery, ProductQuery, Sorting

# Hard ceiling for page sizes, independent of configuration.
MAX_LIMIT = 200
DEFAULT_LIMIT = 100

nutrients_table = NutrientsRecord.__table__
image_table = ProductImageRecord.__table__
description_table = ProductDescriptionRecord.__table__
products_table = ProductRecord.__table__
requests_table = RequestedProductRecord.__table__
missing_table = MissingProductRecord.__table__

_SORT_COLUMNS: Dict[SortingField, ColumnElement] = {
    SortingField.NAME: description_table.c.name,
    SortingField.PRODUCT_ID: description_table.c.product_id,
}


def _description_columns(with_preview: bool) -> List[ColumnElement]:
    """Projection of a product description, with or without the preview image."""
    columns: List[ColumnElement] = [
        description_table.c.product_id,
        description_table.c.name,
        description_table.c.producer,
        description_table.c.quantity_type,
        description_table.c.portion,
        description_table.c.volume_weight_ratio,
        nutrients_table.c.kcal,
    ]
    columns.extend(nutrients_table.c[column] for column, _, _ in NUTRIENT_COLUMNS)
    if with_preview:
        columns.append(image_table.c.data.label("preview"))
        columns.append(image_table.c.content_type.label("preview_content_type"))
    return columns


def _join_description(source: FromClause, with_preview: bool) -> FromClause:
    joined = source.join(
        description_table,
        source.c.product_description_id == description_table.c.id,
    ).join(nutrients_table, description_table.c.nutrients == nutrients_table.c.id)
    if with_preview:
        joined = joined.outerjoin(
            image_table, description_table.c.preview == image_table.c.id
        )
    return joined


def check_sorting(
    sorting: Sorting, has_search_term: bool, has_reported_date: bool
) -> None:
    """
    Validate that the sorting field applies to a query.

    Raises:
        InvalidSortingError: If similarity sorting lacks a search term or the
            queried entity has no reported date
    """
    if sorting.field == SortingField.SIMILARITY and not has_search_term:
        raise InvalidSortingError(sorting.field, details={"reason": "requires a search term"})
    if sorting.field == SortingField.REPORTED_DATE and not has_reported_date:
        raise InvalidSortingError(sorting.field, details={"reason": "no reported date"})


def _direction(expr: ColumnElement, order: SortingOrder) -> ColumnElement:
    return expr.asc() if order == SortingOrder.ASCENDING else expr.desc()


class QueryBuilder:
    """Builds the statements of the Postgres backend.

    Args:
        max_limit: Page size ceiling applied to client supplied limits, capped
            at MAX_LIMIT
    """

    def __init__(self, max_limit: int = DEFAULT_LIMIT):
        self.max_limit = min(max_limit, MAX_LIMIT)

    def clamp_limit(self, limit: int) -> int:
        return max(0, min(limit, self.max_limit))

    # ------------------------------------------------------------------
    # Missing products
    # ------------------------------------------------------------------

    def insert_missing_product(self, missing_product: MissingProduct) -> Insert:
        return (
            insert(missing_table)
            .values(product_id=missing_product.product_id, date=missing_product.date)
            .returning(missing_table.c.id)
        )

    def get_missing_product(self, id: DBId) -> Select:
        return select(
            missing_table.c.id, missing_table.c.product_id, missing_table.c.date
        ).where(missing_table.c.id == id)

    def query_missing_products(self, query: MissingProductQuery) -> Select:
        stmt = select(
            missing_table.c.id, missing_table.c.product_id, missing_table.c.date
        )
        if query.product_id is not None:
            stmt = stmt.where(missing_table.c.product_id == query.product_id)
        return (
            stmt.order_by(_direction(missing_table.c.date, query.order))
            .offset(query.offset)
            .limit(self.clamp_limit(query.limit))
        )

    def delete_missing_product(self, id: DBId) -> Delete:
        return delete(missing_table).where(missing_table.c.id == id)

    # ------------------------------------------------------------------
    # Composite write parts
    # ------------------------------------------------------------------

    def insert_nutrients(self, params: Dict[str, Any]) -> Insert:
        return insert(nutrients_table).values(**params).returning(nutrients_table.c.id)

    def insert_image(self, params: Dict[str, Any]) -> Insert:
        return insert(image_table).values(**params).returning(image_table.c.id)

    def insert_description(self, params: Dict[str, Any]) -> Insert:
        return (
            insert(description_table)
            .values(**params)
            .returning(description_table.c.id)
        )

    def delete_description(self, id: DBId) -> Delete:
        return delete(description_table).where(description_table.c.id == id)

    # ------------------------------------------------------------------
    # Product requests
    # ------------------------------------------------------------------

    def insert_request(self, description_id: DBId, date: datetime) -> Insert:
        return (
            insert(requests_table)
            .values(product_description_id=description_id, date=date)
            .returning(requests_table.c.id)
        )

    def _select_requests(self, with_preview: bool) -> Select:
        return select(
            requests_table.c.id,
            requests_table.c.date,
            *_description_columns(with_preview),
        ).select_from(_join_description(requests_table, with_preview))

    def get_request(self, id: DBId, with_preview: bool) -> Select:
        return self._select_requests(with_preview).where(requests_table.c.id == id)

    def get_request_image(self, id: DBId) -> Select:
        return (
            select(image_table.c.data, image_table.c.content_type)
            .select_from(
                requests_table.join(
                    description_table,
                    requests_table.c.product_description_id == description_table.c.id,
                ).join(image_table, description_table.c.photo == image_table.c.id)
            )
            .where(requests_table.c.id == id)
        )

    def query_requests(self, query: ProductQuery, with_preview: bool) -> Select:
        return self._apply_product_query(
            self._select_requests(with_preview),
            query,
            key_column=description_table.c.product_id,
            date_column=requests_table.c.date,
        )

    def delete_request(self, id: DBId) -> Delete:
        return delete(requests_table).where(requests_table.c.id == id)

    # ------------------------------------------------------------------
    # Catalog products
    # ------------------------------------------------------------------

    def insert_product(self, description_id: DBId, product_id: ProductID) -> Insert:
        return (
            insert(products_table)
            .values(product_description_id=description_id, product_id=product_id)
            .returning(products_table.c.id)
        )

    def _select_products(self, with_preview: bool) -> Select:
        return select(*_description_columns(with_preview)).select_from(
            _join_description(products_table, with_preview)
        )

    def get_product(self, product_id: ProductID, with_preview: bool) -> Select:
        return self._select_products(with_preview).where(
            products_table.c.product_id == product_id
        )

    def get_product_image(self, product_id: ProductID) -> Select:
        return (
            select(image_table.c.data, image_table.c.content_type)
            .select_from(
                products_table.join(
                    description_table,
                    products_table.c.product_description_id == description_table.c.id,
                ).join(image_table, description_table.c.photo == image_table.c.id)
            )
            .where(products_table.c.product_id == product_id)
        )

    def query_products(self, query: ProductQuery, with_preview: bool) -> Select:
        return self._apply_product_query(
            self._select_products(with_preview),
            query,
            key_column=products_table.c.product_id,
            date_column=None,
        )

    def delete_product(self, product_id: ProductID) -> Delete:
        return delete(products_table).where(products_table.c.product_id == product_id)

    # ------------------------------------------------------------------

    def _apply_product_query(
        self,
        stmt: Select,
        query: ProductQuery,
        key_column: ColumnElement,
        date_column: Optional[ColumnElement],
    ) -> Select:
        """Add filter, sorting and pagination of a ProductQuery to stmt.

        Raises:
            InvalidSortingError: If the sorting field does not apply to the query
        """
        search_term = query.filter.search_term()
        if query.filter.product_id is not None:
            stmt = stmt.where(key_column == query.filter.product_id)
        elif search_term is not None:
            stmt = stmt.where(description_table.c.name_producer.like(f"%{search_term}%"))

        if query.sorting is not None:
            stmt = stmt.order_by(self._order_by(query.sorting, search_term, date_column))

        return stmt.offset(query.offset).limit(self.clamp_limit(query.limit))

    @staticmethod
    def _order_by(
        sorting: Sorting,
        search_term: Optional[str],
        date_column: Optional[ColumnElement],
    ) -> ColumnElement:
        check_sorting(
            sorting,
            has_search_term=search_term is not None,
            has_reported_date=date_column is not None,
        )
        field = sorting.field
        if field == SortingField.SIMILARITY:
            expr = func.similarity(description_table.c.name_producer, search_term)
        elif field == SortingField.REPORTED_DATE:
            expr = date_column
        else:
            expr = _SORT_COLUMNS[field]
        return _direction(expr, sorting.order)
