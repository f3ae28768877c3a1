"""In-memory data backend.

Provides a dictionary based implementation of the DataBackend port for tests
and local development. Follows the same query semantics as the Postgres
backend: sorting validation, limit ceiling, search on lower-cased
"name producer" and trigram similarity ranking.
"""

import logging
import re
import threading
from itertools import count
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, TypeVar

from domain.enums import SortingField, SortingOrder
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
from repositories.query_builder import DEFAULT_LIMIT, MAX_LIMIT, check_sorting

logger = logging.getLogger("productdb.in_memory")

T = TypeVar("T")

_WORD_SPLIT = re.compile(r"[^0-9a-z]+")


def _trigrams(text: str) -> Set[str]:
    result: Set[str] = set()
    for word in _WORD_SPLIT.split(text.lower()):
        if not word:
            continue
        padded = f"  {word} "
        result.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return result


def trigram_similarity(a: str, b: str) -> float:
    """Similarity of two strings in the way pg_trgm's similarity() computes it."""
    left, right = _trigrams(a), _trigrams(b)
    if not left or not right:
        return 0.0
    shared = len(left & right)
    return shared / (len(left) + len(right) - shared)


def _name_producer(description: ProductDescription) -> str:
    info = description.info
    return f"{info.name} {info.producer or ''}".lower()


def _for_read(description: ProductDescription, with_preview: bool) -> ProductDescription:
    return description.model_copy(
        update={
            "preview": description.preview if with_preview else None,
            "full_image": None,
        }
    )


class InMemoryBackend(DataBackend):
    """
    In-memory implementation of the DataBackend port.

    Persistence: Data lost on process restart (in-memory only)

    Example:
        >>> backend = InMemoryBackend()
        >>> db_id = backend.report_missing_product(MissingProduct(product_id="4008400401621", date=now))
        >>> backend.get_missing_product(db_id)
    """

    def __init__(self, max_limit: int = DEFAULT_LIMIT) -> None:
        self.max_limit = min(max_limit, MAX_LIMIT)
        self._ids = count(1)
        self._lock = threading.Lock()
        self._missing: Dict[DBId, MissingProduct] = {}
        self._requests: Dict[DBId, ProductRequest] = {}
        self._products: Dict[ProductID, ProductDescription] = {}

    def _next_id(self) -> DBId:
        return next(self._ids)

    def _page(self, items: Iterable[T], offset: int, limit: int) -> List[T]:
        limit = max(0, min(limit, self.max_limit))
        return list(items)[offset : offset + limit]

    def _apply_product_query(
        self,
        items: List[Tuple[DBId, ProductDescription, Optional[object]]],
        query: ProductQuery,
        has_reported_date: bool,
    ) -> List[Tuple[DBId, ProductDescription, Optional[object]]]:
        search_term = query.filter.search_term()
        if query.sorting is not None:
            check_sorting(
                query.sorting,
                has_search_term=search_term is not None,
                has_reported_date=has_reported_date,
            )

        if query.filter.product_id is not None:
            items = [i for i in items if i[1].info.id == query.filter.product_id]
        elif search_term is not None:
            items = [i for i in items if search_term in _name_producer(i[1])]

        if query.sorting is not None:
            key: Callable
            field = query.sorting.field
            if field == SortingField.SIMILARITY:
                key = lambda i: trigram_similarity(_name_producer(i[1]), search_term)  # noqa: E731
            elif field == SortingField.REPORTED_DATE:
                key = lambda i: i[2]  # noqa: E731
            elif field == SortingField.NAME:
                key = lambda i: i[1].info.name  # noqa: E731
            else:
                key = lambda i: i[1].info.id  # noqa: E731
            items = sorted(
                items,
                key=key,
                reverse=query.sorting.order == SortingOrder.DESCENDING,
            )

        return self._page(items, query.offset, query.limit)

    # Missing products

    def report_missing_product(self, missing_product: MissingProduct) -> DBId:
        with self._lock:
            db_id = self._next_id()
            self._missing[db_id] = missing_product
        logger.info(
            "Reported missing product with id: %s as %d",
            missing_product.product_id,
            db_id,
        )
        return db_id

    def get_missing_product(self, id: DBId) -> Optional[MissingProduct]:
        return self._missing.get(id)

    def query_missing_products(
        self, query: MissingProductQuery
    ) -> List[Tuple[DBId, MissingProduct]]:
        with self._lock:
            items = list(self._missing.items())
        if query.product_id is not None:
            items = [i for i in items if i[1].product_id == query.product_id]
        items.sort(
            key=lambda i: i[1].date, reverse=query.order == SortingOrder.DESCENDING
        )
        return self._page(items, query.offset, query.limit)

    def delete_reported_missing_product(self, id: DBId) -> None:
        with self._lock:
            self._missing.pop(id, None)
        logger.info("Deleted reported missing product with id: %d", id)

    # Product requests

    def request_new_product(self, product_request: ProductRequest) -> DBId:
        with self._lock:
            db_id = self._next_id()
            self._requests[db_id] = product_request
        logger.info(
            "Requested new product with name: %s as %d",
            product_request.product_description.info.name,
            db_id,
        )
        return db_id

    def get_product_request(
        self, id: DBId, with_preview: bool
    ) -> Optional[ProductRequest]:
        request = self._requests.get(id)
        if request is None:
            return None
        return request.model_copy(
            update={
                "product_description": _for_read(
                    request.product_description, with_preview
                )
            }
        )

    def get_product_request_image(self, id: DBId) -> Optional[ProductImage]:
        request = self._requests.get(id)
        return None if request is None else request.product_description.full_image

    def query_product_requests(
        self, query: ProductQuery, with_preview: bool
    ) -> List[Tuple[DBId, ProductRequest]]:
        with self._lock:
            items = [
                (db_id, r.product_description, r.date)
                for db_id, r in self._requests.items()
            ]
        page = self._apply_product_query(items, query, has_reported_date=True)
        return [
            (
                db_id,
                ProductRequest(
                    product_description=_for_read(description, with_preview),
                    date=date,
                ),
            )
            for db_id, description, date in page
        ]

    def delete_requested_product(self, id: DBId) -> None:
        with self._lock:
            self._requests.pop(id, None)
        logger.info("Deleted requested product with id: %d", id)

    # Catalog products

    def new_product(self, product_description: ProductDescription) -> bool:
        product_id = product_description.info.id
        with self._lock:
            if product_id in self._products:
                logger.info(
                    "Product with id %s already exists in the database", product_id
                )
                return False
            self._products[product_id] = product_description
        logger.info("New product %s added", product_id)
        return True

    def get_product(
        self, product_id: ProductID, with_preview: bool
    ) -> Optional[ProductDescription]:
        description = self._products.get(product_id)
        return None if description is None else _for_read(description, with_preview)

    def get_product_image(self, product_id: ProductID) -> Optional[ProductImage]:
        description = self._products.get(product_id)
        return None if description is None else description.full_image

    def query_products(
        self, query: ProductQuery, with_preview: bool
    ) -> List[ProductDescription]:
        with self._lock:
            items = [(0, d, None) for d in self._products.values()]
        page = self._apply_product_query(items, query, has_reported_date=False)
        return [_for_read(description, with_preview) for _, description, _ in page]

    def delete_product(self, product_id: ProductID) -> None:
        with self._lock:
            self._products.pop(product_id, None)
        logger.info("Deleted product with id: %s", product_id)
