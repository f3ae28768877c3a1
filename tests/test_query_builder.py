"""
Tests for QueryBuilder.

Statements are compiled with the PostgreSQL dialect (no connection needed)
and the rendered SQL and bound parameters are inspected.
"""

import pytest
from sqlalchemy.dialects import postgresql

from app.exceptions import InvalidSortingError
from domain.enums import SortingField, SortingOrder
from domain.schemas import (
    MissingProduct,
    MissingProductQuery,
    ProductQuery,
    SearchFilter,
    Sorting,
)
from repositories.query_builder import MAX_LIMIT, QueryBuilder, check_sorting
from test_fixtures import BASE_DATE


def compile_stmt(stmt):
    compiled = stmt.compile(dialect=postgresql.dialect())
    return str(compiled), compiled.params


@pytest.fixture
def queries():
    return QueryBuilder(max_limit=100)


# =============================================================================
# LIMITS
# =============================================================================


def test_max_limit_is_capped():
    assert QueryBuilder(max_limit=5000).max_limit == MAX_LIMIT


def test_clamp_limit(queries):
    assert queries.clamp_limit(1000) == 100
    assert queries.clamp_limit(7) == 7
    assert queries.clamp_limit(0) == 0


def test_query_limit_is_clamped(queries):
    sql, params = compile_stmt(queries.query_products(ProductQuery(limit=1000), False))

    assert "LIMIT" in sql
    assert 100 in params.values()
    assert 1000 not in params.values()


# =============================================================================
# MISSING PRODUCTS
# =============================================================================


def test_query_missing_products_sorted_by_date(queries):
    query = MissingProductQuery(limit=10, offset=2, order=SortingOrder.DESCENDING)
    sql, params = compile_stmt(queries.query_missing_products(query))

    assert "ORDER BY reported_missing_products.date DESC" in sql
    assert 2 in params.values()
    assert "reported_missing_products.product_id =" not in sql


def test_query_missing_products_by_product_id(queries):
    query = MissingProductQuery(limit=10, product_id="foobar")
    sql, params = compile_stmt(queries.query_missing_products(query))

    assert "reported_missing_products.product_id =" in sql
    assert "ORDER BY reported_missing_products.date ASC" in sql
    assert "foobar" in params.values()


def test_insert_missing_product_returns_id(queries):
    missing = MissingProduct(product_id="foobar", date=BASE_DATE)
    sql, params = compile_stmt(queries.insert_missing_product(missing))

    assert sql.startswith("INSERT INTO reported_missing_products")
    assert "RETURNING reported_missing_products.id" in sql
    assert params["product_id"] == "foobar"


# =============================================================================
# PROJECTIONS
# =============================================================================


def test_products_without_preview_skip_images(queries):
    sql, _ = compile_stmt(queries.get_product("3017620422003", with_preview=False))

    assert "product_image" not in sql
    assert "JOIN nutrients" in sql
    assert "products.product_id =" in sql


def test_products_with_preview_outer_join_image(queries):
    sql, _ = compile_stmt(queries.get_product("3017620422003", with_preview=True))

    assert "LEFT OUTER JOIN product_image" in sql
    assert "AS preview" in sql
    assert "AS preview_content_type" in sql


def test_request_image_joins_photo(queries):
    sql, params = compile_stmt(queries.get_request_image(4))

    assert "product_description.photo = product_image.id" in sql
    assert 4 in params.values()


# =============================================================================
# FILTERS
# =============================================================================


def test_search_filter_binds_lowercase_pattern(queries):
    """
    Verifies:
    - Search matches name_producer with LIKE
    - The search term is lower-cased and bound, never inlined
    """
    query = ProductQuery(limit=10, filter=SearchFilter.by_search("NuTella"))
    sql, params = compile_stmt(queries.query_products(query, False))

    assert "product_description.name_producer LIKE" in sql
    assert "%nutella%" in params.values()
    assert "nutella" not in sql


def test_search_term_is_never_inlined(queries):
    term = "'; DROP TABLE products; --"
    query = ProductQuery(limit=10, filter=SearchFilter.by_search(term))
    sql, params = compile_stmt(queries.query_requests(query, False))

    assert "DROP TABLE" not in sql
    assert f"%{term.lower()}%" in params.values()


def test_product_id_filter_key_columns(queries):
    query = ProductQuery(limit=10, filter=SearchFilter.by_product_id("42"))

    products_sql, _ = compile_stmt(queries.query_products(query, False))
    requests_sql, _ = compile_stmt(queries.query_requests(query, False))

    assert "products.product_id =" in products_sql
    assert "product_description.product_id =" in requests_sql


# =============================================================================
# SORTING
# =============================================================================


def test_similarity_sorting_uses_pg_trgm(queries):
    query = ProductQuery(
        limit=10,
        filter=SearchFilter.by_search("milch"),
        sorting=Sorting(field=SortingField.SIMILARITY, order=SortingOrder.DESCENDING),
    )
    sql, params = compile_stmt(queries.query_products(query, False))

    assert "ORDER BY similarity(product_description.name_producer" in sql
    assert "DESC" in sql
    assert "milch" in params.values()


def test_similarity_sorting_requires_search(queries):
    query = ProductQuery(limit=10, sorting=Sorting(field=SortingField.SIMILARITY))

    with pytest.raises(InvalidSortingError) as exc:
        queries.query_products(query, False)
    assert exc.value.field == SortingField.SIMILARITY


def test_reported_date_sorting_only_for_requests(queries):
    query = ProductQuery(
        limit=10,
        sorting=Sorting(field=SortingField.REPORTED_DATE, order=SortingOrder.DESCENDING),
    )

    sql, _ = compile_stmt(queries.query_requests(query, False))
    assert "ORDER BY requested_products.date DESC" in sql

    with pytest.raises(InvalidSortingError):
        queries.query_products(query, False)


@pytest.mark.parametrize(
    "field,column",
    [
        (SortingField.NAME, "product_description.name"),
        (SortingField.PRODUCT_ID, "product_description.product_id"),
    ],
)
def test_sorting_columns(queries, field, column):
    query = ProductQuery(limit=10, sorting=Sorting(field=field))
    sql, _ = compile_stmt(queries.query_products(query, False))

    assert f"ORDER BY {column} ASC" in sql


def test_no_sorting_has_no_order_by(queries):
    sql, _ = compile_stmt(queries.query_products(ProductQuery(limit=10), False))
    assert "ORDER BY" not in sql


def test_check_sorting_accepts_applicable_fields():
    check_sorting(Sorting(field=SortingField.NAME), False, False)
    check_sorting(Sorting(field=SortingField.SIMILARITY), True, False)
    check_sorting(Sorting(field=SortingField.REPORTED_DATE), False, True)
