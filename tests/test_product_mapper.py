"""
Tests for ProductMapper, the translation between product entities and
relational rows.

Rows are plain dicts here, keyed like the labelled columns the query
builder selects.
"""

from datetime import datetime, timezone

import pytest

from app.exceptions import InternalError
from domain.enums import QuantityType
from domain.mappers.product_mapper import NUTRIENT_COLUMNS, ProductMapper
from domain.schemas import Nutrients, Weight
from test_fixtures import JPEG_BYTES, PNG_BYTES, make_description, make_nutrients


def description_row(description, with_preview=False, **overrides):
    """Build the row the backend would fetch for a description"""
    info = description.info
    row = {
        "product_id": info.id,
        "name": info.name,
        "producer": info.producer,
        "quantity_type": info.quantity_type,
        "portion": info.portion,
        "volume_weight_ratio": info.volume_weight_ratio,
    }
    row.update(ProductMapper.nutrients_to_params(description.nutrients))
    if with_preview:
        preview = description.preview
        row["preview"] = None if preview is None else memoryview(preview.data)
        row["preview_content_type"] = None if preview is None else preview.content_type
    row.update(overrides)
    return row


# =============================================================================
# NUTRIENTS
# =============================================================================


def test_nutrients_to_params_uses_storage_units():
    """
    Verifies:
    - Macros are stored in grams
    - Vitamin D is stored in micrograms
    - Other vitamins and minerals are stored in milligrams
    - Absent nutrients bind NULL
    """
    nutrients = Nutrients(
        kcal=100.0,
        protein=Weight.from_grams(3.4),
        vitamin_c=Weight.from_milligrams(4.6),
        vitamin_d=Weight.from_micrograms(5.0),
        iron=Weight.from_milligrams(2.0),
    )
    params = ProductMapper.nutrients_to_params(nutrients)

    assert params["kcal"] == 100.0
    assert params["protein_grams"] == pytest.approx(3.4)
    assert params["vitamin_c_mg"] == pytest.approx(4.6)
    assert params["vitamin_d_mug"] == pytest.approx(5.0)
    assert params["iron_mg"] == pytest.approx(2.0)
    assert params["zinc_mg"] is None
    assert set(params) == {"kcal"} | {column for column, _, _ in NUTRIENT_COLUMNS}


def test_nutrients_survive_storage_round_trip():
    nutrients = make_nutrients()
    restored = ProductMapper.nutrients_from_row(ProductMapper.nutrients_to_params(nutrients))

    assert restored.kcal == nutrients.kcal
    for _, field, _ in NUTRIENT_COLUMNS:
        original = getattr(nutrients, field)
        value = getattr(restored, field)
        if original is None:
            assert value is None
        else:
            assert value.is_close(original)


def test_nutrients_missing_column_is_internal_error():
    params = ProductMapper.nutrients_to_params(make_nutrients())
    del params["zinc_mg"]

    with pytest.raises(InternalError):
        ProductMapper.nutrients_from_row(params)


# =============================================================================
# IMAGES
# =============================================================================


def test_image_from_row_copies_bytes():
    image = ProductMapper.image_from_row(
        {"data": memoryview(JPEG_BYTES), "content_type": "image/jpeg"}
    )
    assert image.data == JPEG_BYTES
    assert image.content_type == "image/jpeg"


def test_image_from_row_rejects_incomplete_rows():
    with pytest.raises(InternalError):
        ProductMapper.image_from_row({"data": None, "content_type": "image/png"})


def test_preview_from_row():
    """
    Verifies:
    - NULL preview means no preview
    - Preview with content type decodes
    - Preview bytes without content type are a corrupted row
    """
    assert ProductMapper.preview_from_row(
        {"preview": None, "preview_content_type": None}
    ) is None

    preview = ProductMapper.preview_from_row(
        {"preview": PNG_BYTES, "preview_content_type": "image/png"}
    )
    assert preview.data == PNG_BYTES

    with pytest.raises(InternalError):
        ProductMapper.preview_from_row(
            {"product_id": "1", "preview": PNG_BYTES, "preview_content_type": None}
        )


# =============================================================================
# DESCRIPTIONS
# =============================================================================


def test_description_params_reference_parts():
    description = make_description("milk")
    params = ProductMapper.description_params(description, 11, 12, None)

    assert params["product_id"] == description.info.id
    assert params["quantity_type"] == QuantityType.VOLUME
    assert params["volume_weight_ratio"] == pytest.approx(0.97)
    assert params["nutrients"] == 11
    assert params["preview"] == 12
    assert params["photo"] is None


def test_description_from_row_without_preview():
    """
    Verifies:
    - Info and nutrients are reassembled
    - Preview columns are not required without preview
    - The full image is never part of a row
    """
    description = make_description()
    restored = ProductMapper.description_from_row(description_row(description), False)

    assert restored.info == description.info
    assert restored.preview is None
    assert restored.full_image is None
    assert restored.nutrients.kcal == description.nutrients.kcal


def test_description_from_row_with_preview():
    description = make_description()
    restored = ProductMapper.description_from_row(
        description_row(description, with_preview=True), True
    )

    assert restored.preview == description.preview
    assert restored.full_image is None


def test_description_accepts_raw_quantity_type():
    description = make_description("milk")
    row = description_row(description, quantity_type="volume")

    assert ProductMapper.info_from_row(row).quantity_type == QuantityType.VOLUME


def test_unknown_quantity_type_is_internal_error():
    row = description_row(make_description(), quantity_type="pieces")

    with pytest.raises(InternalError):
        ProductMapper.info_from_row(row)


def test_malformed_info_is_internal_error():
    # weight product with a ratio violates the ProductInfo invariant
    row = description_row(make_description(), volume_weight_ratio=1.0)

    with pytest.raises(InternalError):
        ProductMapper.info_from_row(row)


# =============================================================================
# REQUESTS AND MISSING PRODUCTS
# =============================================================================


def test_request_from_row():
    description = make_description("oats")
    date = datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc)
    row = description_row(description, id=17, date=date)

    db_id, request = ProductMapper.request_from_row(row, False)

    assert db_id == 17
    assert request.date == date
    assert request.product_description.info == description.info


def test_missing_product_from_row():
    date = datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc)

    db_id, missing = ProductMapper.missing_product_from_row(
        {"id": 3, "product_id": "foobar", "date": date}
    )

    assert db_id == 3
    assert missing.product_id == "foobar"
    assert missing.date == date
