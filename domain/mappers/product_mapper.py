"""
Product domain mappers.
Handles transformation between relational rows and product entities.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from app.exceptions import InternalError
from domain.enums import QuantityType
from domain.schemas.product_schemas import (
    DBId,
    MissingProduct,
    Nutrients,
    ProductDescription,
    ProductImage,
    ProductInfo,
    ProductRequest,
    Weight,
)

logger = logging.getLogger("productdb.mapper")

# Storage column -> (Nutrients field, storage unit)
NUTRIENT_COLUMNS: Tuple[Tuple[str, str, str], ...] = (
    ("protein_grams", "protein", "g"),
    ("fat_grams", "fat", "g"),
    ("carbohydrates_grams", "carbohydrates", "g"),
    ("sugar_grams", "sugar", "g"),
    ("salt_grams", "salt", "g"),
    ("vitamin_a_mg", "vitamin_a", "mg"),
    ("vitamin_c_mg", "vitamin_c", "mg"),
    ("vitamin_d_mug", "vitamin_d", "mug"),
    ("iron_mg", "iron", "mg"),
    ("calcium_mg", "calcium", "mg"),
    ("magnesium_mg", "magnesium", "mg"),
    ("sodium_mg", "sodium", "mg"),
    ("zinc_mg", "zinc", "mg"),
)

_TO_STORAGE: Dict[str, Callable[[Weight], float]] = {
    "g": Weight.grams,
    "mg": Weight.milligrams,
    "mug": Weight.micrograms,
}

_FROM_STORAGE: Dict[str, Callable[[float], Weight]] = {
    "g": Weight.from_grams,
    "mg": Weight.from_milligrams,
    "mug": Weight.from_micrograms,
}

INFO_COLUMNS = (
    "product_id",
    "name",
    "producer",
    "quantity_type",
    "portion",
    "volume_weight_ratio",
)

PREVIEW_COLUMNS = ("preview", "preview_content_type")


def _as_mapping(row: Any) -> Mapping[str, Any]:
    """Accept SQLAlchemy rows as well as plain mappings."""
    mapping = getattr(row, "_mapping", None)
    return mapping if mapping is not None else row


def _column(row: Mapping[str, Any], name: str) -> Any:
    try:
        return row[name]
    except KeyError as e:
        raise InternalError(f"Internal error: column '{name}' missing in row") from e


class ProductMapper:
    """Mapper between product entities and their relational columns."""

    @staticmethod
    def nutrients_to_params(nutrients: Nutrients) -> Dict[str, Optional[float]]:
        """
        Convert Nutrients into bind parameters for the nutrients table.

        Every present nutrient is converted into its storage unit, absent
        nutrients bind NULL.
        """
        params: Dict[str, Optional[float]] = {"kcal": nutrients.kcal}
        for column, field, unit in NUTRIENT_COLUMNS:
            weight: Optional[Weight] = getattr(nutrients, field)
            params[column] = None if weight is None else _TO_STORAGE[unit](weight)
        return params

    @staticmethod
    def nutrients_from_row(row: Any) -> Nutrients:
        """Build Nutrients from a row carrying the nutrients storage columns."""
        row = _as_mapping(row)
        values: Dict[str, Any] = {"kcal": _column(row, "kcal")}
        for column, field, unit in NUTRIENT_COLUMNS:
            stored = _column(row, column)
            values[field] = None if stored is None else _FROM_STORAGE[unit](stored)
        return Nutrients(**values)

    @staticmethod
    def image_params(image: ProductImage) -> Dict[str, Any]:
        return {"data": image.data, "content_type": image.content_type}

    @staticmethod
    def image_from_row(row: Any) -> ProductImage:
        """Build a ProductImage from a row with data and content_type columns."""
        row = _as_mapping(row)
        data = _column(row, "data")
        content_type = _column(row, "content_type")
        if data is None or content_type is None:
            raise InternalError("Internal error: image row without data or content type")
        return ProductImage(content_type=content_type, data=bytes(data))

    @staticmethod
    def preview_from_row(row: Any) -> Optional[ProductImage]:
        """
        Decode the preview columns of a "with preview" row.

        A NULL preview means the product has no preview. Preview bytes without
        a content type indicate a corrupted row.
        """
        row = _as_mapping(row)
        data = _column(row, "preview")
        content_type = _column(row, "preview_content_type")
        if data is None:
            return None
        if content_type is None:
            raise InternalError(
                "Internal error: preview image without content type",
                details={"product_id": row.get("product_id")},
            )
        logger.debug(
            "Decoded preview image: Length=%d, content-type=%s", len(data), content_type
        )
        return ProductImage(content_type=content_type, data=bytes(data))

    @staticmethod
    def description_params(
        description: ProductDescription,
        nutrients_id: DBId,
        preview_id: Optional[DBId],
        photo_id: Optional[DBId],
    ) -> Dict[str, Any]:
        """Bind parameters for the product_description table."""
        info = description.info
        return {
            "product_id": info.id,
            "name": info.name,
            "producer": info.producer,
            "quantity_type": info.quantity_type,
            "portion": info.portion,
            "volume_weight_ratio": info.volume_weight_ratio,
            "preview": preview_id,
            "photo": photo_id,
            "nutrients": nutrients_id,
        }

    @staticmethod
    def info_from_row(row: Any) -> ProductInfo:
        row = _as_mapping(row)
        raw_quantity_type = _column(row, "quantity_type")
        try:
            quantity_type = QuantityType(raw_quantity_type)
        except ValueError as e:
            raise InternalError(
                f"Internal error: unknown quantity type '{raw_quantity_type}'"
            ) from e

        try:
            return ProductInfo(
                id=_column(row, "product_id"),
                name=_column(row, "name"),
                producer=_column(row, "producer"),
                quantity_type=quantity_type,
                portion=_column(row, "portion"),
                volume_weight_ratio=_column(row, "volume_weight_ratio"),
            )
        except ValidationError as e:
            raise InternalError(f"Internal error: malformed product row: {e}") from e

    @staticmethod
    def description_from_row(row: Any, with_preview: bool) -> ProductDescription:
        """
        Reassemble a ProductDescription from a joined row.

        The full image is never part of a row; the preview is only decoded if
        with_preview is set.
        """
        row = _as_mapping(row)
        preview = ProductMapper.preview_from_row(row) if with_preview else None
        return ProductDescription(
            info=ProductMapper.info_from_row(row),
            nutrients=ProductMapper.nutrients_from_row(row),
            preview=preview,
            full_image=None,
        )

    @staticmethod
    def request_from_row(row: Any, with_preview: bool) -> Tuple[DBId, ProductRequest]:
        row = _as_mapping(row)
        request = ProductRequest(
            product_description=ProductMapper.description_from_row(row, with_preview),
            date=_column(row, "date"),
        )
        return _column(row, "id"), request

    @staticmethod
    def missing_product_from_row(row: Any) -> Tuple[DBId, MissingProduct]:
        row = _as_mapping(row)
        missing = MissingProduct(
            product_id=_column(row, "product_id"), date=_column(row, "date")
        )
        return _column(row, "id"), missing
