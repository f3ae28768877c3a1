"""Pydantic schemas for products, product requests and missing-product reports."""

from datetime import datetime, timezone
from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.exceptions import SerializationError
from domain.enums import QuantityType

ProductID = str
DBId = int

# Tolerance for comparing unit values that went through a float conversion.
FLOAT_TOLERANCE = 1e-5

_JsonModelT = TypeVar("_JsonModelT", bound="JsonModel")


class JsonModel(BaseModel):
    """Frozen base model with JSON (de)serialization helpers."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    def to_json(self) -> str:
        try:
            return self.model_dump_json(by_alias=True)
        except ValueError as e:
            raise SerializationError(f"Serialization error: {e}") from e

    @classmethod
    def from_json(cls: Type[_JsonModelT], data: Union[str, bytes]) -> _JsonModelT:
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise SerializationError(
                f"Serialization error: invalid {cls.__name__}",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e


class Weight(JsonModel):
    """Weight value, always stored in grams."""

    value: float = Field(..., description="The weight value expressed in gram")

    @classmethod
    def from_grams(cls, grams: float) -> "Weight":
        return cls(value=grams)

    @classmethod
    def from_milligrams(cls, milligrams: float) -> "Weight":
        return cls(value=milligrams * 1e-3)

    @classmethod
    def from_micrograms(cls, micrograms: float) -> "Weight":
        return cls(value=micrograms * 1e-6)

    def grams(self) -> float:
        return self.value

    def milligrams(self) -> float:
        return self.value * 1e3

    def micrograms(self) -> float:
        return self.value * 1e6

    def is_close(self, other: "Weight", tolerance: float = FLOAT_TOLERANCE) -> bool:
        return abs(self.value - other.value) <= tolerance


class Volume(JsonModel):
    """Volume value, always stored in litres."""

    value: float = Field(..., description="The volume expressed in litre")

    @classmethod
    def from_litres(cls, litres: float) -> "Volume":
        return cls(value=litres)

    @classmethod
    def from_millilitres(cls, millilitres: float) -> "Volume":
        return cls(value=millilitres * 1e-3)

    def litres(self) -> float:
        return self.value

    def millilitres(self) -> float:
        return self.value * 1e3

    def is_close(self, other: "Volume", tolerance: float = FLOAT_TOLERANCE) -> bool:
        return abs(self.value - other.value) <= tolerance


class Nutrients(JsonModel):
    """Nutrients of a product for a reference quantity of 100g (or 100ml)."""

    kcal: float
    protein: Optional[Weight] = None
    fat: Optional[Weight] = None
    carbohydrates: Optional[Weight] = None
    sugar: Optional[Weight] = None
    salt: Optional[Weight] = None
    vitamin_a: Optional[Weight] = Field(None, alias="vitaminA")
    vitamin_c: Optional[Weight] = Field(None, alias="vitaminC")
    vitamin_d: Optional[Weight] = Field(None, alias="vitaminD")
    iron: Optional[Weight] = None
    calcium: Optional[Weight] = None
    magnesium: Optional[Weight] = None
    sodium: Optional[Weight] = None
    zinc: Optional[Weight] = None


class ProductImage(JsonModel):
    """An image of a product. JSON carries the data base64 encoded."""

    content_type: str = Field(..., alias="contentType", max_length=32)
    data: bytes

    def __repr__(self) -> str:
        return f"<ProductImage(content_type='{self.content_type}', size={len(self.data)})>"


class ProductInfo(JsonModel):
    """Identifying and portion details of a product."""

    id: ProductID = Field(..., min_length=1, max_length=64)
    name: str = Field(..., max_length=64)
    producer: Optional[str] = Field(None, max_length=64)
    quantity_type: QuantityType
    portion: float = Field(
        ..., description="Amount of one portion in grams or ml depending on quantity_type"
    )
    volume_weight_ratio: Optional[float] = Field(
        None,
        description="volume(ml) = weight(g) * volume_weight_ratio, only for volume products",
    )

    @model_validator(mode="after")
    def check_volume_weight_ratio(self) -> "ProductInfo":
        if self.quantity_type == QuantityType.VOLUME and self.volume_weight_ratio is None:
            raise ValueError("volume_weight_ratio is required for volume based products")
        if self.quantity_type == QuantityType.WEIGHT and self.volume_weight_ratio is not None:
            raise ValueError("volume_weight_ratio must not be set for weight based products")
        return self


class ProductDescription(JsonModel):
    """Full description of a product: info, nutrients and optional images."""

    info: ProductInfo
    preview: Optional[ProductImage] = None
    full_image: Optional[ProductImage] = None
    nutrients: Nutrients

    @property
    def product_id(self) -> ProductID:
        return self.info.id

    def without_images(self) -> "ProductDescription":
        return self.model_copy(update={"preview": None, "full_image": None})


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProductRequest(JsonModel):
    """A user submitted request to add a product to the catalog."""

    product_description: ProductDescription
    date: datetime

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return _as_utc(v)


class MissingProduct(JsonModel):
    """A user report that a product could not be found."""

    product_id: ProductID = Field(..., min_length=1, max_length=64)
    date: datetime

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return _as_utc(v)
