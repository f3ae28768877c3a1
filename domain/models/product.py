"""
Relational models of the product catalog.

A product description is split over three tables: nutrients, product_image
(preview and full photo) and product_description. Catalog products and
product requests both reference a product description row.
"""

from sqlalchemy import (
    DDL,
    TIMESTAMP,
    Column,
    Computed,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    event,
)

from domain.enums import QuantityType
from domain.models.database import Base


class NutrientsRecord(Base):
    """Nutrients per 100g/100ml, each column in its storage unit"""

    __tablename__ = "nutrients"

    id = Column(Integer, primary_key=True)
    kcal = Column(Float, nullable=False)
    protein_grams = Column(Float)
    fat_grams = Column(Float)
    carbohydrates_grams = Column(Float)
    sugar_grams = Column(Float)
    salt_grams = Column(Float)
    vitamin_a_mg = Column(Float)
    vitamin_c_mg = Column(Float)
    vitamin_d_mug = Column(Float)
    iron_mg = Column(Float)
    calcium_mg = Column(Float)
    magnesium_mg = Column(Float)
    sodium_mg = Column(Float)
    zinc_mg = Column(Float)

    def __repr__(self):
        return f"<NutrientsRecord(id={self.id}, kcal={self.kcal})>"


class ProductImageRecord(Base):
    """Preview and full images of products"""

    __tablename__ = "product_image"

    id = Column(Integer, primary_key=True)
    data = Column(LargeBinary, nullable=False)
    content_type = Column(String(32), nullable=False)


class ProductDescriptionRecord(Base):
    """
    Product description shared by catalog products and product requests.

    name_producer is generated by the database and backs free-text search.
    """

    __tablename__ = "product_description"

    id = Column(Integer, primary_key=True)
    product_id = Column(String(64), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    producer = Column(String(64))
    quantity_type = Column(
        Enum(
            QuantityType,
            name="quantitytype",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    portion = Column(Float, nullable=False)
    volume_weight_ratio = Column(Float)
    preview = Column(Integer, ForeignKey("product_image.id", ondelete="CASCADE"))
    photo = Column(Integer, ForeignKey("product_image.id", ondelete="CASCADE"))
    nutrients = Column(
        Integer, ForeignKey("nutrients.id", ondelete="CASCADE"), nullable=False
    )
    name_producer = Column(
        String(129),
        Computed("lower(name || ' ' || coalesce(producer, ''))", persisted=True),
    )

    __table_args__ = (
        Index(
            "product_description_name_producer_trgm_idx",
            "name_producer",
            postgresql_using="gist",
            postgresql_ops={"name_producer": "gist_trgm_ops"},
        ),
    )

    def __repr__(self):
        return f"<ProductDescriptionRecord(id={self.id}, product_id='{self.product_id}', name='{self.name}')>"


class ProductRecord(Base):
    """Catalog products, at most one per product id"""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    product_description_id = Column(
        Integer,
        ForeignKey("product_description.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id = Column(String(64), nullable=False, unique=True)


class RequestedProductRecord(Base):
    """Pending product requests"""

    __tablename__ = "requested_products"

    id = Column(Integer, primary_key=True)
    product_description_id = Column(
        Integer,
        ForeignKey("product_description.id", ondelete="CASCADE"),
        nullable=False,
    )
    date = Column(TIMESTAMP(timezone=True), nullable=False)


class MissingProductRecord(Base):
    """Reports of products which could not be found"""

    __tablename__ = "reported_missing_products"

    id = Column(Integer, primary_key=True)
    product_id = Column(String(64), nullable=False, index=True)
    date = Column(TIMESTAMP(timezone=True), nullable=False)


# Deleting a product or request removes its description; deleting a description
# removes its nutrients and images.
_delete_description_func = DDL(
    """
    CREATE OR REPLACE FUNCTION trigger_func_delete_product_or_requested_product()
        RETURNS TRIGGER AS $$
    BEGIN
        DELETE FROM product_description WHERE id = OLD.product_description_id;
        RETURN OLD;
    END;
    $$ LANGUAGE plpgsql;
    """
)

_delete_description_parts_func = DDL(
    """
    CREATE OR REPLACE FUNCTION trigger_func_delete_product_description()
        RETURNS TRIGGER AS $$
    BEGIN
        DELETE FROM nutrients WHERE id = OLD.nutrients;
        DELETE FROM product_image WHERE id = OLD.preview;
        DELETE FROM product_image WHERE id = OLD.photo;
        RETURN OLD;
    END;
    $$ LANGUAGE plpgsql;
    """
)

event.listen(
    ProductDescriptionRecord.__table__, "after_create", _delete_description_parts_func
)
event.listen(
    ProductDescriptionRecord.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER trigger_delete_product_description "
        "AFTER DELETE ON product_description FOR EACH ROW "
        "EXECUTE FUNCTION trigger_func_delete_product_description();"
    ),
)
event.listen(ProductDescriptionRecord.__table__, "after_create", _delete_description_func)

for _table in (RequestedProductRecord.__table__, ProductRecord.__table__):
    event.listen(
        _table,
        "after_create",
        DDL(
            f"CREATE TRIGGER trigger_delete_{_table.name} "
            f"AFTER DELETE ON {_table.name} FOR EACH ROW "
            "EXECUTE FUNCTION trigger_func_delete_product_or_requested_product();"
        ),
    )
