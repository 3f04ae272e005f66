import enum

from sqlalchemy import Column, Enum, Float, ForeignKey, Integer, String, Text, cast
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from app.db.database import Base
from app.models.mixins import TimestampMixin


class ProductType(str, enum.Enum):
    BOOK = "BOOK"
    STATIONERY = "STATIONERY"


class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Integer, nullable=False)
    # Percent off the list price (0..100)
    discount = Column(Integer, nullable=False, default=0, server_default="0")
    stock = Column(Integer, nullable=False, default=0, server_default="0")
    description = Column(Text)
    cover_image_url = Column(String(500))
    dimension = Column(String(100))
    type = Column(Enum(ProductType, native_enum=False, length=20), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"))

    # Relationships
    category = relationship("Category", back_populates="products")
    product_images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.id",
    )

    # Only the detail row whose table matches the product type is attached.
    # Detail rows are written explicitly by the product service.
    book_detail = relationship(
        "BookDetail",
        primaryjoin="and_(Product.id == BookDetail.product_id, Product.type == 'BOOK')",
        uselist=False,
        viewonly=True,
    )
    stationery_detail = relationship(
        "StationeryDetail",
        primaryjoin="and_(Product.id == StationeryDetail.product_id, Product.type == 'STATIONERY')",
        uselist=False,
        viewonly=True,
    )

    @hybrid_property
    def final_price(self) -> float:
        """Price after the percentage discount."""
        return self.price * (100 - (self.discount or 0)) / 100

    @final_price.inplace.expression
    @classmethod
    def _final_price_expression(cls):
        return cast(cls.price, Float) * (100 - cls.discount) / 100.0


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)

    # Relationships
    product = relationship("Product", back_populates="product_images")
