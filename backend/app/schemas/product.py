import json
import math
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator
from app.config import Config
from app.models.product import ProductType
from app.schemas.common import CamelModel


class CategoryOut(CamelModel):
    id: int
    name: str


class BookGenreOut(CamelModel):
    id: int
    name: str


class BookDetailOut(CamelModel):
    book_genre_id: int | None = None
    author: str | None = None
    translator: str | None = None
    language: str | None = None
    publisher: str | None = None
    publish_year: int | None = None
    page_count: int | None = None
    book_genre: BookGenreOut | None = None


class StationeryDetailOut(CamelModel):
    brand: str | None = None
    place_production: str | None = None
    color: str | None = None
    material: str | None = None


class ProductImageOut(CamelModel):
    id: int
    image_url: str


class ProductSummary(CamelModel):
    """Product columns only, without related rows."""

    id: int
    name: str
    price: int
    discount: int
    stock: int
    description: str | None = None
    cover_image_url: str | None = None
    dimension: str | None = None
    type: ProductType
    category_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductOut(ProductSummary):
    book_detail: BookDetailOut | None = None
    stationery_detail: StationeryDetailOut | None = None
    category: CategoryOut | None = None
    product_images: list[ProductImageOut] = []


class ProductDetailOut(ProductOut):
    avg_rating: float = 0
    total_reviews: int = 0
    total_sold: int = 0


class TrendingProductOut(ProductOut):
    sold_quantity: int = 0


class ProductPage(CamelModel):
    data: list[ProductOut]
    count: int


# Request payloads

class BookDetailIn(CamelModel):
    book_genre_id: int | None = None
    author: str = Field(min_length=1, max_length=255)
    translator: str | None = Field(default=None, max_length=255)
    language: str | None = Field(default=None, max_length=100)
    publisher: str | None = Field(default=None, max_length=255)
    publish_year: int | None = Field(default=None, ge=1000, le=9999)
    page_count: int | None = Field(default=None, ge=1)


class StationeryDetailIn(CamelModel):
    brand: str | None = Field(default=None, max_length=255)
    place_production: str | None = Field(default=None, max_length=255)
    color: str | None = Field(default=None, max_length=100)
    material: str | None = Field(default=None, max_length=255)


class ProductPayload(CamelModel):
    """Body of product create/update.

    Multipart forms can only carry flat strings, so the nested detail objects
    and the list of kept gallery URLs are also accepted as JSON text.
    """

    name: str = Field(min_length=1, max_length=255)
    price: int = Field(ge=0)
    discount: int = Field(default=0, ge=0, le=100)
    stock: int = Field(default=0, ge=0)
    description: str | None = None
    dimension: str | None = Field(default=None, max_length=100)
    type: ProductType
    category_id: int | None = None
    book_detail: BookDetailIn | None = None
    stationery_detail: StationeryDetailIn | None = None
    # None means "not sent", which leaves the gallery alone on update
    product_images: list[str] | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("book_detail", "stationery_detail", mode="before")
    @classmethod
    def parse_detail(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value) if value.strip() else None
        return value

    @field_validator("product_images", mode="before")
    @classmethod
    def parse_images(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = json.loads(value) if value.strip() else []
        if not isinstance(value, list):
            return value

        urls = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("imageUrl") or item.get("image_url")
            if isinstance(item, str) and item.strip():
                urls.append(item.strip())
        return urls

    @model_validator(mode="after")
    def check_detail_matches_type(self) -> "ProductPayload":
        if self.type == ProductType.BOOK and self.book_detail is None:
            raise ValueError("bookDetail is required for BOOK products")
        if self.type == ProductType.STATIONERY and self.stationery_detail is None:
            raise ValueError("stationeryDetail is required for STATIONERY products")
        return self

    def product_fields(self, exclude_unset: bool = False) -> dict:
        """Columns shared by every product type.

        With exclude_unset only the fields the request actually sent are
        returned, so an update leaves the other columns as stored.
        """
        return self.model_dump(
            include={"name", "price", "discount", "stock", "description", "dimension", "type", "category_id"},
            exclude_unset=exclude_unset,
        )

    def detail_values(self, exclude_unset: bool = False) -> dict:
        """Columns of the detail record matching the product type."""
        detail = self.book_detail if self.type == ProductType.BOOK else self.stationery_detail
        return detail.model_dump(exclude_unset=exclude_unset)


class ProductSearchParams(CamelModel):
    page: int = Field(default=Config.DEFAULT_PAGE, ge=1)
    items_per_page: int = Field(default=Config.DEFAULT_ITEMS_PER_PAGE, ge=1, le=Config.MAX_ITEMS_PER_PAGE)
    search: str | None = None
    type: ProductType | None = None
    book_genre_id: int | None = None
    language: str | None = None
    category_id: int | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)

    @field_validator("search", "language", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def ignore_non_numeric_price(cls, value: Any) -> Any:
        """A price bound that is not a number is treated as not given."""
        if value is None:
            return None
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            return None
        return None if math.isnan(number) or math.isinf(number) else number

    @model_validator(mode="after")
    def check_price_range(self) -> "ProductSearchParams":
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice must not be greater than maxPrice")
        return self
