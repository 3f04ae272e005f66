"""
Product service - catalog reads with computed aggregates, and transactional
writes of a product together with its type specific detail and image gallery.
"""
import logging
from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import UploadFile
from sqlalchemy import case, delete, distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import Config
from app.db.database import transaction
from app.errors import ErrorType
from app.exceptions import AppException
from app.models import (
    BookDetail,
    BookGenre,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductImage,
    ProductType,
    Review,
    StationeryDetail,
)
from app.schemas.product import (
    BookGenreOut,
    CategoryOut,
    ProductDetailOut,
    ProductOut,
    ProductPage,
    ProductPayload,
    ProductSearchParams,
    ProductSummary,
    TrendingProductOut,
)
from app.services.storage_service import ImageStorage, image_storage

logger = logging.getLogger(__name__)

COVER_IMAGE_FOLDER = "coverImages"
PRODUCT_IMAGE_FOLDER = "productImages"

# Orders in these states do not count as sold
EXCLUDED_SALE_STATUSES = (OrderStatus.RETURNED,)

DETAIL_MODELS = {
    ProductType.BOOK: BookDetail,
    ProductType.STATIONERY: StationeryDetail,
}


def product_loaders() -> tuple:
    """Eager loads needed to serialize a ProductOut."""
    return (
        selectinload(Product.book_detail).selectinload(BookDetail.book_genre),
        selectinload(Product.stationery_detail),
        selectinload(Product.category),
        selectinload(Product.product_images),
    )


class ProductService:
    def __init__(self, storage: ImageStorage = image_storage):
        self.storage = storage

    async def get_products(
        self,
        session: AsyncSession,
        page: int | None = None,
        items_per_page: int | None = None,
        query: str | None = None,
    ) -> ProductPage:
        """Page through products, optionally filtered by a name substring."""
        page = page or Config.DEFAULT_PAGE
        items_per_page = items_per_page or Config.DEFAULT_ITEMS_PER_PAGE
        offset = (page - 1) * items_per_page

        conditions = []
        if query:
            conditions.append(Product.name.ilike(f"%{query}%"))

        stmt = (
            select(Product)
            .options(*product_loaders())
            .where(*conditions)
            .order_by(Product.id)
            .limit(items_per_page)
            .offset(offset)
        )
        products = (await session.scalars(stmt)).all()
        count = await session.scalar(
            select(func.count(distinct(Product.id))).select_from(Product).where(*conditions)
        )

        return ProductPage(
            data=[ProductOut.model_validate(p) for p in products],
            count=count or 0
        )

    async def get_product_by_id(self, session: AsyncSession, product_id: int) -> ProductDetailOut | None:
        """Product with its relations plus rating and sales aggregates.

        Returns None when the product does not exist.
        """
        product = await session.scalar(
            select(Product).options(*product_loaders()).where(Product.id == product_id)
        )
        if product is None:
            return None

        avg_rating, total_reviews = (await session.execute(
            select(
                func.coalesce(func.avg(Review.rating), 0),
                func.count(Review.id),
            ).where(Review.product_id == product_id)
        )).one()

        total_sold = await session.scalar(
            select(func.coalesce(func.sum(OrderItem.quantity), 0))
            .select_from(OrderItem)
            .join(Order, OrderItem.order_id == Order.id)
            .where(
                OrderItem.product_id == product_id,
                Order.status.not_in(EXCLUDED_SALE_STATUSES),
            )
        )

        return ProductDetailOut.model_validate(product).model_copy(update={
            "avg_rating": float(avg_rating or 0),
            "total_reviews": int(total_reviews or 0),
            "total_sold": int(total_sold or 0),
        })

    async def create(
        self,
        session: AsyncSession,
        payload: ProductPayload,
        cover_image: UploadFile | None,
        product_images: Sequence[UploadFile] = (),
    ) -> ProductOut:
        await self._ensure_unique_name(session, payload.name)

        if cover_image is None:
            raise AppException(ErrorType.UNPROCESSABLE, "Cover image is required")
        cover_image_url = await self.storage.upload_image(cover_image, COVER_IMAGE_FOLDER)
        stored_urls = [cover_image_url]

        async with self._discard_on_error(stored_urls):
            uploaded_urls = await self.storage.upload_images(list(product_images or []), PRODUCT_IMAGE_FOLDER)
            stored_urls.extend(uploaded_urls)
            # Uploaded files win over URLs sent in the body
            image_urls = uploaded_urls or (payload.product_images or [])

            async with transaction(session):
                product = Product(**payload.product_fields(), cover_image_url=cover_image_url)
                session.add(product)
                await session.flush()

                product_id = product.id
                session.add(self._new_detail(product_id, payload))
                session.add_all([ProductImage(product_id=product_id, image_url=url) for url in image_urls])

        logger.info(f"Created {payload.type.value} product {product_id} '{payload.name}' with {len(image_urls)} images")
        return await self._load_product(session, product_id)

    async def update(
        self,
        session: AsyncSession,
        product_id: int,
        payload: ProductPayload,
        cover_image: UploadFile | None = None,
        product_images: Sequence[UploadFile] = (),
    ) -> ProductOut:
        """Rewrite a product, migrating its detail row when the type changes."""
        product = await session.get(Product, product_id, populate_existing=True)
        if product is None:
            raise AppException(ErrorType.NOT_FOUND, "Product not found!")
        await self._ensure_unique_name(session, payload.name, exclude_id=product_id)

        stored_urls = []
        if cover_image is not None:
            cover_image_url = await self.storage.upload_image(cover_image, COVER_IMAGE_FOLDER)
            stored_urls.append(cover_image_url)
        else:
            cover_image_url = product.cover_image_url
        old_type = product.type

        async with self._discard_on_error(stored_urls):
            uploaded_urls = await self.storage.upload_images(list(product_images or []), PRODUCT_IMAGE_FOLDER)
            stored_urls.extend(uploaded_urls)

            async with transaction(session):
                if payload.type != old_type:
                    old_detail = DETAIL_MODELS[old_type]
                    await session.execute(delete(old_detail).where(old_detail.product_id == product_id))
                    logger.info(f"Product {product_id} type changed {old_type.value} -> {payload.type.value}")

                # Fields left out of the request keep their stored values
                for field, value in payload.product_fields(exclude_unset=True).items():
                    setattr(product, field, value)
                product.cover_image_url = cover_image_url

                await self._save_detail(session, product_id, payload)

                # The gallery is replaced as a whole, only when the request says something about it
                if uploaded_urls or payload.product_images is not None:
                    await self._replace_images(session, product_id, uploaded_urls + (payload.product_images or []))

        logger.info(f"Updated product {product_id}")
        return await self._load_product(session, product_id)

    async def delete_by_id(self, session: AsyncSession, product_id: int) -> ProductSummary:
        """Delete a product with its detail rows and images; returns it as it was."""
        product = await session.get(Product, product_id, populate_existing=True)
        if product is None:
            raise AppException(ErrorType.NOT_FOUND, "Product not found!")
        deleted = ProductSummary.model_validate(product)

        async with transaction(session):
            await session.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
            await session.execute(delete(BookDetail).where(BookDetail.product_id == product_id))
            await session.execute(delete(StationeryDetail).where(StationeryDetail.product_id == product_id))

            result = await session.execute(delete(Product).where(Product.id == product_id))
            if result.rowcount == 0:
                raise AppException(ErrorType.INTERNAL_ERROR, "Failed to delete product!")

        logger.info(f"Deleted product {product_id}")
        return deleted

    async def get_categories(self, session: AsyncSession) -> list[CategoryOut]:
        featured_first = case((Category.name == Config.FEATURED_CATEGORY, 0), else_=1)
        categories = await session.scalars(
            select(Category).order_by(featured_first, Category.name)
        )
        return [CategoryOut.model_validate(c) for c in categories]

    async def get_book_genres(self, session: AsyncSession) -> list[BookGenreOut]:
        genres = await session.scalars(select(BookGenre).order_by(BookGenre.name))
        return [BookGenreOut.model_validate(g) for g in genres]

    async def search_and_filter_products(self, session: AsyncSession, filters: ProductSearchParams) -> ProductPage:
        """Search by name and filter by type, category, discounted price and book attributes."""
        offset = (filters.page - 1) * filters.items_per_page

        conditions = []
        if filters.search:
            conditions.append(Product.name.ilike(f"%{filters.search}%"))
        if filters.type is not None:
            conditions.append(Product.type == filters.type)
        if filters.category_id is not None:
            conditions.append(Product.category_id == filters.category_id)

        # Price filters apply to the price after discount
        if filters.min_price is not None:
            conditions.append(Product.final_price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Product.final_price <= filters.max_price)

        stmt = select(Product)
        count_stmt = select(func.count(distinct(Product.id))).select_from(Product)

        # Book filters require a matching book detail
        if filters.book_genre_id is not None or filters.language:
            stmt = stmt.join(Product.book_detail)
            count_stmt = count_stmt.join(Product.book_detail)
            if filters.book_genre_id is not None:
                conditions.append(BookDetail.book_genre_id == filters.book_genre_id)
            if filters.language:
                conditions.append(BookDetail.language.ilike(f"%{filters.language}%"))

        stmt = (
            stmt.options(*product_loaders())
            .where(*conditions)
            .order_by(Product.updated_at.desc(), Product.id.desc())
            .limit(filters.items_per_page)
            .offset(offset)
        )
        products = (await session.scalars(stmt)).all()
        count = await session.scalar(count_stmt.where(*conditions))

        return ProductPage(
            data=[ProductOut.model_validate(p) for p in products],
            count=count or 0
        )

    async def get_top_trending_products(self, session: AsyncSession) -> list[TrendingProductOut]:
        """Best sellers by total ordered quantity."""
        sold_quantity = (
            select(func.coalesce(func.sum(OrderItem.quantity), 0))
            .where(OrderItem.product_id == Product.id)
            .correlate(Product)
            .scalar_subquery()
            .label("sold_quantity")
        )
        stmt = (
            select(Product, sold_quantity)
            .options(*product_loaders())
            .order_by(sold_quantity.desc(), Product.id)
            .limit(Config.TRENDING_PRODUCTS_LIMIT)
        )

        try:
            rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error in get_top_trending_products: {e}")
            raise

        return [
            TrendingProductOut.model_validate(product).model_copy(update={"sold_quantity": int(sold or 0)})
            for product, sold in rows
        ]

    async def _ensure_unique_name(self, session: AsyncSession, name: str, exclude_id: int | None = None):
        stmt = select(Product.id).where(func.lower(Product.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        if await session.scalar(stmt.limit(1)) is not None:
            raise AppException(ErrorType.CONFLICT, "Product already exists!")

    @asynccontextmanager
    async def _discard_on_error(self, stored_urls: list[str]):
        """Remove images stored for a write that did not go through."""
        try:
            yield
        except Exception:
            await self.storage.delete_images(stored_urls)
            raise

    @staticmethod
    def _new_detail(product_id: int, payload: ProductPayload):
        return DETAIL_MODELS[payload.type](product_id=product_id, **payload.detail_values())

    async def _save_detail(self, session: AsyncSession, product_id: int, payload: ProductPayload):
        """Update the detail of the payload's type, creating it when it is missing."""
        detail = await session.get(DETAIL_MODELS[payload.type], product_id)
        if detail is None:
            session.add(self._new_detail(product_id, payload))
            return
        for field, value in payload.detail_values(exclude_unset=True).items():
            setattr(detail, field, value)

    async def _replace_images(self, session: AsyncSession, product_id: int, image_urls: list[str]):
        await session.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
        session.add_all([ProductImage(product_id=product_id, image_url=url) for url in image_urls])

    async def _load_product(self, session: AsyncSession, product_id: int) -> ProductOut:
        product = await session.scalar(
            select(Product)
            .options(*product_loaders())
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return ProductOut.model_validate(product)


product_service = ProductService()
