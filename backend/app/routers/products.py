from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Config
from app.db.database import get_session
from app.errors import ErrorType
from app.exceptions import AppException
from app.models import ProductType
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
from app.services.product_service import product_service

router = APIRouter(prefix="/api/v1/products", tags=["products"])


def search_params(
    page: int = Query(Config.DEFAULT_PAGE),
    items_per_page: int = Query(Config.DEFAULT_ITEMS_PER_PAGE, alias="itemsPerPage"),
    search: str | None = None,
    type: ProductType | None = None,
    book_genre_id: int | None = Query(None, alias="bookGenreId"),
    language: str | None = None,
    category_id: int | None = Query(None, alias="categoryId"),
    min_price: str | None = Query(None, alias="minPrice", description="Ignored when not a number"),
    max_price: str | None = Query(None, alias="maxPrice", description="Ignored when not a number"),
) -> ProductSearchParams:
    return ProductSearchParams(
        page=page,
        items_per_page=items_per_page,
        search=search,
        type=type,
        book_genre_id=book_genre_id,
        language=language,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
    )


def product_payload(
    name: str = Form(...),
    price: str = Form(...),
    type: str = Form(...),
    discount: str | None = Form(None),
    stock: str | None = Form(None),
    description: str | None = Form(None),
    dimension: str | None = Form(None),
    category_id: str | None = Form(None, alias="categoryId"),
    book_detail: str | None = Form(None, alias="bookDetail"),
    stationery_detail: str | None = Form(None, alias="stationeryDetail"),
    product_image_urls: str | None = Form(None, alias="productImageUrls"),
) -> ProductPayload:
    """Build the product payload from multipart form fields (nested values as JSON)."""
    fields = {
        "name": name,
        "price": price,
        "type": type,
        "discount": discount,
        "stock": stock,
        "description": description,
        "dimension": dimension,
        "category_id": category_id,
        "book_detail": book_detail,
        "stationery_detail": stationery_detail,
    }
    data = {key: value for key, value in fields.items() if value not in (None, "")}
    # An explicit (even empty) list replaces the gallery on update
    if product_image_urls is not None:
        data["product_images"] = product_image_urls
    return ProductPayload.model_validate(data)


def _check_image_count(product_images: list[UploadFile] | None) -> list[UploadFile]:
    product_images = product_images or []
    if len(product_images) > Config.MAX_PRODUCT_IMAGES:
        raise AppException(
            ErrorType.UNPROCESSABLE,
            f"At most {Config.MAX_PRODUCT_IMAGES} product images are allowed"
        )
    return product_images


@router.get("/categories", response_model=list[CategoryOut])
async def get_categories(session: AsyncSession = Depends(get_session)):
    return await product_service.get_categories(session)


@router.get("/book-genres", response_model=list[BookGenreOut])
async def get_book_genres(session: AsyncSession = Depends(get_session)):
    return await product_service.get_book_genres(session)


@router.get("/search", response_model=ProductPage)
async def search_and_filter_products(
    filters: ProductSearchParams = Depends(search_params),
    session: AsyncSession = Depends(get_session),
):
    return await product_service.search_and_filter_products(session, filters)


@router.get("/", response_model=ProductPage)
async def get_products(
    page: int = Query(Config.DEFAULT_PAGE, ge=1),
    items_per_page: int = Query(Config.DEFAULT_ITEMS_PER_PAGE, alias="itemsPerPage", ge=1, le=Config.MAX_ITEMS_PER_PAGE),
    q: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    return await product_service.get_products(session, page, items_per_page, q)


@router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductPayload = Depends(product_payload),
    cover_image: UploadFile | None = File(None, alias="coverImageUrl"),
    product_images: list[UploadFile] | None = File(None, alias="productImages"),
    session: AsyncSession = Depends(get_session),
):
    product_images = _check_image_count(product_images)
    return await product_service.create(session, payload, cover_image, product_images)


@router.get("/trend-products", response_model=list[TrendingProductOut])
async def get_trending_products(session: AsyncSession = Depends(get_session)):
    return await product_service.get_top_trending_products(session)


@router.get("/{product_id}", response_model=ProductDetailOut)
async def get_product(product_id: int, session: AsyncSession = Depends(get_session)):
    product = await product_service.get_product_by_id(session, product_id)
    if product is None:
        raise AppException(ErrorType.NOT_FOUND, "Product not found!")
    return product


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    payload: ProductPayload = Depends(product_payload),
    cover_image: UploadFile | None = File(None, alias="coverImageUrl"),
    product_images: list[UploadFile] | None = File(None, alias="productImages"),
    session: AsyncSession = Depends(get_session),
):
    product_images = _check_image_count(product_images)
    return await product_service.update(session, product_id, payload, cover_image, product_images)


@router.delete("/{product_id}", response_model=ProductSummary)
async def delete_product(product_id: int, session: AsyncSession = Depends(get_session)):
    return await product_service.delete_by_id(session, product_id)
