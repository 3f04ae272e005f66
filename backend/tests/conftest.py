import io
from unittest.mock import AsyncMock

import pytest
from fastapi import UploadFile
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool
from starlette.datastructures import Headers

from app.config import Config
from app.db.database import db, get_session
from app.main import app
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


@pytest.fixture(autouse=True)
def media_root(tmp_path, monkeypatch):
    """Uploaded images go to a temporary directory."""
    root = tmp_path / "media"
    monkeypatch.setattr(Config, "MEDIA_ROOT", str(root))
    return root


@pytest.fixture
async def database(monkeypatch):
    """Fresh in-memory SQLite database, shared by the test and the app."""
    await db.disconnect()
    monkeypatch.setattr(db, "url", "sqlite://")
    monkeypatch.setattr(db, "db_type", "sqlite")
    await db.connect(poolclass=StaticPool)
    await db.create_all()
    yield db
    await db.disconnect()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
async def client(database):
    """Async test client backed by the in-memory database."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
async def mock_client():
    """Async test client whose DB session is a mock (services get patched)."""
    async def _mock_session():
        yield AsyncMock()

    app.dependency_overrides[get_session] = _mock_session
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_upload():
    """Build an UploadFile like the ones FastAPI hands to routes."""
    def _make(filename: str = "image.png", content: bytes = b"\x89PNG fake image", content_type: str | None = "image/png"):
        headers = Headers({"content-type": content_type}) if content_type else None
        return UploadFile(file=io.BytesIO(content), filename=filename, headers=headers)
    return _make


@pytest.fixture
async def catalog(session):
    """Categories and book genres."""
    items = {
        "books": Category(name="Sách"),
        "pens": Category(name="Bút viết"),
        "art": Category(name="Art supplies"),
        "novel": BookGenre(name="Novel"),
        "science": BookGenre(name="Science"),
    }
    session.add_all(list(items.values()))
    await session.commit()
    return items


@pytest.fixture
def make_product(session):
    """Insert a product with its detail row directly."""
    async def _make(
        name: str,
        type: ProductType = ProductType.BOOK,
        price: int = 100000,
        discount: int = 0,
        category: Category | None = None,
        genre: BookGenre | None = None,
        language: str = "English",
        images: tuple = (),
        updated_at=None,
    ) -> Product:
        product = Product(
            name=name,
            price=price,
            discount=discount,
            stock=10,
            type=type,
            category_id=category.id if category else None,
            cover_image_url=f"/media/coverImages/{name}.png",
        )
        if updated_at is not None:
            product.updated_at = updated_at
        session.add(product)
        await session.flush()

        if type == ProductType.BOOK:
            session.add(BookDetail(
                product_id=product.id,
                book_genre_id=genre.id if genre else None,
                author="Some Author",
                language=language,
            ))
        else:
            session.add(StationeryDetail(product_id=product.id, brand="Some Brand", color="Blue"))
        session.add_all([ProductImage(product_id=product.id, image_url=url) for url in images])
        await session.commit()
        return product
    return _make


@pytest.fixture
def make_sale(session):
    """Insert an order with one line for the product."""
    async def _make(product: Product, quantity: int, status: OrderStatus = OrderStatus.COMPLETED):
        order = Order(status=status, total_price=product.price * quantity)
        order.items.append(OrderItem(product_id=product.id, quantity=quantity, price=product.price))
        session.add(order)
        await session.commit()
        return order
    return _make


@pytest.fixture
def make_review(session):
    async def _make(product: Product, rating: int):
        review = Review(product_id=product.id, rating=rating)
        session.add(review)
        await session.commit()
        return review
    return _make
