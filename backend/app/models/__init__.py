from app.models.catalog import BookGenre, Category
from app.models.detail import BookDetail, StationeryDetail
from app.models.order import Order, OrderItem, OrderStatus
from app.models.product import Product, ProductImage, ProductType
from app.models.review import Review
from app.models.user import User

__all__ = [
    "BookDetail",
    "BookGenre",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "ProductImage",
    "ProductType",
    "Review",
    "StationeryDetail",
    "User",
]
