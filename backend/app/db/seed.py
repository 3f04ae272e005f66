import asyncio
import random
from sqlalchemy import select
from app.db.database import db
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
    User,
)
from app.models.user import ROLE_ADMIN
from app.security import hash_password


CATEGORIES = ["Sách", "Bút viết", "Sổ tay", "Dụng cụ học tập"]

BOOK_GENRES = ["Văn học", "Kinh tế", "Thiếu nhi", "Kỹ năng sống", "Khoa học"]

# (name, price, discount, genre, author, language, publisher, year, pages)
BOOKS_DATA = [
    ("Nhà Giả Kim", 79000, 10, "Văn học", "Paulo Coelho", "Tiếng Việt", "NXB Hội Nhà Văn", 2020, 228),
    ("Đắc Nhân Tâm", 86000, 20, "Kỹ năng sống", "Dale Carnegie", "Tiếng Việt", "NXB Tổng Hợp", 2019, 320),
    ("Cha Giàu Cha Nghèo", 95000, 0, "Kinh tế", "Robert Kiyosaki", "Tiếng Việt", "NXB Trẻ", 2021, 336),
    ("Dế Mèn Phiêu Lưu Ký", 45000, 5, "Thiếu nhi", "Tô Hoài", "Tiếng Việt", "NXB Kim Đồng", 2018, 144),
    ("A Brief History of Time", 210000, 15, "Khoa học", "Stephen Hawking", "English", "Bantam", 1998, 212),
    ("Sapiens", 189000, 25, "Khoa học", "Yuval Noah Harari", "English", "Harper", 2015, 464),
]

# (name, price, discount, category, brand, place of production, color, material)
STATIONERY_DATA = [
    ("Bút bi Thiên Long TL-027", 5000, 0, "Bút viết", "Thiên Long", "Việt Nam", "Xanh", "Nhựa"),
    ("Bút gel Pentel EnerGel", 32000, 10, "Bút viết", "Pentel", "Nhật Bản", "Đen", "Nhựa"),
    ("Sổ tay Moleskine Classic", 450000, 5, "Sổ tay", "Moleskine", "Ý", "Đen", "Giấy"),
    ("Thước kẻ 20cm", 8000, 0, "Dụng cụ học tập", "Hồng Hà", "Việt Nam", "Trong suốt", "Nhựa"),
]

ORDER_STATUSES = list(OrderStatus)


async def seed_database():
    await db.connect()
    try:
        await db.create_all()
        await _seed()
    finally:
        await db.disconnect()


async def _seed():
    async with db.session() as session:
        # Check if data exists
        result = await session.execute(select(Product).limit(1))
        if result.scalar():
            print("Database already seeded")
            return

        categories = {name: Category(name=name) for name in CATEGORIES}
        genres = {name: BookGenre(name=name) for name in BOOK_GENRES}
        session.add_all(list(categories.values()) + list(genres.values()))

        admin = User(
            email="admin@bookstore.local",
            password_hash=hash_password("admin12345"),
            username="admin",
            display_name="Admin",
            role=ROLE_ADMIN,
            is_active=True,
        )
        session.add(admin)
        await session.flush()  # Get IDs

        products = []
        for name, price, discount, genre, author, language, publisher, year, pages in BOOKS_DATA:
            product = Product(
                name=name,
                price=price,
                discount=discount,
                stock=random.randint(10, 200),
                description=f"{name} - {author}",
                cover_image_url=f"/media/coverImages/{len(products) + 1}.jpg",
                dimension="14 x 20.5 cm",
                type=ProductType.BOOK,
                category_id=categories["Sách"].id,
            )
            session.add(product)
            await session.flush()
            session.add(BookDetail(
                product_id=product.id,
                book_genre_id=genres[genre].id,
                author=author,
                language=language,
                publisher=publisher,
                publish_year=year,
                page_count=pages,
            ))
            products.append(product)

        for name, price, discount, category, brand, place, color, material in STATIONERY_DATA:
            product = Product(
                name=name,
                price=price,
                discount=discount,
                stock=random.randint(50, 500),
                description=name,
                cover_image_url=f"/media/coverImages/{len(products) + 1}.jpg",
                type=ProductType.STATIONERY,
                category_id=categories[category].id,
            )
            session.add(product)
            await session.flush()
            session.add(StationeryDetail(
                product_id=product.id,
                brand=brand,
                place_production=place,
                color=color,
                material=material,
            ))
            products.append(product)

        for product in products:
            for i in range(random.randint(1, 3)):
                session.add(ProductImage(
                    product_id=product.id,
                    image_url=f"/media/productImages/{product.id}-{i}.jpg",
                ))

        # Sales history and ratings
        for _ in range(40):
            status = random.choice(ORDER_STATUSES)
            picked = random.sample(products, random.randint(1, 3))
            order = Order(user_id=admin.id, status=status)
            total = 0
            for product in picked:
                quantity = random.randint(1, 5)
                unit_price = product.price * (100 - product.discount) // 100
                order.items.append(OrderItem(product_id=product.id, quantity=quantity, price=unit_price))
                total += quantity * unit_price
            order.total_price = total
            session.add(order)

        for product in products:
            for _ in range(random.randint(0, 6)):
                session.add(Review(
                    product_id=product.id,
                    user_id=admin.id,
                    rating=random.randint(3, 5),
                    comment="Sản phẩm tốt",
                ))

        await session.commit()
        print("Database seeded successfully!")


if __name__ == "__main__":
    asyncio.run(seed_database())
