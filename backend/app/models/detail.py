from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from app.db.database import Base


class BookDetail(Base):
    __tablename__ = "book_details"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    book_genre_id = Column(Integer, ForeignKey("book_genres.id", ondelete="SET NULL"))
    author = Column(String(255))
    translator = Column(String(255))
    language = Column(String(100))
    publisher = Column(String(255))
    publish_year = Column(Integer)
    page_count = Column(Integer)

    # Relationships
    book_genre = relationship("BookGenre")


class StationeryDetail(Base):
    __tablename__ = "stationery_details"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    brand = Column(String(255))
    place_production = Column(String(255))
    color = Column(String(100))
    material = Column(String(255))
