from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from app.db.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)

    # Relationships
    products = relationship("Product", back_populates="category")


class BookGenre(Base):
    __tablename__ = "book_genres"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
