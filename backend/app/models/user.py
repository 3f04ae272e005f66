from sqlalchemy import Boolean, Column, Integer, String
from app.db.database import Base
from app.models.mixins import TimestampMixin

ROLE_CLIENT = "client"
ROLE_ADMIN = "admin"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False)
    display_name = Column(String(255))
    avatar = Column(String(500))
    role = Column(String(20), nullable=False, default=ROLE_CLIENT)
    is_active = Column(Boolean, nullable=False, default=False)
    verify_token = Column(String(255))
