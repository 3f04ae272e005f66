from sqlalchemy import Column, DateTime, func


class TimestampMixin:
    """created_at / updated_at columns shared by mutable tables."""

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
