import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import DeclarativeBase

from app.config import Config

logger = logging.getLogger(__name__)


# SQLAlchemy Base for ORM models
class Base(DeclarativeBase):
    pass


def get_async_url(url: str, db_type: str) -> str:
    """Convert database URL to async SQLAlchemy format."""
    db_type = (db_type or "").lower()
    if db_type == "postgresql":
        return url.replace("postgresql://", "postgresql+asyncpg://")
    elif db_type == "mysql":
        return url.replace("mysql://", "mysql+aiomysql://")
    elif db_type == "sqlite":
        return url.replace("sqlite://", "sqlite+aiosqlite://")
    return url


class Database:
    """Owns the async engine and the session factory built on it."""

    def __init__(self, url: str | None = None, db_type: str | None = None):
        self.url = url or Config.DATABASE_URL
        self.db_type = db_type or Config.DATABASE_TYPE
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self, **engine_kwargs):
        """Create database engine."""
        if self.engine:
            return
        self.engine = create_async_engine(
            get_async_url(self.url, self.db_type),
            echo=Config.DATABASE_ECHO,
            **engine_kwargs
        )
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        logger.info(f"Database engine created ({self.db_type})")

    async def disconnect(self):
        """Close database engine."""
        if self.engine:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None

    async def create_all(self):
        """Create all tables known to the ORM metadata."""
        if not self.engine:
            await self.connect()

        # Register every model on Base.metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Return True if the database answers `SELECT 1`."""
        if not self.engine:
            await self.connect()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def session(self) -> AsyncSession:
        if not self.session_factory:
            raise RuntimeError("Database is not connected")
        return self.session_factory()


db = Database()


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a session and closes it afterwards."""
    if not db.engine:
        await db.connect()
    async with db.session() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit the session's work on success, roll it back on any error."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
