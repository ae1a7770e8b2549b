"""
SQLite Database connection and initialization
Async wrapper for aiosqlite + SQLAlchemy
"""

from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from pathlib import Path
from .models import Base, register_sqlite_pragma
from ...config import settings
import logging

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite+aiosqlite:///"


class Database:
    """SQLite database manager"""

    engine: Optional[AsyncEngine] = None
    async_session_maker: Optional[async_sessionmaker] = None

    @classmethod
    async def connect(cls, database_url: Optional[str] = None):
        """Connect to SQLite database and create tables"""
        url = database_url or settings.database_url
        try:
            # Ensure data directory exists
            if url.startswith(SQLITE_PREFIX) and ":memory:" not in url:
                db_path = Path(url.replace(SQLITE_PREFIX, ""))
                db_path.parent.mkdir(parents=True, exist_ok=True)

            cls.engine = create_async_engine(url, echo=False, future=True, pool_pre_ping=True)

            # Register SQLite pragmas for better performance
            register_sqlite_pragma(cls.engine)

            cls.async_session_maker = async_sessionmaker(
                cls.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with cls.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all, checkfirst=True)

            logger.info(f"✅ SQLite database initialized: {url}")

        except Exception as e:
            logger.error(f"❌ Failed to connect to SQLite database: {e}")
            raise

    @classmethod
    async def disconnect(cls):
        """Disconnect from SQLite database"""
        if cls.engine:
            await cls.engine.dispose()
            logger.info("❌ Disconnected from SQLite database")
        cls.engine = None
        cls.async_session_maker = None

    @classmethod
    def is_connected(cls) -> bool:
        return cls.engine is not None

    @classmethod
    async def get_session(cls) -> AsyncIterator[AsyncSession]:
        """Get an async session for database operations"""
        if cls.async_session_maker is None:
            raise RuntimeError("Database not initialized. Call connect() first.")

        async with cls.async_session_maker() as session:
            yield session
