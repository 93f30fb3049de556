"""
Local cache database configuration and connection management.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from journey_builder.core.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DatabaseManager:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def database_url(self) -> str:
        return self._database_url or get_settings().CACHE_DATABASE_URL

    @property
    def engine(self) -> AsyncEngine:
        """Get database engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    def _create_engine(self) -> AsyncEngine:
        """Create database engine."""
        settings = get_settings()
        engine_kwargs = {
            "echo": settings.is_development and settings.DEBUG,
            "pool_pre_ping": True,
            "pool_recycle": settings.CACHE_POOL_RECYCLE,
        }

        # SQLite files do not benefit from pooling
        if self.database_url.startswith("sqlite"):
            engine_kwargs["poolclass"] = NullPool

        engine = create_async_engine(self.database_url, **engine_kwargs)

        logger.info(
            "Cache database engine created",
            extra={"database_url": self.database_url.split("@")[-1]},  # Log without credentials
        )

        return engine

    async def create_tables(self) -> None:
        """Create all database tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Cache tables created")

    async def drop_tables(self) -> None:
        """Drop all database tables (use with caution)."""
        if get_settings().is_production:
            raise RuntimeError("Cannot drop tables in production environment")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Cache tables dropped")

    async def close(self) -> None:
        """Close database connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Cache database connections closed")


# Global database manager instance
db_manager = DatabaseManager()


async def init_db() -> None:
    """Initialize database."""
    await db_manager.create_tables()


async def close_db() -> None:
    """Close database connections."""
    await db_manager.close()
