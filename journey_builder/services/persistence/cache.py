"""
Local journey cache.

Holds the last loaded or saved journey, the unsaved draft graph and the
latest stats under ``journey:{id}``, ``journey:{id}:draft`` and
``journey:{id}:stats``. A cache failure never breaks loading or saving: every
error is logged and reads fall back to None.
"""

from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from journey_builder.core.database import DatabaseManager, db_manager
from journey_builder.core.logging import get_logger
from journey_builder.models.database import CacheEntry
from journey_builder.utils.constants import JOURNEY_CACHE_KEY, JOURNEY_DRAFT_CACHE_KEY, JOURNEY_STATS_CACHE_KEY

logger = get_logger(__name__)


def journey_key(journey_id: str) -> str:
    return JOURNEY_CACHE_KEY.format(journey_id=journey_id)


def draft_key(journey_id: str) -> str:
    return JOURNEY_DRAFT_CACHE_KEY.format(journey_id=journey_id)


def stats_key(journey_id: str) -> str:
    return JOURNEY_STATS_CACHE_KEY.format(journey_id=journey_id)


class JourneyCache(ABC):
    """Key/value store for JSON documents. Implementations must not raise."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def close(self) -> None:
        """Release resources held by the cache."""


class InMemoryJourneyCache(JourneyCache):
    """Process-local cache; values are deep-copied in and out."""

    def __init__(self):
        self._entries: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._entries.get(key)
        return deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._entries[key] = deepcopy(value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self):
        return sorted(self._entries)


class SqlJourneyCache(JourneyCache):
    """Cache persisted through SQLAlchemy, SQLite by default."""

    def __init__(self, database: Optional[DatabaseManager] = None):
        self.database = database or db_manager
        self._ready = False

    async def _ensure_tables(self) -> None:
        if not self._ready:
            await self.database.create_tables()
            self._ready = True

    async def get(self, key: str) -> Optional[Any]:
        try:
            await self._ensure_tables()
            async with self.database.session_factory() as session:
                result = await session.execute(select(CacheEntry).where(CacheEntry.key == key))
                entry = result.scalar_one_or_none()
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.warning("Cache read failed", extra={"cache_key": key, "error": str(e)})
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._ensure_tables()
            async with self.database.session_factory() as session:
                entry = await session.get(CacheEntry, key)
                if entry is None:
                    session.add(CacheEntry(key=key, value=value))
                else:
                    entry.value = value
                await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Cache write failed", extra={"cache_key": key, "error": str(e)})

    async def delete(self, key: str) -> None:
        try:
            await self._ensure_tables()
            async with self.database.session_factory() as session:
                entry = await session.get(CacheEntry, key)
                if entry is not None:
                    await session.delete(entry)
                    await session.commit()
        except SQLAlchemyError as e:
            logger.warning("Cache delete failed", extra={"cache_key": key, "error": str(e)})

    async def close(self) -> None:
        await self.database.close()
