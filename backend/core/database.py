"""
Local account store: one async engine per process and request-scoped sessions.

Only two tables live here (users, user_tokens); everything else is read from
the competition API. The schema is created on startup.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover
    # SQLite leaves FK enforcement off per connection; token rows cascade with their user
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class DatabaseManager:
    """Owns the engine and hands out sessions that commit or roll back as a unit."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    async def init(self) -> None:
        if self._engine is not None:
            return
        engine = create_async_engine(self.database_url, pool_pre_ping=not self.is_sqlite)
        if self.is_sqlite:
            event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        await self.create_schema()
        logger.info("Account store ready (%s)", engine.url.render_as_string(hide_password=True))

    async def create_schema(self) -> None:
        """Create missing tables; existing ones are left untouched."""
        from models import Base

        if self._engine is None:
            raise RuntimeError("Account store is not initialized")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Account store closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session wrapped in a transaction: committed on clean exit, rolled back on error."""
        if self._sessions is None:
            raise RuntimeError("Account store is not initialized")
        async with self._sessions() as session:
            async with session.begin():
                yield session


_manager: Optional[DatabaseManager] = None


async def init_database(database_url: str) -> DatabaseManager:
    global _manager

    if _manager is None:
        _manager = DatabaseManager(database_url)
    await _manager.init()
    return _manager


async def dispose_database() -> None:
    global _manager

    if _manager is not None:
        await _manager.dispose()
        _manager = None


def get_database_manager() -> DatabaseManager:
    if _manager is None:
        raise RuntimeError("Account store is not initialized")
    return _manager
