"""Async database connection management.

Wraps a SQLAlchemy async engine and session factory. The default URL points
at a local SQLite file through aiosqlite; any async driver URL works.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from starbridge.config.settings import get_settings
from starbridge.db.base import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the async engine and hands out sessions."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or get_settings().database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def initialize(self) -> None:
        if self._engine is not None:
            return

        kwargs = {"echo": False}
        if self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
            # One shared connection so every session sees the same in-memory DB
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}

        self._engine = create_async_engine(self.database_url, **kwargs)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.info("Database engine created for %s", self._redacted_url())

    async def create_tables(self) -> None:
        # Import models so their tables register on Base.metadata
        import starbridge.models  # noqa: F401

        self.initialize()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (%d tables)", len(Base.metadata.tables))

    async def test_connection(self) -> bool:
        self.initialize()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Database connection test failed: %s", e)
            return False

    @asynccontextmanager
    async def get_async_session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; roll back if the block raises."""
        self.initialize()
        session = self._session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None

    def _redacted_url(self) -> str:
        if "@" not in self.database_url:
            return self.database_url
        scheme, rest = self.database_url.split("://", 1)
        return f"{scheme}://***@{rest.split('@', 1)[1]}"

