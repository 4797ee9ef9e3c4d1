"""Async engine for the account store (SQLModel over SQLite by default)."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from busops.core.config import Settings
from busops.core.logging import get_logger
from busops.models.auth import Account  # noqa: F401  registers the accounts table

logger = get_logger(__name__)

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
)


def _apply_sqlite_pragmas(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


class Database:
    """Owns the engine and hands out sessions that commit on success."""

    def __init__(self, settings: Settings):
        self.url = settings.database_url
        self.echo = settings.database_echo
        self.engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def startup(self) -> None:
        """Create the engine and any missing tables."""
        self.engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)
        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _apply_sqlite_pragmas)

        self._sessions = async_sessionmaker(bind=self.engine, class_=AsyncSession,
                                            expire_on_commit=False)
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except Exception as e:
            logger.error("Account database unavailable", error=str(e))
            await self.engine.dispose()
            raise

        logger.info("Account database ready", backend=self.engine.dialect.name)

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._sessions = None
            logger.info("Account database closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session scope: commit when the block succeeds, roll back when it raises."""
        if self._sessions is None:
            raise RuntimeError("Database not initialized, call startup() first")

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
