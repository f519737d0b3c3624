"""
Engine and session plumbing for the relational storage backend.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from flashpress.db.models import Base
from flashpress.utils.config import get_database_url

logger = logging.getLogger(__name__)


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _engine_options(database_url: str) -> dict:
    """
    SQLite shares one connection so an in-memory database outlives a single
    session. Server databases get a recycled, pre-pinged pool.
    """
    if is_sqlite(database_url):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True, "pool_recycle": 300}


def _enforce_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseManager:
    """
    Owns the async engine for one database URL and hands out sessions.

    ``initialize`` builds the engine and makes sure the schema exists, so a
    fresh database is usable right after it returns.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or get_database_url()
        self.engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        engine = create_async_engine(self.database_url, echo=False, **_engine_options(self.database_url))
        if is_sqlite(self.database_url):
            _enforce_sqlite_foreign_keys(engine)

        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            logger.error(f"Could not prepare schema at {engine.url.render_as_string(hide_password=True)}: {e}")
            await engine.dispose()
            raise

        self.engine = engine
        self._sessions = async_sessionmaker(bind=engine, expire_on_commit=False)
        logger.info(f"Database ready ({engine.dialect.name})")

    async def health_check(self) -> bool:
        if self.engine is None:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on exit and rolls back on error."""
        if self._sessions is None:
            raise RuntimeError("DatabaseManager.initialize() has not been awaited")

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self._sessions = None
            logger.info("Database connections closed")
