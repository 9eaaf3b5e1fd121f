"""
Notes Summarizer - Database Session Management
================================================

What:  Async SQLAlchemy engine wrapper, declarative Base and session scope.
How:   `Database` owns one async engine with connection pooling and hands out
       sessions that commit on success and roll back on error.
Who:   Constructed once by create_app() and shared by the history and user stores.
When:  The engine connects lazily on first use and is disposed at shutdown.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

SQLite URLs (used by the test-suite) skip pool sizing, and in-memory SQLite
uses a StaticPool so every session sees the same database.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from notes_summarizer.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


def _engine_options(url: str, settings: Optional[Settings]) -> dict:
    parsed = make_url(url)
    options: dict = {"echo": bool(settings and settings.log_level == "DEBUG")}

    if parsed.get_backend_name() == "sqlite":
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        return options

    if settings is not None:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
        )
    options["pool_recycle"] = 3600
    return options


class Database:
    """
    Owns the async engine and session factory for one application.

    expire_on_commit=False keeps ORM attributes readable after the session
    that loaded them has committed.
    """

    def __init__(self, url: str, settings: Optional[Settings] = None):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **_engine_options(url, settings))
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_url, settings)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yields a session, committing on success and rolling back on any error.

        The session is always closed so its connection returns to the pool.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_all(self) -> None:
        """Creates every table known to Base.metadata (tests and local dev)."""
        # Imported for their side effect of registering tables on Base.metadata.
        from notes_summarizer.models import summary, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Closes all pooled connections."""
        await self.engine.dispose()
        logger.info("Database engine disposed")
