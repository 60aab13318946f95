"""
Tecspacs: Database Engine & Session Management
==============================================

What:  Async SQLAlchemy engine, session factory and schema initialization
       for the embedded SQLite store.
How:   `Database` owns one engine. `initialize()` creates the tables,
       `session()` yields a session that commits on success and rolls back
       on error, `close()` disposes the engine.
Who:   Constructed once by the CLI lifespan (or a test fixture) and injected
       into DatabaseManager.

SQLite specifics:
    - Driver: aiosqlite (sqlite+aiosqlite:///path/to/file.db)
    - Every new connection enables foreign keys and sets busy_timeout
    - In-memory URLs use a StaticPool: each pooled connection to
      ":memory:" would otherwise be a separate, empty database
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from tecspacs.config import settings
from tecspacs.exceptions import StoreError

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between `Database.initialize()` (create_all)
    and Alembic's autogenerate.
    """
    pass


def _is_memory_url(url: str) -> bool:
    database = make_url(url).database
    return database in (None, "", ":memory:")


class Database:
    """
    Handle on the embedded relational store.

    Lifecycle:
        db = Database(url)
        await db.initialize()      # idempotent, creates tables if absent
        async with db.session() as session:
            ...
        await db.close()

    Failure modes:
        Opening the file or creating the schema fails → StoreError.
        Using a session before initialize() or after close() → StoreError.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or settings.sqlalchemy_url
        engine_kwargs = {"echo": settings.db_echo if echo is None else echo}
        if _is_memory_url(self.url):
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)
        event.listen(self.engine.sync_engine, "connect", self._configure_connection)

        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self.is_initialized = False
        self.is_closed = False

    @staticmethod
    def _configure_connection(dbapi_connection, connection_record) -> None:
        """Per-connection PRAGMAs; SQLite does not persist them in the file."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(settings.busy_timeout_ms)}")
        cursor.close()

    def _ensure_parent_directory(self) -> None:
        if _is_memory_url(self.url):
            return
        database = make_url(self.url).database
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    async def initialize(self) -> None:
        """
        Create both tables (and their indexes) if they do not exist.

        What:    Runs Base.metadata.create_all on a connection.
        When:    Once at startup; calling it again is a no-op that keeps data.
        Raises:  StoreError if the file cannot be opened or the DDL fails.
        """
        if self.is_initialized:
            return
        if self.is_closed:
            raise StoreError(message="Database has been closed", context={"url": self.url})

        # Registers the snippets and packages tables on Base.metadata
        from tecspacs import models  # noqa: F401

        try:
            self._ensure_parent_directory()
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to initialize database %s: %s", self.url, str(e))
            raise StoreError(
                message=f"Failed to initialize database: {e}",
                context={"url": self.url, "error_type": type(e).__name__},
            ) from e

        self.is_initialized = True
        logger.info("Database initialized at %s", self.url)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide a session scoped to one store operation.

        How it works:
            1. Creates a new session from the factory
            2. Yields it to the caller, who runs its statements
            3. On success: commits
            4. On error: rolls back and re-raises
            5. Always: closes the session

        Example:
            async with db.session() as session:
                session.add(Snippet(...))
        """
        if not self.is_initialized or self.is_closed:
            raise StoreError(
                message="Database is not initialized; call initialize() first",
                context={"url": self.url},
            )

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """
        Dispose the engine and release the database file.

        Safe to call more than once.
        """
        if self.is_closed:
            return
        await self.engine.dispose()
        self.is_closed = True
        self.is_initialized = False
        logger.info("Database closed: %s", self.url)
