"""
Embedded database connection and session management for PromptVault.

The ``Database`` object owns one async SQLAlchemy engine bound to a SQLite file
(aiosqlite driver). It is created explicitly, opened once and closed by its
owner; nothing here is module-global, so tests can run independent instances
side by side.

Every connection is configured with:
- ``journal_mode=WAL`` (single writer, concurrent readers)
- ``foreign_keys=ON`` so that deleting a parent cascades to its children
- explicit ``BEGIN`` emission so SAVEPOINTs work with the sqlite driver
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional, Union

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Base class for all SQLAlchemy models
Base = declarative_base()


# FTS5 index over prompt text, kept in sync by triggers
FTS_STATEMENTS = [
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS prompts_fts USING fts5(
        title, description, content,
        content='prompts', content_rowid='id'
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS prompts_fts_insert AFTER INSERT ON prompts BEGIN
        INSERT INTO prompts_fts(rowid, title, description, content)
        VALUES (new.id, new.title, new.description, new.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS prompts_fts_delete AFTER DELETE ON prompts BEGIN
        INSERT INTO prompts_fts(prompts_fts, rowid, title, description, content)
        VALUES ('delete', old.id, old.title, old.description, old.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS prompts_fts_update AFTER UPDATE ON prompts BEGIN
        INSERT INTO prompts_fts(prompts_fts, rowid, title, description, content)
        VALUES ('delete', old.id, old.title, old.description, old.content);
        INSERT INTO prompts_fts(rowid, title, description, content)
        VALUES (new.id, new.title, new.description, new.content);
    END
    """,
]


class Database:
    """
    Explicitly owned SQLite database handle.

    Usage:
        ```python
        database = Database(settings.database_path)
        await database.open()
        async with database.session() as session:
            ...
        await database.close()
        ```
    """

    def __init__(self, path: Union[str, Path], echo: bool = False):
        self.path = Path(path)
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        return self._engine

    async def open(self) -> "Database":
        """
        Create the engine and the schema (tables, FTS index, triggers).

        Calling ``open`` on an already open database is a no-op.
        """
        if self._engine is not None:
            return self

        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Opening database at {self.path}")

        engine = create_async_engine(f"sqlite+aiosqlite:///{self.path}", echo=self.echo)
        _configure_sqlite_engine(engine)

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Manual flush control
        )

        await self.init_schema()
        return self

    async def init_schema(self) -> None:
        """Create all tables defined in Base metadata plus the FTS index."""
        # Import models so they are registered on Base.metadata
        from .. import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            for statement in FTS_STATEMENTS:
                await conn.execute(text(statement))

    async def close(self) -> None:
        """Dispose the engine and close all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info(f"Closed database at {self.path}")
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transactional session scope.

        Notes:
            - Successful completion triggers commit
            - Exceptions trigger rollback
            - Session is always closed
        """
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized")

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False


def _configure_sqlite_engine(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # Take over transaction control from the driver so SAVEPOINT works
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")
