"""
Database Management and Configuration.

This module owns the asynchronous database connection of the Sapien API. It
uses SQLAlchemy with `asyncio` support and SQLModel for data modeling.

Key Components:
- `Database`: Wraps the async engine and session factory for one database URL.
  It is constructed by the application factory at startup, stored on
  `app.state.db` and disposed on shutdown. Nothing in the code base reaches for
  a module-level engine.
- `Database.create_all`: Creates all tables from the SQLModel metadata.
- `Database.session`: Async context manager yielding an `AsyncSession`.
- `Database.ping`: Connectivity check for the health endpoint.

Architectural Design:
- Asynchronous Operations: `aiosqlite` for SQLite (development, tests) and
  `asyncpg` for PostgreSQL (production).
- Connection Pooling: Non-SQLite engines use a bounded, pre-pinged pool.
- Environment-Driven Configuration: The URL comes from `Settings.database_url`.
"""

import json
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from core.exceptions import DatabaseConnectionError
from core.logging_config import get_logger

logger = get_logger(__name__)


def json_serializer(value) -> str:
    """Serialize JSON columns without escaping non-ASCII characters"""
    return json.dumps(value, ensure_ascii=False)


def _create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            json_serializer=json_serializer,
            echo=echo,
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_wal(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        json_serializer=json_serializer,
        echo=echo,
    )


class Database:
    """Async engine and session factory for a single database"""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = _create_engine(database_url, echo=echo)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def create_all(self):
        """Create all tables. Called during application startup."""
        # Register table models on the metadata
        import core.models  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except Exception as e:
            logger.error(f"Failed to create Sapien database tables: {e}")
            raise DatabaseConnectionError("create_all", str(e)) from e
        logger.info("Sapien database tables created successfully")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds"""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database connections closed")
