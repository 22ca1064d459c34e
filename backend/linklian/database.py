# backend/linklian/database.py

"""
Async database access: engine/session lifecycle with schema-aware connections.
"""

import asyncio
import os
import logging
from typing import Optional, AsyncGenerator, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import text, event
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

from .models.base import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages async SQLAlchemy engine and async session factory with schema support."""

    def __init__(self) -> None:
        self.engine: Optional[AsyncEngine] = None
        self.AsyncSessionLocal: Optional[async_sessionmaker] = None
        self.schema: str = "public"
        self._is_initialized = False
        self._loop = None

    @property
    def is_postgres(self) -> bool:
        return self.engine is not None and self.engine.dialect.name == "postgresql"

    async def initialize(
        self,
        database_url: Optional[str] = None,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
        schema: str = "public",
        max_retries: int = 3,
        retry_delay: int = 1,
    ) -> None:
        """
        Initialize async engine and async session factory with schema support.
        Retries on failure.
        """
        current_loop = asyncio.get_running_loop()
        if self._is_initialized and self._loop == current_loop:
            logger.warning("Database already initialized")
            return

        db_url = database_url or os.getenv("DATABASE_URL")
        if not db_url:
            raise ValueError(
                "Database URL is required and must be async driver compatible"
            )

        # Convert sync prefix to async if needed
        if db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)

        engine_kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if db_url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                connect_args={"server_settings": {"search_path": f"{schema},public"}},
            )

        last_error = None
        for attempt in range(max_retries):
            try:
                self.engine = create_async_engine(db_url, **engine_kwargs)
                self.AsyncSessionLocal = async_sessionmaker(
                    bind=self.engine, expire_on_commit=False, class_=AsyncSession
                )
                self.schema = schema

                self._setup_event_listeners()
                await self._test_connection()

                self._is_initialized = True
                self._loop = current_loop
                logger.info(f"Async database initialized successfully with schema: {schema}")
                return
            except Exception as e:
                last_error = e
                logger.error(
                    f"Database initialization attempt {attempt + 1}/{max_retries} failed: {e}"
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(retry_delay * (attempt + 1))

        raise RuntimeError(
            f"Failed to initialize async database after {max_retries} attempts"
        ) from last_error

    def _setup_event_listeners(self) -> None:
        """Attach listeners to underlying sync engine for connection-level events."""
        if not self.engine:
            return

        sync_engine = self.engine.sync_engine

        @event.listens_for(sync_engine, "checkout")
        def on_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

        @event.listens_for(sync_engine, "checkin")
        def on_checkin(dbapi_connection, connection_record):
            logger.debug("Connection returned to pool")

    async def _test_connection(self) -> None:
        """Run a lightweight query to ensure connectivity and schema access."""
        if self.engine is None:
            raise RuntimeError("Engine not initialized")

        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            if self.is_postgres:
                await conn.execute(text(f"SET search_path TO {self.schema}, public"))
        logger.info(f"Database connection test successful (schema '{self.schema}')")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Async context manager returning an AsyncSession."""
        if not self._is_initialized or not self.AsyncSessionLocal:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self.AsyncSessionLocal() as session:
            try:
                yield session
            except Exception as e:
                logger.error(f"Async DB session error: {e}")
                await session.rollback()
                raise

    async def create_all_tables(self) -> None:
        """Create tables using async engine in the configured schema."""
        if not self._is_initialized or self.engine is None:
            raise RuntimeError("Database not initialized")

        async with self.engine.begin() as conn:
            if self.is_postgres:
                await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {self.schema}"))
                await conn.execute(text(f"SET search_path TO {self.schema}, public"))
            await conn.run_sync(Base.metadata.create_all)

        logger.info(f"All tables created successfully in schema: {self.schema}")

    async def get_connection_info(self) -> Dict[str, Any]:
        """Return pool information when available."""
        if not self.engine:
            return {"status": "Engine not initialized"}

        pool = self.engine.sync_engine.pool
        return {"pool": pool.status()}

    async def close(self) -> None:
        """Dispose the async engine."""
        if self.engine:
            await self.engine.dispose()
            self._is_initialized = False
            logger.info("Database connections closed")


# Global manager
db_manager = DatabaseManager()


# FastAPI dependencies
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an AsyncSession.
    """
    async with db_manager.get_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency exposing the session factory for concurrent reads."""
    if not db_manager.AsyncSessionLocal:
        raise RuntimeError("Database not initialized. Call initialize() first.")
    return db_manager.AsyncSessionLocal


async def init_db(
    database_url: Optional[str] = None,
    create_tables: bool = False,
    schema: str = "public",
    **engine_options: Any,
) -> None:
    """
    Initialize the async database with schema support.
    """
    await db_manager.initialize(database_url=database_url, schema=schema, **engine_options)

    if create_tables:
        await db_manager.create_all_tables()


async def check_db_health() -> Dict[str, Any]:
    """Async health check."""
    try:
        engine = db_manager.engine
        if engine is None:
            raise RuntimeError("Engine not initialized")

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        info = await db_manager.get_connection_info()
        return {
            "status": "healthy",
            "connection_pool": info,
            "message": "Database is accessible",
        }
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "message": "Database connection failed",
        }


__all__ = [
    "Base",
    "DatabaseManager",
    "db_manager",
    "get_db",
    "get_session_factory",
    "init_db",
    "check_db_health",
]
