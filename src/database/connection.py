"""
Database Connection Management

Async SQLAlchemy 2.0 engine and request-scoped sessions. Every session is one
transaction: committed when the unit of work finishes, rolled back on error.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import event, text

from src.config import get_settings
from src.database.models import Base

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for a PostgreSQL (asyncpg) or SQLite (aiosqlite) URL.

    SQLite connections get foreign key enforcement switched on so ON DELETE
    rules behave as they do on PostgreSQL.
    """
    engine_config = {
        "echo": echo,
        "pool_pre_ping": True,
    }
    if database_url.startswith("sqlite"):
        # An in-memory database only lives as long as its single connection
        engine_config["poolclass"] = StaticPool if ":memory:" in database_url else NullPool
    else:
        # asyncpg keeps its own connections; avoid double pooling across workers
        engine_config["poolclass"] = NullPool

    engine = create_async_engine(database_url, **engine_config)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the application and the test suite."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(
    url: Optional[str] = None,
    create_tables: Optional[bool] = None,
) -> AsyncEngine:
    """
    Initialize the database engine.

    Args:
        url: Override for the configured async URL
        create_tables: Create missing tables (defaults to POSTGRES_CREATE_TABLES)

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = get_settings()
    database_url = url or settings.database.async_url

    _engine = create_engine(database_url, echo=settings.database.echo)
    _async_session_factory = create_session_factory(_engine)

    if create_tables is None:
        create_tables = settings.database.create_tables

    try:
        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database connection established",
            backend=_engine.dialect.name,
            tables_created=create_tables,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the engine and its connections."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Context manager that provides a database session and handles
    commit/rollback/close automatically.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _async_session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db_dependency() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Example:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db_dependency)):
            ...
    """
    async with get_db() as session:
        yield session


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
