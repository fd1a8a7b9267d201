"""
Database Infrastructure
=======================

Manages the process-wide connection pool, session lifecycle and schema.

Uses SQLAlchemy 2.0 with aiomysql for async MySQL operations.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.config import Settings
from quizhub.core import DatabaseUnavailableException
from quizhub.infrastructure.database.base import Base
from quizhub.infrastructure.database.connection import Database, compute_backoff_delay
from quizhub.infrastructure.database.errors import describe_database_error
from quizhub.infrastructure.database.options import DatabaseOptions
from quizhub.infrastructure.database.schema import load_schema_statements


# Global pool manager
_database: Optional[Database] = None


def init_database(settings: Optional[Settings] = None) -> Database:
    """
    Create the process-wide Database instance.

    Should be called during application startup, followed by
    ``await database.initialize()``.

    Returns:
        Database: The pool manager
    """
    global _database
    _database = Database(settings)
    return _database


def get_database() -> Database:
    """
    Get the process-wide Database instance.

    Raises:
        DatabaseUnavailableException: If init_database() has not been called
    """
    if _database is None:
        raise DatabaseUnavailableException("Database not initialized. Call init_database() first.")
    return _database


async def close_database() -> None:
    """
    Stop monitoring and dispose of the pool.

    Should be called during application shutdown.
    """
    global _database

    if _database is not None:
        await _database.cleanup()
        _database = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async generator for database sessions.

    For use with FastAPI's Depends() - FastAPI handles the lifecycle.

    Usage in FastAPI:
        @app.get("/users")
        async def get_users(session: AsyncSession = Depends(get_session)):
            result = await session.execute(select(UserModel))
            return result.scalars().all()

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    async with get_database().session() as session:
        yield session


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions.

    For use in background jobs and scripts.

    Usage:
        async with get_session_context() as session:
            repo = SQLAlchemyUserRepository(session)
            user = await repo.get_by_email("a@example.com")

    Yields:
        AsyncSession: SQLAlchemy async session
    """
    async with get_database().session() as session:
        yield session


__all__ = [
    "Base",
    "Database",
    "DatabaseOptions",
    "compute_backoff_delay",
    "describe_database_error",
    "load_schema_statements",
    "init_database",
    "get_database",
    "close_database",
    "get_session",
    "get_session_context",
]
