"""
Database Pool Manager
=====================

Owns the async SQLAlchemy engine (connection pool) and keeps it healthy:

- periodic health check (APScheduler interval job)
- bounded exponential backoff reconnect (APScheduler one-shot job)
- schema bootstrap from the bundled DDL

The driver manages the pooled connections themselves; this class only
creates, probes and disposes the pool.
"""

import random
import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quizhub.config import Settings, get_settings
from quizhub.core import ConfigurationException, DatabaseUnavailableException
from quizhub.infrastructure.database.base import Base
from quizhub.infrastructure.database.errors import describe_database_error, error_details
from quizhub.infrastructure.database.options import DatabaseOptions
from quizhub.infrastructure.database.schema import load_schema_statements
from quizhub.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

HEALTH_CHECK_JOB_ID = "db_health_check"
RECONNECT_JOB_ID = "db_reconnect"

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_$]+$")


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 5.0,
    factor: float = 1.5,
    max_delay: float = 30.0,
    jitter: float = 0.2,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay in seconds before reconnect ``attempt`` (1-based).

    ``min(max_delay, base_delay * factor ** (attempt - 1) * (1 + rng() * jitter))``
    """
    return min(
        max_delay,
        base_delay * factor ** (attempt - 1) * (1 + rng() * jitter),
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Connection pool manager with health monitoring and reconnect.

    Args:
        settings: Application settings (defaults to the cached instance)
        scheduler: Scheduler for the health-check and reconnect jobs. When
            omitted an ``AsyncIOScheduler`` is created and owned by this object.
        rng: Random source for backoff jitter
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        rng: Callable[[], float] = random.random,
    ):
        self.settings = settings or get_settings()
        self.options = DatabaseOptions.from_settings(self.settings)

        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

        self.is_connected = False
        self.connection_errors = 0
        self.reconnect_attempts = 0
        self.max_reconnect_attempts = self.settings.db_max_reconnect_attempts
        self.reconnect_delay = self.settings.db_reconnect_delay
        self.health_check_interval = self.settings.db_health_check_interval

        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._rng = rng
        self._initializing = False
        self._reconnect_pending = False

    @property
    def is_reconnecting(self) -> bool:
        """True while a reconnect is scheduled or ``initialize()`` is running."""
        return self._initializing or self._reconnect_pending

    # ========== Lifecycle ==========

    async def initialize(self) -> bool:
        """
        Create the pool, start monitoring, verify the connection and apply the schema.

        Failures are logged and turned into a scheduled reconnect; this method
        never raises. The reconnect counters are reset only once every step
        has succeeded.

        Returns:
            bool: True when the database is connected and ready
        """
        self._initializing = True
        self._reconnect_pending = False
        try:
            logger.info(
                "Initializing database connection",
                extra=self.options.describe()
            )

            if self.options.is_mysql and self.settings.db_create_database:
                await self.ensure_database_exists()

            await self._dispose_engine()
            self.engine = self._create_engine()
            self.session_maker = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("Database connection pool initialized")

            self.setup_connection_monitoring()

            await self.test_connection()
            if self.settings.db_initialize_schema:
                await self.initialize_schema()

            self.connection_errors = 0
            self.reconnect_attempts = 0
            return True
        except Exception as e:
            logger.error(
                "Failed to initialize database connection pool",
                extra=error_details(e)
            )
            self.is_connected = False
            self.schedule_reconnect()
            return False
        finally:
            self._initializing = False

    def _create_engine(self) -> AsyncEngine:
        engine = create_async_engine(self.options.url, **self.options.engine_kwargs())
        if self.options.backend == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    def _get_scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        if self._owns_scheduler and not self._scheduler.running:
            self._scheduler.start()
        return self._scheduler

    def setup_connection_monitoring(self) -> None:
        """(Re)register the periodic health-check job."""
        self._get_scheduler().add_job(
            self.check_health,
            "interval",
            seconds=self.health_check_interval,
            id=HEALTH_CHECK_JOB_ID,
            name="Database health check",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    async def check_health(self) -> bool:
        """Health-check job body; schedules a reconnect when a live connection is lost."""
        # The pool may be swapped out under a concurrent reconnect
        if self.is_reconnecting:
            logger.debug("Skipping database health check while reconnecting")
            return False

        was_connected = self.is_connected
        try:
            return await self.test_connection(log_success=False)
        except Exception as e:
            logger.error("Database health check failed", extra=error_details(e))
            if was_connected:
                self.is_connected = False
                self.schedule_reconnect()
            return False

    async def test_connection(self, log_success: bool = True) -> bool:
        """
        Verify the pool can serve a connection.

        Args:
            log_success: Whether to log a successful (re)connection

        Returns:
            bool: True if ``SELECT 1`` round-trips

        Raises:
            DatabaseUnavailableException: If the pool has not been created
            Exception: The driver error, after logging it
        """
        try:
            if self.engine is None:
                raise DatabaseUnavailableException()

            async with self.engine.connect() as conn:
                result = await conn.execute(text("SELECT 1 AS connection_test"))
                if result.scalar() != 1:
                    return False

            if not self.is_connected:
                self.is_connected = True
                if log_success:
                    logger.info("Database connection established successfully")
            return True

        except Exception as e:
            self.is_connected = False
            self.connection_errors += 1

            logger.error(
                f"Database connection test failed (Error #{self.connection_errors})",
                extra=error_details(e)
            )
            logger.error(describe_database_error(e))
            raise

    def schedule_reconnect(self) -> Optional[float]:
        """
        Schedule a reconnection attempt with bounded exponential backoff.

        Returns:
            float | None: Delay in seconds, or None once attempts are exhausted
        """
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            logger.error(
                f"Maximum reconnection attempts ({self.max_reconnect_attempts}) reached. Giving up."
            )
            self._reconnect_pending = False
            return None

        self.reconnect_attempts += 1
        delay = compute_backoff_delay(
            self.reconnect_attempts,
            base_delay=self.reconnect_delay,
            factor=self.settings.db_reconnect_backoff,
            max_delay=self.settings.db_reconnect_max_delay,
            jitter=self.settings.db_reconnect_jitter,
            rng=self._rng,
        )

        logger.info(
            f"Scheduling database reconnection attempt #{self.reconnect_attempts} "
            f"in {round(delay)} seconds",
            extra={"attempt": self.reconnect_attempts, "delay_seconds": round(delay, 2)}
        )

        self._get_scheduler().add_job(
            self.initialize,
            "date",
            run_date=datetime.now(timezone.utc) + timedelta(seconds=delay),
            id=RECONNECT_JOB_ID,
            name="Database reconnect",
            replace_existing=True,
        )
        self._reconnect_pending = True
        return delay

    async def cleanup(self) -> None:
        """Stop monitoring jobs and close the pool."""
        logger.info("Closing database connection pool")

        if self._scheduler is not None:
            for job_id in (HEALTH_CHECK_JOB_ID, RECONNECT_JOB_ID):
                if self._scheduler.get_job(job_id) is not None:
                    self._scheduler.remove_job(job_id)
            if self._owns_scheduler and self._scheduler.running:
                self._scheduler.shutdown(wait=False)

        try:
            await self._dispose_engine()
        except Exception as e:
            logger.error("Error closing database connection pool", extra=error_details(e))
        self.is_connected = False

    async def _dispose_engine(self) -> None:
        if self.engine is not None:
            engine, self.engine = self.engine, None
            self.session_maker = None
            await engine.dispose()

    # ========== Access ==========

    def get_engine(self) -> AsyncEngine:
        """
        Get the connection pool.

        Raises:
            DatabaseUnavailableException: If the pool has not been created
        """
        if self.engine is None:
            raise DatabaseUnavailableException()
        return self.engine

    async def query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Union[List[Dict[str, Any]], int]:
        """
        Execute a statement with named placeholders inside a transaction.

        Returns:
            Rows as dicts for statements that return rows, otherwise the
            affected row count.
        """
        try:
            async with self.get_engine().begin() as conn:
                result = await conn.execute(text(sql), params or {})
                if result.returns_rows:
                    return [dict(row._mapping) for row in result]
                return result.rowcount
        except Exception as e:
            logger.error(
                "Database query error",
                extra={"query": sql, "parameters": params, **error_details(e)}
            )
            raise

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """Borrow a pooled connection; it is returned to the pool on exit."""
        try:
            conn = await self.get_engine().connect()
        except Exception as e:
            logger.error("Error getting database connection", extra=error_details(e))
            raise
        try:
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """ORM session that commits on success and rolls back on error."""
        if self.session_maker is None:
            raise DatabaseUnavailableException()

        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ========== Schema ==========

    async def ensure_database_exists(self) -> bool:
        """
        Create the configured MySQL database if it is missing.

        Returns:
            bool: True if the database had to be created
        """
        name = self.options.database
        if not name:
            return False
        if not _IDENTIFIER.match(name):
            raise ConfigurationException(
                f"Invalid database name: {name!r}",
                {"database": name}
            )

        server_engine = create_async_engine(
            self.options.server_url,
            connect_args=dict(self.options.connect_args),
        )
        try:
            async with server_engine.begin() as conn:
                result = await conn.execute(
                    text("SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = :name"),
                    {"name": name}
                )
                if result.first() is not None:
                    return False

                await conn.exec_driver_sql(
                    f"CREATE DATABASE IF NOT EXISTS `{name}` "
                    "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
                )
                logger.info(f"Created database: {name}")
                return True
        finally:
            await server_engine.dispose()

    async def initialize_schema(self) -> None:
        """
        Create the tables if they do not exist.

        MySQL runs the bundled DDL statement by statement; other dialects
        (SQLite in development) use the ORM metadata.
        """
        # Register the models on Base.metadata
        from quizhub.quizzes.infrastructure import models  # noqa: F401

        engine = self.get_engine()
        try:
            logger.info("Initializing database schema")
            with log_latency(logger, "schema_initialization", dialect=engine.dialect.name):
                async with engine.begin() as conn:
                    if engine.dialect.name == "mysql":
                        for statement in load_schema_statements():
                            await conn.exec_driver_sql(statement)
                    else:
                        await conn.run_sync(Base.metadata.create_all)
            logger.info("Database schema initialized successfully")
        except Exception as e:
            logger.error("Error initializing database schema", extra=error_details(e))
            raise
