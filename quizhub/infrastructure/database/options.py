"""
Connection Options
==================

Flat connection-options object derived from settings.

Everything the engine factory needs (URL, pool limits, timeouts, driver
arguments) is resolved here so the pool manager never reads settings fields
directly.
"""

import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.engine import URL, make_url

from quizhub.config import Settings

MYSQL_DRIVER = "mysql+aiomysql"


def _build_ssl_context() -> ssl.SSLContext:
    # TLS without certificate verification
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass
class DatabaseOptions:
    """Resolved connection options for the async engine."""

    url: URL
    database: Optional[str]
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 0
    pool_timeout: int = 60
    pool_recycle: int = 3600
    pool_pre_ping: bool = True
    connect_args: Dict[str, Any] = field(default_factory=dict)

    @property
    def backend(self) -> str:
        return self.url.get_backend_name()

    @property
    def is_mysql(self) -> bool:
        return self.backend == "mysql"

    @property
    def server_url(self) -> URL:
        """Same URL without a default database, for server-level statements."""
        # URL.set() ignores None, so rebuild without the database
        return URL.create(
            self.url.drivername,
            username=self.url.username,
            password=self.url.password,
            host=self.url.host,
            port=self.url.port,
            query=self.url.query,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseOptions":
        if settings.database_url:
            url = make_url(settings.database_url)
        else:
            url = URL.create(
                MYSQL_DRIVER,
                username=settings.db_user,
                password=settings.db_password or None,
                host=settings.db_host,
                port=settings.db_port,
                database=settings.db_name,
                query={"charset": settings.db_charset},
            )

        connect_args: Dict[str, Any] = {}
        if url.get_backend_name() == "mysql":
            connect_args["connect_timeout"] = settings.db_connect_timeout
            connect_args["init_command"] = f"SET time_zone = '{settings.db_timezone}'"
            if settings.db_ssl:
                connect_args["ssl"] = _build_ssl_context()
            if settings.db_socket_path:
                connect_args["unix_socket"] = settings.db_socket_path

        return cls(
            url=url,
            database=url.database,
            echo=settings.debug,
            pool_size=settings.db_connection_limit,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_acquire_timeout,
            pool_recycle=settings.db_pool_recycle,
            connect_args=connect_args,
        )

    def engine_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        kwargs: Dict[str, Any] = {
            "echo": self.echo,
            "pool_pre_ping": self.pool_pre_ping,
        }
        # SQLite picks its own pool class, which rejects sizing arguments
        if self.backend != "sqlite":
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
                pool_recycle=self.pool_recycle,
            )
        if self.connect_args:
            kwargs["connect_args"] = dict(self.connect_args)
        return kwargs

    def describe(self) -> Dict[str, Any]:
        """Loggable summary, without credentials."""
        return {
            "host": self.url.host,
            "user": self.url.username,
            "database": self.database,
            "connection_limit": self.pool_size,
            "backend": self.backend,
        }
