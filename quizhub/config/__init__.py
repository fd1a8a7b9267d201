"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="quizhub", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL (async driver). Overrides the db_* connection fields."
    )
    db_host: str = Field(default="localhost", description="MySQL host")
    db_port: int = Field(default=3306, description="MySQL port", ge=1, le=65535)
    db_user: str = Field(default="root", description="MySQL user")
    db_password: str = Field(default="", description="MySQL password")
    db_name: str = Field(default="quiz_app", description="MySQL database (schema) name")
    db_connection_limit: int = Field(default=10, description="Connection pool size", ge=1)
    db_max_overflow: int = Field(default=0, description="Connections allowed beyond the pool size", ge=0)
    db_connect_timeout: int = Field(default=60, description="Seconds to wait for a new connection", ge=1)
    db_acquire_timeout: int = Field(default=60, description="Seconds to wait for a pooled connection", ge=1)
    db_pool_recycle: int = Field(default=3600, description="Recycle pooled connections after N seconds")
    db_ssl: bool = Field(default=False, description="Connect over TLS (certificate not verified)")
    db_socket_path: Optional[str] = Field(default=None, description="Unix socket path, used instead of host/port")
    db_charset: str = Field(default="utf8mb4", description="Connection character set")
    db_timezone: str = Field(default="+00:00", description="Session time zone")

    # ========== Database Monitoring ==========
    db_health_check_interval: int = Field(
        default=30,
        description="Seconds between connection health checks",
        ge=1
    )
    db_max_reconnect_attempts: int = Field(
        default=10,
        description="Reconnect attempts before giving up",
        ge=0
    )
    db_reconnect_delay: float = Field(default=5.0, description="Base reconnect delay in seconds", gt=0)
    db_reconnect_backoff: float = Field(default=1.5, description="Backoff multiplier per attempt", ge=1.0)
    db_reconnect_max_delay: float = Field(default=30.0, description="Upper bound for reconnect delay", gt=0)
    db_reconnect_jitter: float = Field(default=0.2, description="Maximum random jitter fraction", ge=0.0, le=1.0)
    db_create_database: bool = Field(
        default=True,
        description="Create the MySQL database on startup if it does not exist"
    )
    db_initialize_schema: bool = Field(
        default=True,
        description="Apply the schema on startup (CREATE TABLE IF NOT EXISTS)"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class UserRole(str):
    """Account roles."""
    ADMIN = "admin"
    USER = "user"


class Difficulty(str):
    """Quiz difficulty levels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str):
    """Supported question formats."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


# ========== Lists for validation ==========

VALID_ROLES = [UserRole.ADMIN, UserRole.USER]
VALID_DIFFICULTIES = [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD]
VALID_QUESTION_TYPES = [
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.TRUE_FALSE,
    QuestionType.SHORT_ANSWER,
]
