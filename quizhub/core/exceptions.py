"""
Core Exceptions
================

Custom exceptions for the application.

Driver errors raised by the database layer are logged and re-raised as-is;
these exceptions cover the failures the application itself detects.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ResourceNotFoundException(RepositoryException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class DatabaseUnavailableException(ApplicationException):
    """Raised when the connection pool has not been created."""

    def __init__(self, message: str = "Database pool not initialized", details: Optional[dict] = None):
        super().__init__(message, details)
