"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from quizhub.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ResourceNotFoundException,
    ConfigurationException,
    DatabaseUnavailableException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "DatabaseUnavailableException",
]
