"""
Shared fixtures for QuizHub tests.

Tests run against throwaway SQLite files (aiosqlite) so no MySQL server is
needed; the scheduler is replaced by a mock so no job ever fires on its own.
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

# Must be set before quizhub.config builds the global settings
_TEST_DIR = Path(tempfile.mkdtemp(prefix="quizhub-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR / 'app.db'}")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pytest_asyncio

from quizhub.config import Settings
from quizhub.infrastructure.database import Database


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment defaults used by the app."""
    values = {"database_url": None, "environment": "development"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'quizhub.db'}"


@pytest.fixture
def sqlite_settings(sqlite_url):
    return make_settings(database_url=sqlite_url)


@pytest.fixture
def scheduler():
    mock = MagicMock()
    mock.get_job.return_value = None
    return mock


@pytest_asyncio.fixture
async def database(sqlite_settings, scheduler):
    db = Database(sqlite_settings, scheduler=scheduler, rng=lambda: 0.0)
    assert await db.initialize()
    yield db
    await db.cleanup()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def settings_factory():
    return make_settings
