"""Shared fixtures for LoadFlow tests."""

import tempfile
from pathlib import Path

import pytest

from loadflow.models import LoadSettings
from loadflow.scenarios import LoadTagRegistry
from loadflow.storage import Database, ResultStore

pytest_plugins = ["pytester"]


@pytest.fixture
def registry():
    """A fresh, empty tag registry."""
    return LoadTagRegistry()


@pytest.fixture
def quick_settings():
    """Settings for a run that finishes in a fraction of a second."""
    return LoadSettings(concurrency=3, duration=0.3, interval=0.1)


@pytest.fixture
async def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        db = Database(db_path)
        await db.connect()
        yield db
        await db.close()


@pytest.fixture
async def result_store(temp_db):
    """Create a result store on the temporary database."""
    return ResultStore(temp_db)
