"""
Shared pytest fixtures for tinyrecord tests.

This module provides:
- An in-memory SQLite registry with the ``contact`` table
- A fake client factory for dialect-only tests
- Settings cache isolation
"""

import sys
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

# Ensure tinyrecord package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyrecord.connection import Database
from tinyrecord.dialect import get_dialect
from tinyrecord.settings import get_settings

CONTACT_DDL = """
    CREATE TABLE IF NOT EXISTS contact (
        id INTEGER PRIMARY KEY,
        name TEXT,
        email TEXT
    )
"""


@pytest.fixture(autouse=True)
def _isolate_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db() -> Generator[Database, None, None]:
    """In-memory SQLite registry with an empty ``contact`` table."""
    database = Database("sqlite::memory:")
    database.exec(CONTACT_DDL)
    yield database
    database.close()


def make_fake_client(driver_name: str) -> MagicMock:
    """A client double that only knows its driver and how to quote literals."""
    client = MagicMock()
    client.driver_name = driver_name
    client.quote.side_effect = get_dialect(driver_name).quote_literal
    return client


@pytest.fixture
def fake_db():
    """Factory: ``fake_db("pgsql")`` → registry whose current client is a double."""

    def _make(driver_name: str) -> Database:
        return Database().attach("default", make_fake_client(driver_name))

    return _make


@pytest.fixture
def fake_client():
    """Factory: ``fake_client("mysql")`` → client double."""
    return make_fake_client


@pytest.fixture
def contact_ddl() -> str:
    return CONTACT_DDL
