"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from todosync.core import db_client
from todosync.core.config import settings
from todosync.domain.user import User


@pytest.fixture
def alice() -> User:
    return User(id="alice", email="alice@test.local")


@pytest.fixture
def bob() -> User:
    return User(id="bob", email="bob@test.local")


@pytest.fixture
def sqlite_path(tmp_path: Path, monkeypatch) -> str:
    """Point the document store at a temporary SQLite file."""
    path = str(tmp_path / "todosync.sqlite3")
    monkeypatch.setattr(settings, "sqlite_db_path", path)
    return path


@pytest.fixture
async def sqlite_db(sqlite_path: str) -> AsyncGenerator[str, None]:
    """Initialized SQLite document store, closed after the test."""
    await db_client.init_db()
    yield sqlite_path
    await db_client.close_connection()
