"""Shared fixtures: per-test SQLite store and scripted provider."""

import pytest

from sparkgarden.storage.sqlite_store import SqliteStore
from tests.helpers import FakeProvider


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture
def repository(db_path):
    """Per-test SqliteStore with the schema initialized."""
    s = SqliteStore(db_path)
    s.init_db()
    yield s
    s.close()


@pytest.fixture
def provider():
    return FakeProvider()
