"""Shared pytest fixtures for schema-inspector tests."""

import pytest
from sqlalchemy import create_engine

from tests.fixtures import SQLITE_SCHEMA, FakeConnection


@pytest.fixture
def sqlite_url(tmp_path):
    """URL of a fresh SQLite database file with the test schema."""
    url = f"sqlite:///{tmp_path / 'app.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        for statement in SQLITE_SCHEMA:
            connection.exec_driver_sql(statement)
    engine.dispose()
    return url


@pytest.fixture
def sqlite_connection(sqlite_url):
    """Open SQLAlchemy connection to the test SQLite database."""
    engine = create_engine(sqlite_url)
    with engine.connect() as connection:
        yield connection
    engine.dispose()


@pytest.fixture
def fake_connection():
    """Scripted connection reporting a Postgres dialect and database ``app``."""
    return FakeConnection()
