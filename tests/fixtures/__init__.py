"""Test fixtures for schema-inspector tests."""

from .fake_connection import FakeConnection, FakeResult
from .sqlite_db import SQLITE_SCHEMA, SQLITE_SUPPORTED

__all__ = ["FakeConnection", "FakeResult", "SQLITE_SCHEMA", "SQLITE_SUPPORTED"]
