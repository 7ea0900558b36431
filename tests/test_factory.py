"""Tests for inspector selection."""

import pytest

from schema_inspector.errors import SchemaInspectorError, UnsupportedEngineError
from schema_inspector.inspectors import (
    Client,
    CockroachDBInspector,
    MSSQLInspector,
    MySQLInspector,
    OracleDBInspector,
    PostgresInspector,
    SQLiteInspector,
    create_inspector,
    supported_clients,
)
from tests.fixtures import FakeConnection


class TestClient:
    """Test resolving client tags."""

    @pytest.mark.parametrize("tag,expected", [
        ("mysql", Client.MYSQL),
        ("mariadb", Client.MYSQL),
        ("pg", Client.POSTGRES),
        ("postgresql", Client.POSTGRES),
        ("cockroachdb", Client.COCKROACHDB),
        ("mssql", Client.MSSQL),
        ("oracle", Client.ORACLEDB),
        ("oracledb", Client.ORACLEDB),
        ("sqlite", Client.SQLITE),
        ("better-sqlite3", Client.SQLITE),
    ])
    def test_aliases(self, tag, expected):
        assert Client.from_string(tag) is expected

    def test_case_and_driver_suffix_ignored(self):
        assert Client.from_string("PostgreSQL+psycopg") is Client.POSTGRES
        assert Client.from_string("mssql+pyodbc") is Client.MSSQL
        assert Client.from_string(" MySQL+pymysql ") is Client.MYSQL

    def test_unknown_tag(self):
        with pytest.raises(UnsupportedEngineError) as exc_info:
            Client.from_string("db2")

        error = exc_info.value
        assert error.client == "db2"
        assert error.code == "UNSUPPORTED_ENGINE"
        assert "'db2'" in error.message
        assert "postgres" in error.details["supported"]

    def test_supported_clients(self):
        clients = supported_clients()
        assert clients == sorted(clients)
        for client in Client:
            assert client.value in clients


class TestCreateInspector:
    """Test building inspectors for connections."""

    @pytest.mark.parametrize("client,expected", [
        ("mysql", MySQLInspector),
        ("postgres", PostgresInspector),
        ("cockroachdb", CockroachDBInspector),
        ("mssql", MSSQLInspector),
        ("oracledb", OracleDBInspector),
        ("sqlite", SQLiteInspector),
    ])
    def test_explicit_client(self, client, expected):
        inspector = create_inspector(FakeConnection(), client)
        assert type(inspector) is expected
        assert inspector.client == client

    def test_client_enum(self):
        assert isinstance(create_inspector(FakeConnection(), Client.MSSQL), MSSQLInspector)

    @pytest.mark.parametrize("dialect,expected", [
        ("postgresql", PostgresInspector),
        ("mysql", MySQLInspector),
        ("mariadb", MySQLInspector),
        ("mssql", MSSQLInspector),
        ("oracle", OracleDBInspector),
        ("sqlite", SQLiteInspector),
        ("cockroachdb", CockroachDBInspector),
    ])
    def test_client_from_dialect(self, dialect, expected):
        inspector = create_inspector(FakeConnection(dialect=dialect))
        assert type(inspector) is expected

    def test_unsupported_dialect(self):
        with pytest.raises(UnsupportedEngineError):
            create_inspector(FakeConnection(dialect="firebird"))

    def test_connection_without_dialect(self):
        with pytest.raises(SchemaInspectorError) as exc_info:
            create_inspector(object())
        assert exc_info.value.to_dict()["code"] == "UNSUPPORTED_ENGINE"

    def test_options_passed_through(self):
        inspector = create_inspector(FakeConnection(), "postgres", search_path="tenant, public")
        assert inspector.explode_schema == ["tenant", "public"]
        assert inspector.schema == "tenant"

        inspector = create_inspector(FakeConnection(), "mssql", schema="sales")
        assert inspector.schema == "sales"

    def test_inspector_bound_to_connection(self):
        connection = FakeConnection(database="shop")
        inspector = create_inspector(connection, "mysql")
        assert inspector.connection is connection
        assert inspector.database == "shop"
