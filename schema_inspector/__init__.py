"""schema-inspector - uniform schema introspection across SQL engines."""

__version__ = "0.1.0"

from .errors import SchemaInspectorError, UnsupportedEngineError
from .inspectors import (
    Client,
    CockroachDBInspector,
    Column,
    ColumnRef,
    ForeignKey,
    MSSQLInspector,
    MySQLInspector,
    MySQLTable,
    OracleDBInspector,
    PostgresInspector,
    PostgresTable,
    SchemaInspector,
    SQLiteInspector,
    SQLiteTable,
    Table,
    create_inspector,
    supported_clients,
)

__all__ = [
    "create_inspector",
    "supported_clients",
    "Client",
    "SchemaInspector",
    "MySQLInspector",
    "PostgresInspector",
    "CockroachDBInspector",
    "MSSQLInspector",
    "OracleDBInspector",
    "SQLiteInspector",
    "Table",
    "MySQLTable",
    "PostgresTable",
    "SQLiteTable",
    "Column",
    "ColumnRef",
    "ForeignKey",
    "SchemaInspectorError",
    "UnsupportedEngineError",
]
