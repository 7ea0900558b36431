"""Per-engine schema inspectors."""

from .base import SchemaInspector
from .cockroachdb import CockroachDBInspector
from .factory import Client, create_inspector, supported_clients
from .models import Column, ColumnRef, ForeignKey, MySQLTable, PostgresTable, SQLiteTable, Table
from .mssql import MSSQLInspector
from .mysql import MySQLInspector
from .oracledb import OracleDBInspector
from .postgres import PostgresInspector
from .sqlite import SQLiteInspector

__all__ = [
    "SchemaInspector",
    "MySQLInspector",
    "PostgresInspector",
    "CockroachDBInspector",
    "MSSQLInspector",
    "OracleDBInspector",
    "SQLiteInspector",
    "Client",
    "create_inspector",
    "supported_clients",
    "Table",
    "MySQLTable",
    "PostgresTable",
    "SQLiteTable",
    "Column",
    "ColumnRef",
    "ForeignKey",
]
