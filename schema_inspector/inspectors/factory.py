"""Factory for creating schema inspectors."""

import logging
from enum import Enum
from typing import Dict, List, Optional, Type, Union

from ..errors import UnsupportedEngineError
from .base import SchemaInspector
from .cockroachdb import CockroachDBInspector
from .mssql import MSSQLInspector
from .mysql import MySQLInspector
from .oracledb import OracleDBInspector
from .postgres import PostgresInspector
from .sqlite import SQLiteInspector

logger = logging.getLogger(__name__)


class Client(str, Enum):
    """Supported database engines."""
    MYSQL = "mysql"
    POSTGRES = "postgres"
    COCKROACHDB = "cockroachdb"
    MSSQL = "mssql"
    ORACLEDB = "oracledb"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, value: str) -> "Client":
        """Resolve a client tag or SQLAlchemy dialect name.

        Matching is case-insensitive and a driver suffix is ignored, so
        ``postgresql+psycopg`` resolves like ``postgresql``.

        Raises:
            UnsupportedEngineError: If the tag names no supported engine
        """
        tag = (value or "").strip().lower().split("+", 1)[0]
        if tag not in _ALIASES:
            raise UnsupportedEngineError(value, supported=_ALIASES.keys())
        return _ALIASES[tag]


_ALIASES: Dict[str, Client] = {
    "mysql": Client.MYSQL,
    "mysql2": Client.MYSQL,
    "mariadb": Client.MYSQL,
    "pg": Client.POSTGRES,
    "postgres": Client.POSTGRES,
    "postgresql": Client.POSTGRES,
    "pgnative": Client.POSTGRES,
    "cockroachdb": Client.COCKROACHDB,
    "mssql": Client.MSSQL,
    "oracledb": Client.ORACLEDB,
    "oracle": Client.ORACLEDB,
    "sqlite": Client.SQLITE,
    "sqlite3": Client.SQLITE,
    "better-sqlite3": Client.SQLITE,
}

# Registry of supported engines and their inspector classes
_INSPECTORS: Dict[Client, Type[SchemaInspector]] = {
    Client.MYSQL: MySQLInspector,
    Client.POSTGRES: PostgresInspector,
    Client.COCKROACHDB: CockroachDBInspector,
    Client.MSSQL: MSSQLInspector,
    Client.ORACLEDB: OracleDBInspector,
    Client.SQLITE: SQLiteInspector,
}


def supported_clients() -> List[str]:
    """Every accepted client tag, aliases included."""
    return sorted(_ALIASES)


def create_inspector(connection, client: Union[None, str, Client] = None, **options) -> SchemaInspector:
    """Create the inspector matching a connection's engine.

    Args:
        connection: SQLAlchemy ``Connection``
        client: Engine tag or ``Client``; read from ``connection.dialect.name``
            when omitted
        **options: Passed to the inspector constructor, e.g. ``search_path``
            for Postgres or ``schema`` for SQL Server

    Returns:
        A SchemaInspector bound to ``connection``

    Raises:
        UnsupportedEngineError: If the engine is not supported
    """
    if client is None:
        dialect = getattr(connection, "dialect", None)
        client = getattr(dialect, "name", None)
        if client is None:
            raise UnsupportedEngineError(None, supported=_ALIASES.keys())

    resolved = client if isinstance(client, Client) else Client.from_string(client)
    inspector_class = _INSPECTORS[resolved]
    logger.debug("Using %s for client %r", inspector_class.__name__, client)
    return inspector_class(connection, **options)
