"""Abstract base class for schema inspectors."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import bindparam, text

from .constraints import ConstraintFlags
from .models import Column, ColumnRef, ForeignKey, Table

logger = logging.getLogger(__name__)


def database_name(connection) -> Optional[str]:
    """Database name from a SQLAlchemy connection's URL, if it has one."""
    engine = getattr(connection, "engine", None)
    url = getattr(engine, "url", None)
    return getattr(url, "database", None)


def to_int(value: Any) -> Optional[int]:
    """Catalog numbers arrive as int, Decimal or str depending on the driver."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in ("YES", "Y", "TRUE", "T", "1", "ALWAYS")
    return bool(value)


def empty_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value


def finalize_column(column: Column, flags: Optional[ConstraintFlags] = None) -> Column:
    """Apply constraint flags and the invariants every engine shares.

    A generated column never carries a default: whatever expression the
    engine reported moves to ``generation_expression``.
    """
    if flags is not None:
        column.is_primary_key = flags.is_primary_key
        column.is_unique = flags.is_unique
        column.foreign_key_schema = flags.foreign_key_schema
        column.foreign_key_table = flags.foreign_key_table
        column.foreign_key_column = flags.foreign_key_column

    if column.is_primary_key:
        column.is_unique = True

    if column.is_generated:
        if column.generation_expression is None:
            expression = column.default_value
            if expression is None:
                logger.debug("No generation expression found for %s.%s", column.table, column.name)
                expression = ""
            column.generation_expression = str(expression)
        column.default_value = None
    else:
        column.generation_expression = None

    return column


class SchemaInspector(ABC):
    """Abstract base class for schema inspectors.

    One subclass per engine. Every method runs its own catalog queries on
    the connection handed to the constructor; nothing is cached between
    calls. Query failures propagate unchanged from SQLAlchemy.

    Lookups of a single table or column return ``None`` when it does not
    exist instead of raising.
    """

    # Engine identifier, matches the factory's Client values
    client: str = ""

    def __init__(self, connection, database: Optional[str] = None):
        """Bind the inspector to a connection.

        Args:
            connection: SQLAlchemy ``Connection`` (or anything with a
                compatible ``execute``)
            database: Database/catalog name; defaults to the one in the
                connection URL
        """
        self.connection = connection
        self.database = database if database is not None else database_name(connection)

    # Query helpers
    # ------------------------------------------------------------------

    def _query(
        self,
        sql: str,
        params: Optional[Dict[str, Any]] = None,
        expanding: Iterable[str] = (),
    ) -> List[Dict[str, Any]]:
        """Run a catalog query and return rows as dicts with lowercase keys.

        Args:
            sql: SQL text with ``:name`` bind parameters
            params: Bind parameter values
            expanding: Names of list parameters used as ``IN :name``

        Returns:
            List of row dicts
        """
        statement = text(sql)
        expanding = tuple(expanding)
        if expanding:
            statement = statement.bindparams(*(bindparam(name, expanding=True) for name in expanding))

        logger.debug("%s catalog query with %s", self.client, params or {})
        result = self.connection.execute(statement, params or {})
        return [
            {str(key).lower(): value for key, value in row.items()}
            for row in result.mappings().all()
        ]

    def _first(self, sql: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Optional[Dict[str, Any]]:
        rows = self._query(sql, params, **kwargs)
        return rows[0] if rows else None

    def _count(self, sql: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> int:
        """Run a query selecting a single ``matches`` count column."""
        row = self._first(sql, params, **kwargs)
        if row is None:
            return 0
        return to_int(row.get("matches")) or 0

    @staticmethod
    def _flags_for(resolved: Dict, schema: Optional[str], table: str, column: str) -> ConstraintFlags:
        return resolved.get((schema, table, column)) or ConstraintFlags()

    # Tables
    # ------------------------------------------------------------------

    @abstractmethod
    def tables(self) -> List[str]:
        """List base table names in the active schema, by name."""
        pass

    @abstractmethod
    def _table_info(self, table: Optional[str] = None) -> List[Table]:
        pass

    def table_info(self, table: Optional[str] = None) -> Union[List[Table], Optional[Table]]:
        """Get table metadata.

        Args:
            table: Table name; when omitted every table is returned

        Returns:
            List of Table objects, or a single Table (``None`` if missing)
            when ``table`` is given
        """
        tables = self._table_info(table)
        if table is None:
            return tables
        return tables[0] if tables else None

    @abstractmethod
    def has_table(self, table: str) -> bool:
        """Check whether a base table exists in the active schema."""
        pass

    # Columns
    # ------------------------------------------------------------------

    @abstractmethod
    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        """List (table, column) pairs, optionally for a single table."""
        pass

    @abstractmethod
    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        pass

    def column_info(
        self,
        table: Optional[str] = None,
        column: Optional[str] = None,
    ) -> Union[List[Column], Optional[Column]]:
        """Get full column metadata.

        Args:
            table: Restrict to one table
            column: Return only this column of ``table``

        Returns:
            List of Column objects, or a single Column (``None`` if missing)
            when ``column`` is given
        """
        if column is not None and table is None:
            raise ValueError("column_info() needs a table when a column is given")
        columns = self._column_info(table, column)
        if column is None:
            return columns
        return columns[0] if columns else None

    @abstractmethod
    def has_column(self, table: str, column: str) -> bool:
        """Check whether ``table`` has ``column``."""
        pass

    # Keys
    # ------------------------------------------------------------------

    @abstractmethod
    def primary_keys(self, table: str) -> List[str]:
        """All primary key columns of ``table`` in key order."""
        pass

    def primary(self, table: str) -> Optional[str]:
        """Get the primary key column of a table.

        Composite primary keys cannot be expressed as one column name, so
        they return ``None`` just like a table without a primary key. Use
        ``primary_keys()`` to see every key column.
        """
        keys = self.primary_keys(table)
        if len(keys) != 1:
            return None
        return keys[0]

    @abstractmethod
    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        """List foreign keys, optionally only those defined on ``table``."""
        pass
