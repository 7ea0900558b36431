"""SQL Server schema inspector."""

import logging
from typing import Any, Dict, List, Optional

from ..utils.defaults import normalize_rule, parse_mssql_default
from ..utils.identifiers import quote_bracket
from .base import SchemaInspector, empty_to_none, finalize_column, to_bool, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, Table

logger = logging.getLogger(__name__)

# sys.columns.max_length is in bytes; these store two bytes per character
_UNICODE_TYPES = {"nchar", "nvarchar", "ntext"}
_LENGTH_TYPES = {"char", "varchar", "text", "binary", "varbinary"} | _UNICODE_TYPES
_NUMERIC_TYPES = {
    "bigint", "int", "smallint", "tinyint", "bit",
    "decimal", "numeric", "money", "smallmoney", "float", "real",
}


def character_length(type_name: str, max_length: Optional[int]) -> Optional[int]:
    """Character length from a ``sys.columns.max_length`` byte count.

    ``-1`` (``varchar(max)`` and friends) is passed through as is.
    """
    if type_name not in _LENGTH_TYPES or max_length is None:
        return None
    if max_length == -1:
        return -1
    if type_name in _UNICODE_TYPES:
        return max_length // 2
    return max_length


class MSSQLInspector(SchemaInspector):
    """Inspector for Microsoft SQL Server (2016 and later).

    Reads the ``sys`` catalog views of the configured database; when a
    database name is known the views are qualified with it, so the inspector
    also works from a connection whose current database is a different one.
    """

    client = "mssql"

    def __init__(
        self,
        connection,
        schema: Optional[str] = None,
        database: Optional[str] = None,
        default_schema: str = "dbo",
    ):
        super().__init__(connection, database)
        self.default_schema = default_schema
        self._schema = schema

    @property
    def schema(self) -> str:
        return self._schema or self.default_schema

    @schema.setter
    def schema(self, value: Optional[str]):
        self._schema = value

    def with_schema(self, schema: str) -> "MSSQLInspector":
        """Switch every following call to ``schema``."""
        self.schema = schema
        return self

    # Helpers
    # ------------------------------------------------------------------

    def _sys(self, view: str) -> str:
        """``[database].sys.<view>``, or plain ``sys.<view>`` without a database."""
        if self.database:
            return f"{quote_bracket(self.database)}.sys.{view}"
        return f"sys.{view}"

    def _params(self, **extra) -> Dict[str, Any]:
        params = {"schema_name": self.schema}
        params.update(extra)
        return params

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._query(f"""
            SELECT o.name AS table_name
            FROM {self._sys("tables")} o
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
            ORDER BY o.name ASC
        """, self._params())
        return [row["table_name"] for row in rows]

    def _table_info(self, table: Optional[str] = None) -> List[Table]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND o.name = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                o.name AS table_name,
                s.name AS table_schema,
                CAST(ep.value AS NVARCHAR(4000)) AS table_comment
            FROM {self._sys("tables")} o
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            LEFT JOIN {self._sys("extended_properties")} ep
              ON ep.class = 1
             AND ep.major_id = o.object_id
             AND ep.minor_id = 0
             AND ep.name = 'MS_Description'
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
              {table_filter}
            ORDER BY o.name ASC
        """, params)

        return [
            Table(
                name=row["table_name"],
                schema=row["table_schema"],
                comment=empty_to_none(row["table_comment"]),
            )
            for row in rows
        ]

    def has_table(self, table: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            FROM {self._sys("tables")} o
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
              AND o.name = :table_name
        """, self._params(table_name=table))
        return count > 0

    # Columns
    # ------------------------------------------------------------------

    def _column_source(self) -> str:
        return f"""
            FROM {self._sys("columns")} c
            JOIN {self._sys("tables")} o ON o.object_id = c.object_id
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
        """

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND o.name = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT o.name AS table_name, c.name AS column_name
            {self._column_source()}
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
              AND c.is_hidden = 0
              {table_filter}
            ORDER BY o.name, c.column_id
        """, params)
        return [ColumnRef(table=row["table_name"], column=row["column_name"]) for row in rows]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        params = self._params()
        filters = []
        if table is not None:
            filters.append("AND o.name = :table_name")
            params["table_name"] = table
        if column is not None:
            filters.append("AND c.name = :column_name")
            params["column_name"] = column

        rows = self._query(f"""
            SELECT
                o.name AS table_name,
                s.name AS table_schema,
                c.name AS column_name,
                t.name AS data_type,
                c.max_length AS max_length,
                c.precision AS numeric_precision,
                c.scale AS numeric_scale,
                c.is_nullable AS is_nullable,
                dc.definition AS default_value,
                c.is_computed AS is_generated,
                cc.definition AS generation_expression,
                c.is_identity AS has_auto_increment,
                CAST(ep.value AS NVARCHAR(4000)) AS column_comment
            {self._column_source()}
            JOIN {self._sys("types")} t ON t.user_type_id = c.user_type_id
            LEFT JOIN {self._sys("default_constraints")} dc ON dc.object_id = c.default_object_id
            LEFT JOIN {self._sys("computed_columns")} cc
              ON cc.object_id = c.object_id
             AND cc.column_id = c.column_id
            LEFT JOIN {self._sys("extended_properties")} ep
              ON ep.class = 1
             AND ep.major_id = c.object_id
             AND ep.minor_id = c.column_id
             AND ep.name = 'MS_Description'
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
              AND c.is_hidden = 0
              {' '.join(filters)}
            ORDER BY o.name, c.column_id
        """, params)

        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            data_type = row["data_type"]
            is_numeric = data_type in _NUMERIC_TYPES
            is_generated = to_bool(row["is_generated"])
            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=row["table_schema"],
                data_type=data_type,
                max_length=character_length(data_type, to_int(row["max_length"])),
                numeric_precision=to_int(row["numeric_precision"]) if is_numeric else None,
                numeric_scale=to_int(row["numeric_scale"]) if is_numeric else None,
                is_nullable=to_bool(row["is_nullable"]),
                default_value=parse_mssql_default(row["default_value"]),
                is_generated=is_generated,
                generation_expression=row["generation_expression"] if is_generated else None,
                has_auto_increment=to_bool(row["has_auto_increment"]),
                comment=empty_to_none(row["column_comment"]),
            )
            flags = self._flags_for(resolved, row["table_schema"], row["table_name"], row["column_name"])
            columns.append(finalize_column(col, flags))
        return columns

    def _constraint_rows(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND o.name = :table_name"
            params["table_name"] = table

        # unique indexes (primary keys included) first, then foreign keys;
        # filtered indexes do not make a column unique
        return self._query(f"""
            SELECT
                s.name AS table_schema,
                o.name AS table_name,
                c.name AS column_name,
                i.name AS constraint_name,
                CASE WHEN i.is_primary_key = 1 THEN 'PRIMARY KEY' ELSE 'UNIQUE' END AS constraint_type,
                NULL AS foreign_key_schema,
                NULL AS foreign_key_table,
                NULL AS foreign_key_column,
                (
                    SELECT COUNT(*)
                    FROM {self._sys("index_columns")} ic2
                    WHERE ic2.object_id = i.object_id
                      AND ic2.index_id = i.index_id
                      AND ic2.is_included_column = 0
                ) AS column_count,
                0 AS constraint_order
            FROM {self._sys("indexes")} i
            JOIN {self._sys("index_columns")} ic
              ON ic.object_id = i.object_id
             AND ic.index_id = i.index_id
             AND ic.is_included_column = 0
            JOIN {self._sys("columns")} c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            JOIN {self._sys("tables")} o ON o.object_id = i.object_id
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            WHERE i.is_unique = 1
              AND i.has_filter = 0
              AND s.name = :schema_name
              {table_filter}
            UNION ALL
            SELECT
                s.name AS table_schema,
                o.name AS table_name,
                c.name AS column_name,
                fk.name AS constraint_name,
                'FOREIGN KEY' AS constraint_type,
                rs.name AS foreign_key_schema,
                ro.name AS foreign_key_table,
                rc.name AS foreign_key_column,
                (
                    SELECT COUNT(*)
                    FROM {self._sys("foreign_key_columns")} f2
                    WHERE f2.constraint_object_id = fkc.constraint_object_id
                ) AS column_count,
                1 AS constraint_order
            FROM {self._sys("foreign_key_columns")} fkc
            JOIN {self._sys("foreign_keys")} fk ON fk.object_id = fkc.constraint_object_id
            JOIN {self._sys("tables")} o ON o.object_id = fkc.parent_object_id
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            JOIN {self._sys("columns")} c
              ON c.object_id = fkc.parent_object_id
             AND c.column_id = fkc.parent_column_id
            JOIN {self._sys("tables")} ro ON ro.object_id = fkc.referenced_object_id
            JOIN {self._sys("schemas")} rs ON rs.schema_id = ro.schema_id
            JOIN {self._sys("columns")} rc
              ON rc.object_id = fkc.referenced_object_id
             AND rc.column_id = fkc.referenced_column_id
            WHERE s.name = :schema_name
              {table_filter}
            ORDER BY table_name, constraint_order, constraint_name
        """, params)

    def has_column(self, table: str, column: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            {self._column_source()}
            WHERE s.name = :schema_name
              AND o.is_ms_shipped = 0
              AND c.is_hidden = 0
              AND o.name = :table_name
              AND c.name = :column_name
        """, self._params(table_name=table, column_name=column))
        return count > 0

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._query(f"""
            SELECT c.name AS column_name
            FROM {self._sys("indexes")} i
            JOIN {self._sys("index_columns")} ic ON ic.object_id = i.object_id AND ic.index_id = i.index_id
            JOIN {self._sys("columns")} c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            JOIN {self._sys("tables")} o ON o.object_id = i.object_id
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            WHERE i.is_primary_key = 1
              AND s.name = :schema_name
              AND o.name = :table_name
            ORDER BY ic.key_ordinal
        """, self._params(table_name=table))
        return [row["column_name"] for row in rows]

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND o.name = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                o.name AS table_name,
                c.name AS column_name,
                rs.name AS foreign_key_schema,
                ro.name AS foreign_key_table,
                rc.name AS foreign_key_column,
                fk.name AS constraint_name,
                fk.update_referential_action_desc AS on_update,
                fk.delete_referential_action_desc AS on_delete,
                (
                    SELECT COUNT(*)
                    FROM {self._sys("foreign_key_columns")} f2
                    WHERE f2.constraint_object_id = fkc.constraint_object_id
                ) AS column_count
            FROM {self._sys("foreign_key_columns")} fkc
            JOIN {self._sys("foreign_keys")} fk ON fk.object_id = fkc.constraint_object_id
            JOIN {self._sys("tables")} o ON o.object_id = fkc.parent_object_id
            JOIN {self._sys("schemas")} s ON s.schema_id = o.schema_id
            JOIN {self._sys("columns")} c
              ON c.object_id = fkc.parent_object_id
             AND c.column_id = fkc.parent_column_id
            JOIN {self._sys("tables")} ro ON ro.object_id = fkc.referenced_object_id
            JOIN {self._sys("schemas")} rs ON rs.schema_id = ro.schema_id
            JOIN {self._sys("columns")} rc
              ON rc.object_id = fkc.referenced_object_id
             AND rc.column_id = fkc.referenced_column_id
            WHERE s.name = :schema_name
              {table_filter}
            ORDER BY o.name, fk.name
        """, params)

        foreign_keys = []
        for row in rows:
            if (to_int(row["column_count"]) or 1) > 1:
                logger.debug("Skipping composite foreign key %s", row["constraint_name"])
                continue
            foreign_keys.append(ForeignKey(
                table=row["table_name"],
                column=row["column_name"],
                foreign_key_table=row["foreign_key_table"],
                foreign_key_column=row["foreign_key_column"],
                foreign_key_schema=row["foreign_key_schema"],
                constraint_name=row["constraint_name"],
                on_update=normalize_rule(row["on_update"]),
                on_delete=normalize_rule(row["on_delete"]),
            ))
        return foreign_keys
