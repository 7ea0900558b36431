"""Postgres schema inspector."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..utils.defaults import normalize_rule, parse_postgres_default, unpack_numeric_typmod
from .base import SchemaInspector, finalize_column, to_bool, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, PostgresTable

logger = logging.getLogger(__name__)

# Base tables and partitioned tables; views, indexes and sequences excluded
_TABLE_KINDS = "('r', 'p')"

# pg_attribute.attgenerated exists from Postgres 12
_GENERATED_COLUMNS_VERSION = 120000

_INTEGER_PRECISION = {"int2": 16, "int4": 32, "int8": 64}
_FLOAT_PRECISION = {"float4": 24, "float8": 53}
_LENGTH_TYPES = {"varchar", "bpchar"}
_BIT_TYPES = {"bit", "varbit"}


def explode_search_path(search_path: Union[None, str, Sequence[str]]) -> List[str]:
    """Turn a search path setting into a list of schema names.

    Accepts a single schema, a comma separated string or a sequence.
    """
    if search_path is None:
        return []
    if isinstance(search_path, str):
        return [part.strip() for part in search_path.split(",") if part.strip()]
    return [str(part) for part in search_path]


def type_dimensions(type_name: str, atttypmod: Optional[int]) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """``(max_length, numeric_precision, numeric_scale)`` for a pg_type name."""
    if type_name in _LENGTH_TYPES:
        if atttypmod is not None and atttypmod > 4:
            return atttypmod - 4, None, None
        return None, None, None
    if type_name in _BIT_TYPES:
        if atttypmod is not None and atttypmod > 0:
            return atttypmod, None, None
        return None, None, None
    if type_name == "numeric":
        precision, scale = unpack_numeric_typmod(atttypmod)
        return None, precision, scale
    if type_name in _INTEGER_PRECISION:
        return None, _INTEGER_PRECISION[type_name], 0
    if type_name in _FLOAT_PRECISION:
        return None, _FLOAT_PRECISION[type_name], None
    return None, None, None


class PostgresInspector(SchemaInspector):
    """Inspector for Postgres, reading ``pg_catalog`` directly.

    The active schema is really a search path: lookups match tables in any
    schema of the path, and a table found in several schemas is reported
    once, from the first schema in path order.
    """

    client = "postgres"

    def __init__(
        self,
        connection,
        search_path: Union[None, str, Sequence[str]] = None,
        database: Optional[str] = None,
        default_schema: str = "public",
    ):
        """Bind the inspector to a connection.

        Args:
            connection: SQLAlchemy ``Connection``
            search_path: Schema or ordered list of schemas to inspect
            database: Database name; defaults to the one in the connection URL
            default_schema: Schema used when no search path is given
        """
        super().__init__(connection, database)
        self.default_schema = default_schema
        schemas = explode_search_path(search_path) or [default_schema]
        self.schema = schemas[0]
        self.explode_schema = schemas
        self._server_version: Optional[int] = None

    def with_schema(self, schema: str) -> "PostgresInspector":
        """Switch every following call to a single schema."""
        self.schema = schema
        self.explode_schema = [schema]
        return self

    # Helpers
    # ------------------------------------------------------------------

    def _schema_query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a query that filters on ``IN :schemas``."""
        bound = {"schemas": list(self.explode_schema)}
        bound.update(params or {})
        return self._query(sql, bound, expanding=("schemas",))

    def _first_in_path(
        self,
        rows: List[Dict[str, Any]],
        schema_key: str = "table_schema",
        table_key: str = "table_name",
    ) -> List[Dict[str, Any]]:
        """Drop rows of tables shadowed by the same name earlier in the path."""
        rank = {schema: index for index, schema in enumerate(self.explode_schema)}
        winner: Dict[str, str] = {}
        for row in rows:
            table, schema = row[table_key], row[schema_key]
            current = winner.get(table)
            if current is None or rank.get(schema, len(rank)) < rank.get(current, len(rank)):
                winner[table] = schema
        return [row for row in rows if winner[row[table_key]] == row[schema_key]]

    def server_version(self) -> int:
        """``server_version_num`` of the connected server, e.g. 150004."""
        if self._server_version is None:
            row = self._first("SELECT current_setting('server_version_num') AS version")
            self._server_version = to_int(row["version"]) if row else 0
        return self._server_version

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._schema_query(f"""
            SELECT c.relname AS table_name, n.nspname AS table_schema
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname IN :schemas
              AND c.relkind IN {_TABLE_KINDS}
            ORDER BY c.relname ASC
        """)
        return [row["table_name"] for row in self._first_in_path(rows)]

    def _table_info(self, table: Optional[str] = None) -> List[PostgresTable]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.relname = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT
                c.relname AS table_name,
                n.nspname AS table_schema,
                pg_catalog.obj_description(c.oid, 'pg_class') AS table_comment,
                pg_catalog.pg_get_userbyid(c.relowner) AS table_owner
            FROM pg_catalog.pg_class c
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname IN :schemas
              AND c.relkind IN {_TABLE_KINDS}
              {table_filter}
            ORDER BY c.relname ASC
        """, params)

        return [
            PostgresTable(
                name=row["table_name"],
                schema=row["table_schema"],
                comment=row["table_comment"],
                owner=row["table_owner"],
            )
            for row in self._first_in_path(rows)
        ]

    def has_table(self, table: str) -> bool:
        rows = self._schema_query(f"""
            SELECT EXISTS (
                SELECT 1
                FROM pg_catalog.pg_class c
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname IN :schemas
                  AND c.relkind IN {_TABLE_KINDS}
                  AND c.relname = :table_name
            ) AS present
        """, {"table_name": table})
        return bool(rows and to_bool(rows[0]["present"]))

    # Columns
    # ------------------------------------------------------------------

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.relname = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT c.relname AS table_name, n.nspname AS table_schema, a.attname AS column_name
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname IN :schemas
              AND c.relkind IN {_TABLE_KINDS}
              AND a.attnum > 0
              AND NOT a.attisdropped
              {table_filter}
            ORDER BY c.relname, a.attnum
        """, params)
        return [
            ColumnRef(table=row["table_name"], column=row["column_name"])
            for row in self._first_in_path(rows)
        ]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        params = {}
        filters = []
        if table is not None:
            filters.append("AND c.relname = :table_name")
            params["table_name"] = table
        if column is not None:
            filters.append("AND a.attname = :column_name")
            params["column_name"] = column

        if self.server_version() >= _GENERATED_COLUMNS_VERSION:
            generated = "a.attgenerated = 's'"
        else:
            generated = "FALSE"

        rows = self._schema_query(f"""
            SELECT
                c.relname AS table_name,
                n.nspname AS table_schema,
                a.attname AS column_name,
                pg_catalog.format_type(a.atttypid, NULL) AS data_type,
                t.typname AS type_name,
                a.atttypmod AS type_modifier,
                NOT a.attnotnull AS is_nullable,
                pg_catalog.pg_get_expr(ad.adbin, ad.adrelid) AS default_value,
                {generated} AS is_generated,
                (
                    pg_catalog.pg_get_serial_sequence(
                        quote_ident(n.nspname) || '.' || quote_ident(c.relname), a.attname
                    ) IS NOT NULL
                    OR a.attidentity IN ('a', 'd')
                ) AS has_auto_increment,
                pg_catalog.col_description(c.oid, a.attnum) AS column_comment
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_type t ON t.oid = a.atttypid
            LEFT JOIN pg_catalog.pg_attrdef ad ON ad.adrelid = a.attrelid AND ad.adnum = a.attnum
            WHERE n.nspname IN :schemas
              AND c.relkind IN {_TABLE_KINDS}
              AND a.attnum > 0
              AND NOT a.attisdropped
              {' '.join(filters)}
            ORDER BY c.relname, a.attnum
        """, params)
        rows = self._first_in_path(rows)

        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            max_length, precision, scale = type_dimensions(row["type_name"], to_int(row["type_modifier"]))
            is_generated = to_bool(row["is_generated"])
            raw_default = row["default_value"]
            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=row["table_schema"],
                data_type=row["data_type"],
                max_length=max_length,
                numeric_precision=precision,
                numeric_scale=scale,
                is_nullable=to_bool(row["is_nullable"]),
                # pg_attrdef holds the generation expression of generated columns
                default_value=None if is_generated else parse_postgres_default(raw_default),
                is_generated=is_generated,
                generation_expression=raw_default if is_generated else None,
                has_auto_increment=to_bool(row["has_auto_increment"]),
                comment=row["column_comment"],
            )
            flags = self._flags_for(resolved, row["table_schema"], row["table_name"], row["column_name"])
            columns.append(finalize_column(col, flags))
        return columns

    def _constraint_rows(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.relname = :table_name"
            params["table_name"] = table

        # only the first key column is joined; multi-column constraints are
        # discarded by column_count
        return self._schema_query(f"""
            SELECT
                con.conname AS constraint_name,
                con.contype AS constraint_type,
                n.nspname AS table_schema,
                c.relname AS table_name,
                a.attname AS column_name,
                array_length(con.conkey, 1) AS column_count,
                fn.nspname AS foreign_key_schema,
                fc.relname AS foreign_key_table,
                fa.attname AS foreign_key_column
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = con.conkey[1]
            LEFT JOIN pg_catalog.pg_class fc ON fc.oid = con.confrelid
            LEFT JOIN pg_catalog.pg_namespace fn ON fn.oid = fc.relnamespace
            LEFT JOIN pg_catalog.pg_attribute fa ON fa.attrelid = con.confrelid AND fa.attnum = con.confkey[1]
            WHERE con.contype IN ('p', 'u', 'f')
              AND n.nspname IN :schemas
              {table_filter}
            ORDER BY c.relname, con.conname
        """, params)

    def has_column(self, table: str, column: str) -> bool:
        rows = self._schema_query(f"""
            SELECT EXISTS (
                SELECT 1
                FROM pg_catalog.pg_attribute a
                JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE n.nspname IN :schemas
                  AND c.relkind IN {_TABLE_KINDS}
                  AND c.relname = :table_name
                  AND a.attname = :column_name
                  AND a.attnum > 0
                  AND NOT a.attisdropped
            ) AS present
        """, {"table_name": table, "column_name": column})
        return bool(rows and to_bool(rows[0]["present"]))

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._schema_query("""
            SELECT n.nspname AS table_schema, c.relname AS table_name, a.attname AS column_name
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = ANY(con.conkey)
            WHERE con.contype = 'p'
              AND n.nspname IN :schemas
              AND c.relname = :table_name
            ORDER BY n.nspname, array_position(con.conkey, a.attnum)
        """, {"table_name": table})
        return [row["column_name"] for row in self._first_in_path(rows)]

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        """List foreign keys.

        Composite keys are reported as one ForeignKey whose ``column`` and
        ``foreign_key_column`` are comma-joined in key order.
        """
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.relname = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT
                c.relname AS table_name,
                n.nspname AS table_schema,
                (
                    SELECT string_agg(a.attname, ',' ORDER BY k.ord)
                    FROM unnest(con.conkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
                ) AS column_name,
                fn.nspname AS foreign_key_schema,
                fc.relname AS foreign_key_table,
                (
                    SELECT string_agg(a.attname, ',' ORDER BY k.ord)
                    FROM unnest(con.confkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_catalog.pg_attribute a ON a.attrelid = con.confrelid AND a.attnum = k.attnum
                ) AS foreign_key_column,
                con.conname AS constraint_name,
                con.confupdtype AS on_update,
                con.confdeltype AS on_delete
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class c ON c.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_catalog.pg_class fc ON fc.oid = con.confrelid
            JOIN pg_catalog.pg_namespace fn ON fn.oid = fc.relnamespace
            WHERE con.contype = 'f'
              AND n.nspname IN :schemas
              {table_filter}
            ORDER BY c.relname, con.conname
        """, params)

        return [
            ForeignKey(
                table=row["table_name"],
                column=row["column_name"],
                foreign_key_table=row["foreign_key_table"],
                foreign_key_column=row["foreign_key_column"],
                foreign_key_schema=row["foreign_key_schema"],
                constraint_name=row["constraint_name"],
                on_update=normalize_rule(row["on_update"]),
                on_delete=normalize_rule(row["on_delete"]),
            )
            for row in self._first_in_path(rows)
        ]
