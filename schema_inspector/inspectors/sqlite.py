"""SQLite schema inspector."""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ..utils.defaults import normalize_rule, parse_data_default
from ..utils.identifiers import quote_double
from ..utils.sqlite_ddl import find_definition, generation_expression, is_autoincrement
from .base import SchemaInspector, finalize_column, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, SQLiteTable

logger = logging.getLogger(__name__)

# "varchar(36)", "decimal(10, 2)", "UNSIGNED BIG INT", ""
_DECLARED_TYPE_RE = re.compile(r"^\s*([^(]*?)\s*(?:\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\))?\s*$")
_LENGTH_TYPE_RE = re.compile(r"char|clob|text|binary|blob")
_NUMERIC_TYPE_RE = re.compile(r"int|dec|num|real|doub|floa")
# pragma output for "x INT GENERATED ALWAYS AS (...)" reports the type as "INT GENERATED ALWAYS"
_GENERATED_SUFFIX_RE = re.compile(r"\s+GENERATED\s+ALWAYS\s*$", re.IGNORECASE)

# pragma_table_xinfo.hidden: 1 = hidden virtual table column, 2/3 = generated
_HIDDEN = 1
_GENERATED = (2, 3)

_USER_TABLES = "m.type = 'table' AND m.name NOT LIKE 'sqlite\\_%' ESCAPE '\\'"


def parse_declared_type(declared: Optional[str]) -> Tuple[Optional[str], Optional[int], Optional[int], Optional[int]]:
    """Split a declared column type into ``(data_type, max_length, precision, scale)``.

    SQLite keeps the declared type as free text; the size arguments are
    only meaningful to the application, so they are reported as declared.
    """
    if not declared:
        return None, None, None, None
    declared = _GENERATED_SUFFIX_RE.sub("", declared)
    match = _DECLARED_TYPE_RE.match(declared)
    if not match:
        return declared.lower(), None, None, None

    data_type = match.group(1).lower()
    first, second = to_int(match.group(2)), to_int(match.group(3))
    if first is None:
        return data_type, None, None, None
    if _LENGTH_TYPE_RE.search(data_type):
        return data_type, first, None, None
    if _NUMERIC_TYPE_RE.search(data_type):
        return data_type, None, first, second
    return data_type, None, None, None


class SQLiteInspector(SchemaInspector):
    """Inspector for SQLite 3.26 and later.

    Uses ``sqlite_master`` and the table-valued pragma functions
    (``pragma_table_xinfo`` and friends). SQLite records neither
    AUTOINCREMENT nor generation expressions in a pragma, so both are read
    from the stored ``CREATE TABLE`` statement.

    ``schema`` is the attached database name, ``main`` unless another
    database was attached.
    """

    client = "sqlite"

    def __init__(self, connection, schema: str = "main", database: Optional[str] = None):
        super().__init__(connection, database)
        self.schema = schema

    @property
    def _master(self) -> str:
        return f"{quote_double(self.schema)}.sqlite_master"

    def _params(self, **extra) -> Dict[str, Any]:
        params = {"schema_name": self.schema}
        params.update(extra)
        return params

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._query(f"""
            SELECT m.name AS table_name
            FROM {self._master} m
            WHERE {_USER_TABLES}
            ORDER BY m.name ASC
        """)
        return [row["table_name"] for row in rows]

    def _table_info(self, table: Optional[str] = None) -> List[SQLiteTable]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND m.name = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT m.name AS table_name, m.sql AS table_sql
            FROM {self._master} m
            WHERE {_USER_TABLES}
              {table_filter}
            ORDER BY m.name ASC
        """, params)
        return [
            SQLiteTable(name=row["table_name"], schema=self.schema, sql=row["table_sql"])
            for row in rows
        ]

    def has_table(self, table: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            FROM {self._master} m
            WHERE {_USER_TABLES}
              AND m.name = :table_name
        """, {"table_name": table})
        return count > 0

    # Columns
    # ------------------------------------------------------------------

    def _column_rows(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Dict[str, Any]]:
        params = self._params()
        filters = []
        if table is not None:
            filters.append("AND m.name = :table_name")
            params["table_name"] = table
        if column is not None:
            filters.append("AND p.name = :column_name")
            params["column_name"] = column

        return self._query(f"""
            SELECT
                m.name AS table_name,
                m.sql AS table_sql,
                p.name AS column_name,
                p.type AS declared_type,
                p."notnull" AS not_null,
                p.dflt_value AS default_value,
                p.pk AS pk,
                p.hidden AS hidden,
                (
                    SELECT COUNT(*)
                    FROM pragma_table_info(m.name, :schema_name) k
                    WHERE k.pk > 0
                ) AS pk_count
            FROM {self._master} m
            JOIN pragma_table_xinfo(m.name, :schema_name) p
            WHERE {_USER_TABLES}
              AND p.hidden != {_HIDDEN}
              {' '.join(filters)}
            ORDER BY m.name, p.cid
        """, params)

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        return [
            ColumnRef(table=row["table_name"], column=row["column_name"])
            for row in self._column_rows(table)
        ]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        rows = self._column_rows(table, column)
        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            data_type, max_length, precision, scale = parse_declared_type(row["declared_type"])
            definition = find_definition(row["table_sql"], row["column_name"])
            is_generated = to_int(row["hidden"]) in _GENERATED
            # a lone INTEGER PRIMARY KEY aliases the rowid and can never be NULL
            is_rowid = (
                to_int(row["pk"]) == 1
                and to_int(row["pk_count"]) == 1
                and (row["declared_type"] or "").upper() == "INTEGER"
            )

            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=self.schema,
                data_type=data_type,
                max_length=max_length,
                numeric_precision=precision,
                numeric_scale=scale,
                is_nullable=not to_int(row["not_null"]) and not is_rowid,
                default_value=None if is_generated else parse_data_default(row["default_value"], coerce_numbers=True),
                is_generated=is_generated,
                generation_expression=generation_expression(definition) if is_generated else None,
                has_auto_increment=is_autoincrement(definition),
            )
            flags = self._flags_for(resolved, self.schema, row["table_name"], row["column_name"])
            columns.append(finalize_column(col, flags))
        return columns

    def _constraint_rows(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        """Primary key, unique index and foreign key rows, in that order.

        A rowid primary key has no index behind it, so primary keys come
        from ``pragma_table_info`` rather than ``pragma_index_list``.
        """
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND m.name = :table_name"
            params["table_name"] = table

        primary = self._query(f"""
            SELECT
                m.name AS table_name,
                p.name AS column_name,
                'PRIMARY KEY' AS constraint_type,
                (
                    SELECT COUNT(*)
                    FROM pragma_table_info(m.name, :schema_name) k
                    WHERE k.pk > 0
                ) AS column_count
            FROM {self._master} m
            JOIN pragma_table_info(m.name, :schema_name) p
            WHERE {_USER_TABLES}
              AND p.pk > 0
              {table_filter}
            ORDER BY m.name, p.pk
        """, params)

        # expression index members have no name but still count
        unique = self._query(f"""
            SELECT
                m.name AS table_name,
                ii.name AS column_name,
                il.name AS constraint_name,
                'UNIQUE' AS constraint_type,
                (
                    SELECT COUNT(*)
                    FROM pragma_index_info(il.name, :schema_name)
                ) AS column_count
            FROM {self._master} m
            JOIN pragma_index_list(m.name, :schema_name) il
            JOIN pragma_index_info(il.name, :schema_name) ii
            WHERE {_USER_TABLES}
              AND il."unique" = 1
              AND il.partial = 0
              AND il.origin != 'pk'
              AND ii.name IS NOT NULL
              {table_filter}
            ORDER BY m.name, il.seq, ii.seqno
        """, params)

        foreign = [
            {
                "table_name": row["table_name"],
                "column_name": row["column_name"],
                "constraint_type": "FOREIGN KEY",
                "column_count": row["column_count"],
                "foreign_key_schema": self.schema,
                "foreign_key_table": row["foreign_key_table"],
                "foreign_key_column": row["foreign_key_column"],
            }
            for row in self._foreign_key_rows(table)
        ]

        rows = primary + unique + foreign
        for row in rows:
            row["table_schema"] = self.schema
        return rows

    def has_column(self, table: str, column: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            FROM {self._master} m
            JOIN pragma_table_xinfo(m.name, :schema_name) p
            WHERE {_USER_TABLES}
              AND p.hidden != {_HIDDEN}
              AND m.name = :table_name
              AND p.name = :column_name
        """, self._params(table_name=table, column_name=column))
        return count > 0

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._query("""
            SELECT name AS column_name
            FROM pragma_table_info(:table_name, :schema_name)
            WHERE pk > 0
            ORDER BY pk
        """, self._params(table_name=table))
        return [row["column_name"] for row in rows]

    def _foreign_key_rows(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND m.name = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                m.name AS table_name,
                fk.id AS fk_id,
                fk."from" AS column_name,
                fk."table" AS foreign_key_table,
                fk."to" AS foreign_key_column,
                fk.on_update AS on_update,
                fk.on_delete AS on_delete,
                (
                    SELECT COUNT(*)
                    FROM pragma_foreign_key_list(m.name, :schema_name) f2
                    WHERE f2.id = fk.id
                ) AS column_count
            FROM {self._master} m
            JOIN pragma_foreign_key_list(m.name, :schema_name) fk
            WHERE {_USER_TABLES}
              {table_filter}
            ORDER BY m.name, fk.id, fk.seq
        """, params)

        for row in rows:
            # REFERENCES parent without a column list targets the parent's primary key
            if row["foreign_key_column"] is None:
                row["foreign_key_column"] = self.primary(row["foreign_key_table"])
        return rows

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        """List foreign keys.

        SQLite does not keep constraint names, so ``constraint_name`` is
        always ``None``.
        """
        foreign_keys = []
        for row in self._foreign_key_rows(table):
            if (to_int(row["column_count"]) or 1) > 1:
                logger.debug("Skipping composite foreign key %s on %s", row["fk_id"], row["table_name"])
                continue
            foreign_keys.append(ForeignKey(
                table=row["table_name"],
                column=row["column_name"],
                foreign_key_table=row["foreign_key_table"],
                foreign_key_column=row["foreign_key_column"],
                foreign_key_schema=self.schema,
                constraint_name=None,
                on_update=normalize_rule(row["on_update"]),
                on_delete=normalize_rule(row["on_delete"]),
            ))
        return foreign_keys
