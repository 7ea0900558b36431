"""CockroachDB schema inspector."""

import logging
from typing import Any, Dict, List, Optional

from ..utils.defaults import normalize_rule, parse_postgres_default
from .base import empty_to_none, finalize_column, to_bool, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, PostgresTable
from .postgres import PostgresInspector

logger = logging.getLogger(__name__)

# Hidden columns (the implicit rowid key) are not part of the user's table
_VISIBLE_COLUMNS = """
    FROM information_schema.columns c
    JOIN information_schema.tables t
      ON t.table_schema = c.table_schema
     AND t.table_name = c.table_name
     AND t.table_type = 'BASE TABLE'
    WHERE c.table_catalog = current_database()
      AND c.table_schema IN :schemas
      AND c.is_hidden = 'NO'
"""


class CockroachDBInspector(PostgresInspector):
    """Inspector for CockroachDB.

    Search path handling is shared with Postgres; the catalog is read through
    ``information_schema``, which CockroachDB keeps closer to complete than
    its ``pg_catalog`` emulation.
    """

    client = "cockroachdb"

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._schema_query("""
            SELECT table_name, table_schema
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema IN :schemas
              AND table_type = 'BASE TABLE'
            ORDER BY table_name ASC
        """)
        return [row["table_name"] for row in self._first_in_path(rows)]

    def _table_info(self, table: Optional[str] = None) -> List[PostgresTable]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND t.table_name = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT
                t.table_name,
                t.table_schema,
                pg_catalog.obj_description(pc.oid, 'pg_class') AS table_comment,
                pg_catalog.pg_get_userbyid(pc.relowner) AS table_owner
            FROM information_schema.tables t
            LEFT JOIN pg_catalog.pg_namespace pn ON pn.nspname = t.table_schema
            LEFT JOIN pg_catalog.pg_class pc ON pc.relname = t.table_name AND pc.relnamespace = pn.oid
            WHERE t.table_catalog = current_database()
              AND t.table_schema IN :schemas
              AND t.table_type = 'BASE TABLE'
              {table_filter}
            ORDER BY t.table_name ASC
        """, params)

        return [
            PostgresTable(
                name=row["table_name"],
                schema=row["table_schema"],
                comment=empty_to_none(row["table_comment"]),
                owner=row["table_owner"],
            )
            for row in self._first_in_path(rows)
        ]

    def has_table(self, table: str) -> bool:
        count = self._count("""
            SELECT COUNT(*) AS matches
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema IN :schemas
              AND table_type = 'BASE TABLE'
              AND table_name = :table_name
        """, {"schemas": list(self.explode_schema), "table_name": table}, expanding=("schemas",))
        return count > 0

    # Columns
    # ------------------------------------------------------------------

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.table_name = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT c.table_name, c.table_schema, c.column_name
            {_VISIBLE_COLUMNS}
              {table_filter}
            ORDER BY c.table_name, c.ordinal_position
        """, params)
        return [
            ColumnRef(table=row["table_name"], column=row["column_name"])
            for row in self._first_in_path(rows)
        ]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        params = {}
        filters = []
        if table is not None:
            filters.append("AND c.table_name = :table_name")
            params["table_name"] = table
        if column is not None:
            filters.append("AND c.column_name = :column_name")
            params["column_name"] = column

        rows = self._schema_query(f"""
            SELECT
                c.table_name,
                c.table_schema,
                c.column_name,
                c.data_type,
                c.character_maximum_length AS max_length,
                c.numeric_precision,
                c.numeric_scale,
                c.is_nullable,
                c.column_default AS default_value,
                c.is_generated,
                c.generation_expression,
                (
                    pg_catalog.pg_get_serial_sequence(
                        quote_ident(c.table_schema) || '.' || quote_ident(c.table_name), c.column_name
                    ) IS NOT NULL
                    OR c.is_identity = 'YES'
                ) AS has_auto_increment,
                pg_catalog.col_description(pc.oid, c.ordinal_position) AS column_comment
            FROM information_schema.columns c
            JOIN information_schema.tables t
              ON t.table_schema = c.table_schema
             AND t.table_name = c.table_name
             AND t.table_type = 'BASE TABLE'
            LEFT JOIN pg_catalog.pg_namespace pn ON pn.nspname = c.table_schema
            LEFT JOIN pg_catalog.pg_class pc ON pc.relname = c.table_name AND pc.relnamespace = pn.oid
            WHERE c.table_catalog = current_database()
              AND c.table_schema IN :schemas
              AND c.is_hidden = 'NO'
              {' '.join(filters)}
            ORDER BY c.table_name, c.ordinal_position
        """, params)
        rows = self._first_in_path(rows)

        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            is_generated = to_bool(row["is_generated"])
            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=row["table_schema"],
                data_type=row["data_type"],
                max_length=to_int(row["max_length"]),
                numeric_precision=to_int(row["numeric_precision"]),
                numeric_scale=to_int(row["numeric_scale"]),
                is_nullable=to_bool(row["is_nullable"]),
                default_value=parse_postgres_default(row["default_value"]),
                is_generated=is_generated,
                generation_expression=empty_to_none(row["generation_expression"]) if is_generated else None,
                has_auto_increment=to_bool(row["has_auto_increment"]),
                comment=empty_to_none(row["column_comment"]),
            )
            flags = self._flags_for(resolved, row["table_schema"], row["table_name"], row["column_name"])
            columns.append(finalize_column(col, flags))
        return columns

    def _constraint_rows(self, table: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND kcu.table_name = :table_name"
            params["table_name"] = table

        return self._schema_query(f"""
            SELECT
                kcu.table_schema,
                kcu.table_name,
                kcu.column_name,
                kcu.constraint_name,
                tc.constraint_type,
                ref.table_schema AS foreign_key_schema,
                ref.table_name AS foreign_key_table,
                ref.column_name AS foreign_key_column,
                (
                    SELECT COUNT(*)
                    FROM information_schema.key_column_usage k2
                    WHERE k2.constraint_schema = kcu.constraint_schema
                      AND k2.table_name = kcu.table_name
                      AND k2.constraint_name = kcu.constraint_name
                ) AS column_count
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.table_constraints tc
              ON tc.constraint_schema = kcu.constraint_schema
             AND tc.table_name = kcu.table_name
             AND tc.constraint_name = kcu.constraint_name
            LEFT JOIN information_schema.referential_constraints rc
              ON rc.constraint_schema = kcu.constraint_schema
             AND rc.constraint_name = kcu.constraint_name
            LEFT JOIN information_schema.key_column_usage ref
              ON ref.constraint_schema = rc.unique_constraint_schema
             AND ref.constraint_name = rc.unique_constraint_name
             AND ref.ordinal_position = kcu.position_in_unique_constraint
            WHERE kcu.table_catalog = current_database()
              AND kcu.table_schema IN :schemas
              AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE', 'FOREIGN KEY')
              {table_filter}
            ORDER BY kcu.table_name, kcu.constraint_name, kcu.ordinal_position
        """, params)

    def has_column(self, table: str, column: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            {_VISIBLE_COLUMNS}
              AND c.table_name = :table_name
              AND c.column_name = :column_name
        """, {
            "schemas": list(self.explode_schema),
            "table_name": table,
            "column_name": column,
        }, expanding=("schemas",))
        return count > 0

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._schema_query("""
            SELECT kcu.table_schema, kcu.table_name, kcu.column_name
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.table_constraints tc
              ON tc.constraint_schema = kcu.constraint_schema
             AND tc.table_name = kcu.table_name
             AND tc.constraint_name = kcu.constraint_name
            JOIN information_schema.columns c
              ON c.table_schema = kcu.table_schema
             AND c.table_name = kcu.table_name
             AND c.column_name = kcu.column_name
            WHERE kcu.table_catalog = current_database()
              AND kcu.table_schema IN :schemas
              AND kcu.table_name = :table_name
              AND tc.constraint_type = 'PRIMARY KEY'
              AND c.is_hidden = 'NO'
            ORDER BY kcu.table_schema, kcu.ordinal_position
        """, {"table_name": table})
        return [row["column_name"] for row in self._first_in_path(rows)]

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND kcu.table_name = :table_name"
            params["table_name"] = table

        rows = self._schema_query(f"""
            SELECT
                kcu.table_name,
                kcu.table_schema,
                kcu.column_name,
                ref.table_schema AS foreign_key_schema,
                ref.table_name AS foreign_key_table,
                ref.column_name AS foreign_key_column,
                kcu.constraint_name,
                rc.update_rule AS on_update,
                rc.delete_rule AS on_delete,
                (
                    SELECT COUNT(*)
                    FROM information_schema.key_column_usage k2
                    WHERE k2.constraint_schema = kcu.constraint_schema
                      AND k2.table_name = kcu.table_name
                      AND k2.constraint_name = kcu.constraint_name
                ) AS column_count
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.referential_constraints rc
              ON rc.constraint_schema = kcu.constraint_schema
             AND rc.constraint_name = kcu.constraint_name
            JOIN information_schema.key_column_usage ref
              ON ref.constraint_schema = rc.unique_constraint_schema
             AND ref.constraint_name = rc.unique_constraint_name
             AND ref.ordinal_position = kcu.position_in_unique_constraint
            WHERE kcu.table_catalog = current_database()
              AND kcu.table_schema IN :schemas
              {table_filter}
            ORDER BY kcu.table_name, kcu.constraint_name
        """, params)

        foreign_keys = []
        for row in self._first_in_path(rows):
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
