"""MySQL / MariaDB schema inspector."""

import logging
import re
from typing import List, Optional

from ..utils.defaults import normalize_rule, parse_data_default
from .base import SchemaInspector, empty_to_none, finalize_column, to_bool, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, MySQLTable

logger = logging.getLogger(__name__)

# EXTRA is e.g. "VIRTUAL GENERATED"; MySQL 8 also reports "DEFAULT_GENERATED"
# for expression defaults, which are not generated columns.
_GENERATED_EXTRA_RE = re.compile(r"\b(VIRTUAL|STORED|PERSISTENT) GENERATED\b", re.IGNORECASE)

# Falls back to the connection's current database when none was configured
_DATABASE = "COALESCE(:database, DATABASE())"


class MySQLInspector(SchemaInspector):
    """Inspector for MySQL and MariaDB.

    MySQL has no schema separate from the database, so everything is scoped
    to the connection's database and there is no ``with_schema``.
    """

    client = "mysql"

    def _params(self, **extra):
        params = {"database": self.database}
        params.update(extra)
        return params

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._query(f"""
            SELECT TABLE_NAME AS table_name
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = {_DATABASE}
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME ASC
        """, self._params())
        return [row["table_name"] for row in rows]

    def _table_info(self, table: Optional[str] = None) -> List[MySQLTable]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                TABLE_NAME AS table_name,
                TABLE_SCHEMA AS table_schema,
                TABLE_COMMENT AS table_comment,
                TABLE_COLLATION AS table_collation,
                ENGINE AS table_engine
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = {_DATABASE}
              AND TABLE_TYPE = 'BASE TABLE'
              {table_filter}
            ORDER BY TABLE_NAME ASC
        """, params)

        return [
            MySQLTable(
                name=row["table_name"],
                schema=row["table_schema"],
                comment=empty_to_none(row["table_comment"]),
                collation=row["table_collation"],
                engine=row["table_engine"],
            )
            for row in rows
        ]

    def has_table(self, table: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = {_DATABASE}
              AND TABLE_TYPE = 'BASE TABLE'
              AND TABLE_NAME = :table_name
        """, self._params(table_name=table))
        return count > 0

    # Columns
    # ------------------------------------------------------------------

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND c.TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT c.TABLE_NAME AS table_name, c.COLUMN_NAME AS column_name
            FROM information_schema.COLUMNS c
            JOIN information_schema.TABLES t
              ON t.TABLE_SCHEMA = c.TABLE_SCHEMA
             AND t.TABLE_NAME = c.TABLE_NAME
             AND t.TABLE_TYPE = 'BASE TABLE'
            WHERE c.TABLE_SCHEMA = {_DATABASE}
              {table_filter}
            ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION
        """, params)
        return [ColumnRef(table=row["table_name"], column=row["column_name"]) for row in rows]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        params = self._params()
        filters = []
        if table is not None:
            filters.append("AND c.TABLE_NAME = :table_name")
            params["table_name"] = table
        if column is not None:
            filters.append("AND c.COLUMN_NAME = :column_name")
            params["column_name"] = column

        rows = self._query(f"""
            SELECT
                c.TABLE_NAME AS table_name,
                c.TABLE_SCHEMA AS table_schema,
                c.COLUMN_NAME AS column_name,
                c.DATA_TYPE AS data_type,
                c.CHARACTER_MAXIMUM_LENGTH AS max_length,
                c.NUMERIC_PRECISION AS numeric_precision,
                c.NUMERIC_SCALE AS numeric_scale,
                c.IS_NULLABLE AS is_nullable,
                c.COLUMN_DEFAULT AS default_value,
                c.EXTRA AS extra,
                c.GENERATION_EXPRESSION AS generation_expression,
                c.COLUMN_COMMENT AS column_comment
            FROM information_schema.COLUMNS c
            JOIN information_schema.TABLES t
              ON t.TABLE_SCHEMA = c.TABLE_SCHEMA
             AND t.TABLE_NAME = c.TABLE_NAME
             AND t.TABLE_TYPE = 'BASE TABLE'
            WHERE c.TABLE_SCHEMA = {_DATABASE}
              {' '.join(filters)}
            ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION
        """, params)

        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            extra = row.get("extra") or ""
            is_generated = bool(_GENERATED_EXTRA_RE.search(extra))
            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=row["table_schema"],
                data_type=row["data_type"],
                max_length=to_int(row["max_length"]),
                numeric_precision=to_int(row["numeric_precision"]),
                numeric_scale=to_int(row["numeric_scale"]),
                is_nullable=to_bool(row["is_nullable"]),
                default_value=parse_data_default(row["default_value"]),
                is_generated=is_generated,
                generation_expression=empty_to_none(row.get("generation_expression")) if is_generated else None,
                has_auto_increment="auto_increment" in extra.lower(),
                comment=empty_to_none(row["column_comment"]),
            )
            flags = self._flags_for(resolved, row["table_schema"], row["table_name"], row["column_name"])
            columns.append(finalize_column(col, flags))
        return columns

    def _constraint_rows(self, table: Optional[str] = None):
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND kcu.TABLE_NAME = :table_name"
            params["table_name"] = table

        return self._query(f"""
            SELECT
                kcu.TABLE_SCHEMA AS table_schema,
                kcu.TABLE_NAME AS table_name,
                kcu.COLUMN_NAME AS column_name,
                kcu.CONSTRAINT_NAME AS constraint_name,
                tc.CONSTRAINT_TYPE AS constraint_type,
                kcu.REFERENCED_TABLE_SCHEMA AS foreign_key_schema,
                kcu.REFERENCED_TABLE_NAME AS foreign_key_table,
                kcu.REFERENCED_COLUMN_NAME AS foreign_key_column,
                (
                    SELECT COUNT(*)
                    FROM information_schema.KEY_COLUMN_USAGE k2
                    WHERE k2.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                      AND k2.TABLE_NAME = kcu.TABLE_NAME
                      AND k2.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                ) AS column_count
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.TABLE_CONSTRAINTS tc
              ON tc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
             AND tc.TABLE_NAME = kcu.TABLE_NAME
             AND tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
            WHERE kcu.TABLE_SCHEMA = {_DATABASE}
              AND tc.CONSTRAINT_TYPE IN ('PRIMARY KEY', 'UNIQUE', 'FOREIGN KEY')
              {table_filter}
            ORDER BY kcu.TABLE_NAME, kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """, params)

    def has_column(self, table: str, column: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            FROM information_schema.COLUMNS c
            JOIN information_schema.TABLES t
              ON t.TABLE_SCHEMA = c.TABLE_SCHEMA
             AND t.TABLE_NAME = c.TABLE_NAME
             AND t.TABLE_TYPE = 'BASE TABLE'
            WHERE c.TABLE_SCHEMA = {_DATABASE}
              AND c.TABLE_NAME = :table_name
              AND c.COLUMN_NAME = :column_name
        """, self._params(table_name=table, column_name=column))
        return count > 0

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._query(f"""
            SELECT COLUMN_NAME AS column_name
            FROM information_schema.KEY_COLUMN_USAGE
            WHERE TABLE_SCHEMA = {_DATABASE}
              AND TABLE_NAME = :table_name
              AND CONSTRAINT_NAME = 'PRIMARY'
            ORDER BY ORDINAL_POSITION
        """, self._params(table_name=table))
        return [row["column_name"] for row in rows]

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        params = self._params()
        table_filter = ""
        if table is not None:
            table_filter = "AND kcu.TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                kcu.TABLE_NAME AS table_name,
                kcu.COLUMN_NAME AS column_name,
                kcu.REFERENCED_TABLE_SCHEMA AS foreign_key_schema,
                kcu.REFERENCED_TABLE_NAME AS foreign_key_table,
                kcu.REFERENCED_COLUMN_NAME AS foreign_key_column,
                kcu.CONSTRAINT_NAME AS constraint_name,
                rc.UPDATE_RULE AS on_update,
                rc.DELETE_RULE AS on_delete,
                (
                    SELECT COUNT(*)
                    FROM information_schema.KEY_COLUMN_USAGE k2
                    WHERE k2.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
                      AND k2.TABLE_NAME = kcu.TABLE_NAME
                      AND k2.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
                ) AS column_count
            FROM information_schema.KEY_COLUMN_USAGE kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
              ON rc.CONSTRAINT_SCHEMA = kcu.CONSTRAINT_SCHEMA
             AND rc.TABLE_NAME = kcu.TABLE_NAME
             AND rc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
            WHERE kcu.TABLE_SCHEMA = {_DATABASE}
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
              {table_filter}
            ORDER BY kcu.TABLE_NAME, kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """, params)

        foreign_keys = []
        for row in rows:
            # composite keys cannot be expressed one column at a time
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
