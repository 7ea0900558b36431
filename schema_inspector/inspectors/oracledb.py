"""Oracle schema inspector."""

import logging
from typing import Any, Dict, List, Optional

from ..utils.defaults import normalize_rule, parse_data_default
from .base import SchemaInspector, finalize_column, to_bool, to_int
from .constraints import resolve_constraints
from .models import Column, ColumnRef, ForeignKey, Table

logger = logging.getLogger(__name__)

# Oracle rejects AS before table aliases; column aliases are fine
_USER_COLUMNS = """
    FROM USER_TAB_COLS c
    JOIN USER_TABLES t ON t.TABLE_NAME = c.TABLE_NAME AND t.DROPPED = 'NO'
    WHERE c.HIDDEN_COLUMN = 'NO'
"""


class OracleDBInspector(SchemaInspector):
    """Inspector for Oracle Database 12c and later.

    Everything is read from the ``USER_*`` dictionary views, so the active
    schema is always the connected user's and there is no ``with_schema``.
    Oracle has no ``ON UPDATE`` referential action; ``on_update`` is always
    ``None``.
    """

    client = "oracledb"

    # Tables
    # ------------------------------------------------------------------

    def tables(self) -> List[str]:
        rows = self._query("""
            SELECT TABLE_NAME AS table_name
            FROM USER_TABLES
            WHERE DROPPED = 'NO'
            ORDER BY TABLE_NAME ASC
        """)
        return [row["table_name"] for row in rows]

    def _table_info(self, table: Optional[str] = None) -> List[Table]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND t.TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                t.TABLE_NAME AS table_name,
                USER AS table_schema,
                tc.COMMENTS AS table_comment
            FROM USER_TABLES t
            LEFT JOIN USER_TAB_COMMENTS tc ON tc.TABLE_NAME = t.TABLE_NAME
            WHERE t.DROPPED = 'NO'
              {table_filter}
            ORDER BY t.TABLE_NAME ASC
        """, params)

        # empty strings are NULL in Oracle, so COMMENTS is never ''
        return [
            Table(name=row["table_name"], schema=row["table_schema"], comment=row["table_comment"])
            for row in rows
        ]

    def has_table(self, table: str) -> bool:
        count = self._count("""
            SELECT COUNT(*) AS matches
            FROM USER_TABLES
            WHERE DROPPED = 'NO'
              AND TABLE_NAME = :table_name
        """, {"table_name": table})
        return count > 0

    # Columns
    # ------------------------------------------------------------------

    def columns(self, table: Optional[str] = None) -> List[ColumnRef]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND c.TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT c.TABLE_NAME AS table_name, c.COLUMN_NAME AS column_name
            {_USER_COLUMNS}
              {table_filter}
            ORDER BY c.TABLE_NAME, c.COLUMN_ID
        """, params)
        return [ColumnRef(table=row["table_name"], column=row["column_name"]) for row in rows]

    def _column_info(self, table: Optional[str] = None, column: Optional[str] = None) -> List[Column]:
        params = {}
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
                USER AS table_schema,
                c.COLUMN_NAME AS column_name,
                c.DATA_TYPE AS data_type,
                c.DATA_LENGTH AS max_length,
                c.DATA_PRECISION AS numeric_precision,
                c.DATA_SCALE AS numeric_scale,
                c.NULLABLE AS is_nullable,
                c.DATA_DEFAULT AS default_value,
                c.VIRTUAL_COLUMN AS is_generated,
                c.IDENTITY_COLUMN AS has_auto_increment,
                cm.COMMENTS AS column_comment
            FROM USER_TAB_COLS c
            JOIN USER_TABLES t ON t.TABLE_NAME = c.TABLE_NAME AND t.DROPPED = 'NO'
            LEFT JOIN USER_COL_COMMENTS cm
              ON cm.TABLE_NAME = c.TABLE_NAME
             AND cm.COLUMN_NAME = c.COLUMN_NAME
            WHERE c.HIDDEN_COLUMN = 'NO'
              {' '.join(filters)}
            ORDER BY c.TABLE_NAME, c.COLUMN_ID
        """, params)

        resolved = resolve_constraints(self._constraint_rows(table))

        columns = []
        for row in rows:
            is_generated = to_bool(row["is_generated"])
            raw_default = row["default_value"]
            col = Column(
                name=row["column_name"],
                table=row["table_name"],
                schema=row["table_schema"],
                data_type=row["data_type"],
                max_length=to_int(row["max_length"]),
                numeric_precision=to_int(row["numeric_precision"]),
                numeric_scale=to_int(row["numeric_scale"]),
                is_nullable=to_bool(row["is_nullable"]),
                # DATA_DEFAULT holds the expression of virtual columns
                default_value=None if is_generated else parse_data_default(raw_default, coerce_numbers=True),
                is_generated=is_generated,
                generation_expression=raw_default.strip() if is_generated and raw_default else None,
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
            table_filter = "AND uc.TABLE_NAME = :table_name"
            params["table_name"] = table

        return self._query(f"""
            SELECT
                USER AS table_schema,
                uc.TABLE_NAME AS table_name,
                cc.COLUMN_NAME AS column_name,
                uc.CONSTRAINT_NAME AS constraint_name,
                uc.CONSTRAINT_TYPE AS constraint_type,
                rc.OWNER AS foreign_key_schema,
                rc.TABLE_NAME AS foreign_key_table,
                rc.COLUMN_NAME AS foreign_key_column,
                (
                    SELECT COUNT(*)
                    FROM USER_CONS_COLUMNS c2
                    WHERE c2.CONSTRAINT_NAME = uc.CONSTRAINT_NAME
                ) AS column_count
            FROM USER_CONSTRAINTS uc
            JOIN USER_CONS_COLUMNS cc ON cc.CONSTRAINT_NAME = uc.CONSTRAINT_NAME
            LEFT JOIN ALL_CONS_COLUMNS rc
              ON rc.OWNER = uc.R_OWNER
             AND rc.CONSTRAINT_NAME = uc.R_CONSTRAINT_NAME
             AND rc.POSITION = cc.POSITION
            WHERE uc.CONSTRAINT_TYPE IN ('P', 'U', 'R')
              {table_filter}
            ORDER BY uc.TABLE_NAME, uc.CONSTRAINT_NAME, cc.POSITION
        """, params)

    def has_column(self, table: str, column: str) -> bool:
        count = self._count(f"""
            SELECT COUNT(*) AS matches
            {_USER_COLUMNS}
              AND c.TABLE_NAME = :table_name
              AND c.COLUMN_NAME = :column_name
        """, {"table_name": table, "column_name": column})
        return count > 0

    # Keys
    # ------------------------------------------------------------------

    def primary_keys(self, table: str) -> List[str]:
        rows = self._query("""
            SELECT cc.COLUMN_NAME AS column_name
            FROM USER_CONSTRAINTS uc
            JOIN USER_CONS_COLUMNS cc ON cc.CONSTRAINT_NAME = uc.CONSTRAINT_NAME
            WHERE uc.CONSTRAINT_TYPE = 'P'
              AND uc.TABLE_NAME = :table_name
            ORDER BY cc.POSITION
        """, {"table_name": table})
        return [row["column_name"] for row in rows]

    def foreign_keys(self, table: Optional[str] = None) -> List[ForeignKey]:
        params = {}
        table_filter = ""
        if table is not None:
            table_filter = "AND uc.TABLE_NAME = :table_name"
            params["table_name"] = table

        rows = self._query(f"""
            SELECT
                uc.TABLE_NAME AS table_name,
                cc.COLUMN_NAME AS column_name,
                rc.OWNER AS foreign_key_schema,
                rc.TABLE_NAME AS foreign_key_table,
                rc.COLUMN_NAME AS foreign_key_column,
                uc.CONSTRAINT_NAME AS constraint_name,
                uc.DELETE_RULE AS on_delete,
                (
                    SELECT COUNT(*)
                    FROM USER_CONS_COLUMNS c2
                    WHERE c2.CONSTRAINT_NAME = uc.CONSTRAINT_NAME
                ) AS column_count
            FROM USER_CONSTRAINTS uc
            JOIN USER_CONS_COLUMNS cc ON cc.CONSTRAINT_NAME = uc.CONSTRAINT_NAME
            JOIN ALL_CONS_COLUMNS rc
              ON rc.OWNER = uc.R_OWNER
             AND rc.CONSTRAINT_NAME = uc.R_CONSTRAINT_NAME
             AND rc.POSITION = cc.POSITION
            WHERE uc.CONSTRAINT_TYPE = 'R'
              {table_filter}
            ORDER BY uc.TABLE_NAME, uc.CONSTRAINT_NAME
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
                on_update=None,
                on_delete=normalize_rule(row["on_delete"]),
            ))
        return foreign_keys
