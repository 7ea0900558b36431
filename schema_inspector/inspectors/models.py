"""Engine-independent data models returned by the inspectors."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class Table:
    """Represents a base table."""
    name: str
    schema: Optional[str] = None
    comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MySQLTable(Table):
    """MySQL/MariaDB table with storage details."""
    collation: Optional[str] = None
    engine: Optional[str] = None


@dataclass
class PostgresTable(Table):
    """Postgres table with its owning role."""
    owner: Optional[str] = None


@dataclass
class SQLiteTable(Table):
    """SQLite table with the ``CREATE TABLE`` statement it was built from."""
    sql: Optional[str] = None


@dataclass
class Column:
    """Represents a table column.

    ``max_length`` is ``-1`` for unbounded types such as ``varchar(max)``.
    The foreign key fields are only set when the column alone makes up a
    foreign key; composite keys are reported by ``foreign_keys()`` instead.
    """
    name: str
    table: str
    schema: Optional[str] = None
    data_type: Optional[str] = None
    max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    is_nullable: bool = True
    default_value: Any = None
    is_generated: bool = False
    generation_expression: Optional[str] = None
    is_unique: bool = False
    is_primary_key: bool = False
    has_auto_increment: bool = False
    foreign_key_schema: Optional[str] = None
    foreign_key_table: Optional[str] = None
    foreign_key_column: Optional[str] = None
    comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ColumnRef:
    """A (table, column) pair as returned by ``columns()``."""
    table: str
    column: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForeignKey:
    """A foreign key constraint.

    ``on_update``/``on_delete`` are one of RESTRICT, CASCADE, SET NULL,
    SET DEFAULT, NO ACTION, or ``None`` when the engine does not say.
    """
    table: str
    column: str
    foreign_key_table: str
    foreign_key_column: Optional[str]
    foreign_key_schema: Optional[str] = None
    constraint_name: Optional[str] = None
    on_update: Optional[str] = None
    on_delete: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
