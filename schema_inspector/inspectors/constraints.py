"""Attribution of primary/unique/foreign key constraints to single columns."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

PRIMARY_KEY = "PRIMARY KEY"
UNIQUE = "UNIQUE"
FOREIGN_KEY = "FOREIGN KEY"

# pg_constraint.contype and Oracle CONSTRAINT_TYPE codes
_TYPE_CODES = {
    "p": PRIMARY_KEY,
    "u": UNIQUE,
    "f": FOREIGN_KEY,
    "r": FOREIGN_KEY,
}

ColumnKey = Tuple[Optional[str], str, str]


def normalize_constraint_type(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in _TYPE_CODES:
        return _TYPE_CODES[text.lower()]
    text = text.upper()
    if text in (PRIMARY_KEY, UNIQUE, FOREIGN_KEY):
        return text
    return None


@dataclass
class ConstraintFlags:
    """What the constraints say about one column."""
    is_primary_key: bool = False
    is_unique: bool = False
    foreign_key_schema: Optional[str] = None
    foreign_key_table: Optional[str] = None
    foreign_key_column: Optional[str] = None


def resolve_constraints(rows: Iterable[Dict[str, Any]]) -> Dict[ColumnKey, ConstraintFlags]:
    """Fold constraint membership rows into per-column flags.

    Each row needs ``table_name``, ``column_name``, ``constraint_type`` and
    ``column_count``; ``table_schema`` and the ``foreign_key_*`` values are
    optional. Rows must arrive in the engine's constraint order.

    Constraints spanning more than one column are skipped entirely. A primary
    key also marks the column unique. Only the first foreign key seen for a
    column is kept.
    """
    resolved: Dict[ColumnKey, ConstraintFlags] = {}
    for row in rows:
        if int(row.get("column_count") or 1) > 1:
            continue
        kind = normalize_constraint_type(row.get("constraint_type"))
        if kind is None:
            continue

        key = (row.get("table_schema"), row["table_name"], row["column_name"])
        flags = resolved.setdefault(key, ConstraintFlags())

        if kind == PRIMARY_KEY:
            flags.is_primary_key = True
            flags.is_unique = True
        elif kind == UNIQUE:
            flags.is_unique = True
        elif flags.foreign_key_table is None:
            flags.foreign_key_schema = row.get("foreign_key_schema")
            flags.foreign_key_table = row.get("foreign_key_table")
            flags.foreign_key_column = row.get("foreign_key_column")
    return resolved
