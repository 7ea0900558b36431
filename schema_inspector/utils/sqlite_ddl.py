"""Scanner for SQLite ``CREATE TABLE`` statements.

SQLite keeps no catalog flag for AUTOINCREMENT and no column for generated
column expressions; both only exist in the DDL text stored in
``sqlite_master.sql``. This module splits that text into column definitions
and answers questions about a single column.

``sqlite_master`` keeps the statement as written, so ``--`` and ``/* */``
comments are skipped alongside quoted names and string literals.
"""

import re
from typing import Dict, List, Optional

_TABLE_CONSTRAINT_RE = re.compile(
    r"^(CONSTRAINT|PRIMARY\s+KEY|UNIQUE|CHECK|FOREIGN\s+KEY)\b", re.IGNORECASE
)
_AUTOINCREMENT_RE = re.compile(
    r"\bPRIMARY\s+KEY\b(\s+(ASC|DESC))?(\s+ON\s+CONFLICT\s+\w+)?\s+AUTOINCREMENT\b",
    re.IGNORECASE,
)
_GENERATED_RE = re.compile(r"(\bGENERATED\s+ALWAYS\s+)?\bAS\s*\(", re.IGNORECASE)

_QUOTE_PAIRS = {'"': '"', "`": "`", "[": "]", "'": "'"}


def _is_comment(text: str, index: int) -> bool:
    return text.startswith("--", index) or text.startswith("/*", index)


def _skip_span(text: str, index: int) -> Optional[int]:
    """End of the comment or quoted text starting at ``index``, or None.

    Unterminated spans run to the end of ``text``.
    """
    if text.startswith("--", index):
        end = text.find("\n", index)
        return len(text) if end == -1 else end + 1
    if text.startswith("/*", index):
        end = text.find("*/", index + 2)
        return len(text) if end == -1 else end + 2
    char = text[index]
    if char in _QUOTE_PAIRS:
        # a doubled quote closes one span and opens the next
        end = text.find(_QUOTE_PAIRS[char], index + 1)
        return len(text) if end == -1 else end + 1
    return None


def _find_open_paren(text: str) -> int:
    index = 0
    while index < len(text):
        end = _skip_span(text, index)
        if end is not None:
            index = end
            continue
        if text[index] == "(":
            return index
        index += 1
    return -1


def _matching_paren(text: str, start: int) -> int:
    """Index of the paren closing the one at ``start``, or -1."""
    depth = 0
    index = start
    while index < len(text):
        end = _skip_span(text, index)
        if end is not None:
            index = end
            continue
        char = text[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return -1


def _split_top_level(body: str) -> List[str]:
    """Split on top-level commas; comments are dropped from the pieces."""
    parts = []
    depth = 0
    current = []
    index = 0
    while index < len(body):
        end = _skip_span(body, index)
        if end is not None:
            current.append(" " if _is_comment(body, index) else body[index:end])
            index = end
            continue
        char = body[index]
        index += 1
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def _split_name(definition: str) -> Optional[tuple]:
    """Return ``(name, rest)`` for a column definition."""
    if not definition:
        return None
    opener = definition[0]
    if opener in _QUOTE_PAIRS:
        closer = _QUOTE_PAIRS[opener]
        end = definition.find(closer, 1)
        # doubled quote characters escape themselves
        while end != -1 and closer != "]" and definition[end + 1:end + 2] == closer:
            end = definition.find(closer, end + 2)
        if end == -1:
            return None
        name = definition[1:end].replace(closer * 2, closer)
        return name, definition[end + 1:].strip()
    pieces = definition.split(None, 1)
    return pieces[0], pieces[1] if len(pieces) > 1 else ""


def column_definitions(sql: Optional[str]) -> Dict[str, str]:
    """Map each column name in a ``CREATE TABLE`` statement to its definition.

    The definition is everything after the name (type and constraints).
    Table-level constraints are skipped. Keys keep their declared case.
    """
    if not sql:
        return {}
    start = _find_open_paren(sql)
    if start == -1:
        return {}
    end = _matching_paren(sql, start)
    if end == -1:
        return {}

    definitions = {}
    for part in _split_top_level(sql[start + 1:end]):
        if _TABLE_CONSTRAINT_RE.match(part):
            continue
        split = _split_name(part)
        if split:
            definitions[split[0]] = split[1]
    return definitions


def find_definition(sql: Optional[str], column: str) -> Optional[str]:
    """Definition for ``column``; SQLite column names are case-insensitive."""
    definitions = column_definitions(sql)
    if column in definitions:
        return definitions[column]
    lowered = column.lower()
    for name, definition in definitions.items():
        if name.lower() == lowered:
            return definition
    return None


def is_autoincrement(definition: Optional[str]) -> bool:
    """True for ``INTEGER PRIMARY KEY AUTOINCREMENT`` column definitions."""
    if not definition:
        return False
    return bool(_AUTOINCREMENT_RE.search(definition))


def generation_expression(definition: Optional[str]) -> Optional[str]:
    """The ``AS (...)`` expression of a generated column, without the parens."""
    if not definition:
        return None
    match = _GENERATED_RE.search(definition)
    if not match:
        return None
    open_index = match.end() - 1
    close_index = _matching_paren(definition, open_index)
    if close_index == -1:
        return None
    return definition[open_index + 1:close_index].strip()
