"""Normalization of catalog default values and other raw catalog text.

Every engine encodes column defaults differently:

- Postgres/CockroachDB: ``'example'::character varying``, ``nextval(...)``
- SQL Server: ``((0))``, ``(N'text')``, ``(getdate())``
- Oracle/SQLite: the SQL literal as typed, ``'active'`` or ``NULL``
- MySQL: the default value itself, unquoted (MariaDB quotes strings)

The parsers never raise on unexpected input. Catalog text varies between
engine versions and a best-effort string beats a failed introspection.
"""

import json
import logging
import re
from typing import Any, Optional, Tuple

from .quotes import strip_double_quotes, strip_quotes

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")
_INTEGER_RE = re.compile(r"^[-+]?\d+$")

# 'literal'::type, the literal may contain doubled quotes; CockroachDB annotates with :::
_PG_LITERAL_CAST_RE = re.compile(r"^'((?:[^']|'')*)':::?([\w\s\[\]\".(),]+)$", re.DOTALL)
# NULL::type, 42::bigint, (-1)::integer
_PG_BARE_CAST_RE = re.compile(r"^([^':]+):::?([\w\s\[\]\".]+)$")

REFERENTIAL_ACTIONS = {"RESTRICT", "CASCADE", "SET NULL", "SET DEFAULT", "NO ACTION"}

# pg_constraint.confupdtype / confdeltype codes
_PG_ACTION_CODES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


def coerce_number(value: Any) -> Any:
    """Return an int or float when ``value`` is a plain numeric literal.

    Anything else, including ``nan``/``infinity`` words, comes back unchanged.
    """
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not _NUMBER_RE.match(text):
        return value
    if _INTEGER_RE.match(text):
        return int(text)
    return float(text)


def _is_wrapped_in_parens(value: str) -> bool:
    """True when the opening paren at index 0 closes at the last index."""
    if len(value) < 2 or value[0] != "(" or value[-1] != ")":
        return False
    depth = 0
    in_quote = False
    for index, char in enumerate(value):
        if char == "'":
            in_quote = not in_quote
        elif in_quote:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and index != len(value) - 1:
                return False
    return depth == 0 and not in_quote


def strip_parens(value: str) -> str:
    """Remove every layer of enclosing parentheses: ``((0))`` -> ``0``."""
    while _is_wrapped_in_parens(value):
        value = value[1:-1].strip()
    return value


def _unescape_single(value: str) -> str:
    return value.replace("''", "'")


def _is_quoted(value: str, quote: str = "'") -> bool:
    return len(value) >= 2 and value.startswith(quote) and value.endswith(quote)


def parse_postgres_default(value: Optional[str]) -> Any:
    """Convert a Postgres/CockroachDB column default to a Python value.

    ``'example'::character varying`` -> ``'example'``
    ``'{"a": 1}'::jsonb`` -> ``{'a': 1}``
    ``'42'::integer`` -> ``42``
    ``nextval('x_seq'::regclass)`` -> returned verbatim

    The cast decides the type: json casts are decoded, char/text casts stay
    strings, anything else is coerced to a number when it looks like one.
    """
    if value is None:
        return None
    if value.startswith("nextval("):
        return value

    cast = None
    quoted = False
    match = _PG_LITERAL_CAST_RE.match(value)
    if match:
        literal, cast = _unescape_single(match.group(1)), match.group(2)
        quoted = True
    else:
        match = _PG_BARE_CAST_RE.match(value)
        if match:
            literal, cast = match.group(1).strip(), match.group(2)
        elif _is_quoted(value):
            literal, quoted = _unescape_single(value[1:-1]), True
        else:
            literal = value

    if not quoted and literal.upper() == "NULL":
        return None

    if cast is None:
        if quoted:
            return literal
        # expressions such as now() or CURRENT_TIMESTAMP are kept as written
        unwrapped = strip_parens(literal)
        return coerce_number(unwrapped) if _NUMBER_RE.match(unwrapped) else value

    cast = cast.lower()
    if "json" in cast:
        try:
            return json.loads(literal)
        except ValueError:
            logger.debug("Keeping undecodable json default as text: %r", literal)
            return literal
    if "char" in cast or "text" in cast:
        return str(literal)

    unwrapped = strip_parens(literal)
    if _NUMBER_RE.match(unwrapped):
        return coerce_number(unwrapped)
    return literal


def parse_mssql_default(value: Optional[str]) -> Any:
    """Convert a SQL Server ``object_definition`` default to a Python value.

    ``((0))`` -> ``0``, ``('active')`` -> ``'active'``, ``(NULL)`` -> ``None``,
    ``(getdate())`` -> ``'getdate()'``. Quoted literals stay strings even when
    they look numeric.
    """
    if value is None:
        return None
    text = strip_parens(value.strip())

    if text[:2] in ("N'", "n'") and text.endswith("'") and len(text) >= 3:
        text = text[1:]

    if _is_quoted(text):
        text = _unescape_single(text[1:-1])
        if text.lower() == "null":
            return None
        return text

    if text.lower() == "null":
        return None
    return coerce_number(text)


def parse_data_default(value: Optional[str], coerce_numbers: bool = False) -> Any:
    """Convert an Oracle/SQLite/MySQL default to a Python value.

    Trims whitespace, maps the bare word ``null`` to ``None`` and removes one
    balanced layer of single or double quotes. With ``coerce_numbers`` an
    unquoted numeric literal becomes an int or float.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    trimmed = value.strip()
    if trimmed.lower() == "null":
        return None

    if _is_quoted(trimmed, "'"):
        return _unescape_single(strip_quotes(trimmed))
    if _is_quoted(trimmed, '"'):
        return strip_double_quotes(trimmed)

    if coerce_numbers:
        unwrapped = strip_parens(trimmed)
        if _NUMBER_RE.match(unwrapped):
            return coerce_number(unwrapped)
    return trimmed


def unpack_numeric_typmod(atttypmod: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    """Split a Postgres ``numeric`` atttypmod into ``(precision, scale)``.

    ``-1`` (or ``None``) means an unconstrained numeric.
    """
    if atttypmod is None or atttypmod == -1:
        return None, None
    precision = ((atttypmod - 4) >> 16) & 65535
    scale = (atttypmod - 4) & 65535
    return precision, scale


def normalize_rule(rule: Optional[str]) -> Optional[str]:
    """Map a referential action to RESTRICT/CASCADE/SET NULL/SET DEFAULT/NO ACTION.

    Accepts the spelled-out form from information_schema and the single
    letter codes from pg_constraint. Unknown values become ``None``.
    """
    if rule is None:
        return None
    text = str(rule).strip()
    if text in _PG_ACTION_CODES:
        return _PG_ACTION_CODES[text]
    text = text.upper().replace("_", " ")
    if text in REFERENTIAL_ACTIONS:
        return text
    logger.debug("Unknown referential action %r", rule)
    return None
