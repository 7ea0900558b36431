"""Pure helpers shared by the engine inspectors."""

from .defaults import (
    coerce_number,
    normalize_rule,
    parse_data_default,
    parse_mssql_default,
    parse_postgres_default,
    strip_parens,
    unpack_numeric_typmod,
)
from .identifiers import quote_bracket, quote_double
from .quotes import strip_double_quotes, strip_quotes

__all__ = [
    "coerce_number",
    "normalize_rule",
    "parse_data_default",
    "parse_mssql_default",
    "parse_postgres_default",
    "strip_parens",
    "unpack_numeric_typmod",
    "quote_bracket",
    "quote_double",
    "strip_double_quotes",
    "strip_quotes",
]
