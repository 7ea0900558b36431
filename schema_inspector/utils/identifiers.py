"""Identifier quoting for names that cannot be sent as bound parameters.

Values always go through bound parameters. Identifiers are quoted only where
an engine needs them spelled out in the statement, such as the attached
database of a SQLite ``sqlite_master`` or a database-qualified SQL Server
catalog view.
"""


def quote_double(identifier: str) -> str:
    """ANSI double-quote quoting (SQLite, Postgres)."""
    return '"' + str(identifier).replace('"', '""') + '"'


def quote_bracket(identifier: str) -> str:
    """SQL Server quoting."""
    return "[" + str(identifier).replace("]", "]]") + "]"
