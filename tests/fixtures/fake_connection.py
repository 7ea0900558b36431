"""Fake SQLAlchemy connection for testing inspectors without a database server."""

import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional


class FakeResult:
    """Just enough of ``sqlalchemy.engine.Result`` for ``.mappings().all()``."""

    def __init__(self, rows: List[Dict[str, Any]]):
        self._rows = rows

    def mappings(self) -> "FakeResult":
        return self

    def all(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rows]


class FakeConnection:
    """Fake Connection that answers catalog queries with scripted rows.

    Responses are matched by regex against the SQL text, first match wins.
    Unmatched queries return no rows.
    """

    def __init__(self, dialect: str = "postgresql", database: Optional[str] = "app"):
        self.dialect = SimpleNamespace(name=dialect)
        self.engine = SimpleNamespace(url=SimpleNamespace(database=database))
        self._pattern_responses: List[tuple] = []
        self._call_history: List[Dict[str, Any]] = []

    def add_response(self, sql_pattern: str, rows: List[Dict[str, Any]]):
        """Add rows returned for queries matching ``sql_pattern`` (regex).

        Args:
            sql_pattern: Regex searched in the SQL text
            rows: Rows to return; keys may use any case
        """
        self._pattern_responses.append((re.compile(sql_pattern, re.DOTALL | re.IGNORECASE), rows))

    def execute(self, statement, params: Optional[Dict[str, Any]] = None) -> FakeResult:
        sql = statement.text
        self._call_history.append({"sql": sql, "params": dict(params or {})})

        for pattern, rows in self._pattern_responses:
            if pattern.search(sql):
                return FakeResult(rows)
        return FakeResult([])

    @property
    def call_history(self) -> List[Dict[str, Any]]:
        return self._call_history

    def calls_matching(self, sql_pattern: str) -> List[Dict[str, Any]]:
        pattern = re.compile(sql_pattern, re.DOTALL | re.IGNORECASE)
        return [call for call in self._call_history if pattern.search(call["sql"])]

    def clear_history(self):
        self._call_history = []
