"""Error types for schema-inspector.

Missing tables and columns are not errors: lookups return ``None`` or an
empty list. Query failures are SQLAlchemy's own exceptions and propagate
unchanged.
"""

from typing import Any, Dict, Iterable, Optional


class SchemaInspectorError(Exception):
    """Base exception for schema-inspector errors."""

    def __init__(self, message: str, code: str = "SCHEMA_INSPECTOR_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnsupportedEngineError(SchemaInspectorError):
    """No inspector exists for the requested engine."""

    def __init__(self, client: Optional[str], supported: Iterable[str] = ()):
        supported = sorted(supported)
        message = f"Unsupported database client: {client!r}"
        if supported:
            message += f". Supported: {', '.join(supported)}"
        super().__init__(
            message,
            code="UNSUPPORTED_ENGINE",
            details={"client": client, "supported": supported},
        )
        self.client = client
