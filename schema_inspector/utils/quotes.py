"""Quote stripping for catalog text."""

from typing import Optional


def _strip_pair(value: Optional[str], quote: str) -> Optional[str]:
    if not isinstance(value, str) or len(value) < 2:
        return value
    if value.startswith(quote) and value.endswith(quote):
        return value[1:-1]
    return value


def strip_quotes(value: Optional[str]) -> Optional[str]:
    """Remove one balanced layer of single quotes.

    ``"'abc'"`` becomes ``"abc"``; ``"'abc"`` is returned unchanged.
    """
    return _strip_pair(value, "'")


def strip_double_quotes(value: Optional[str]) -> Optional[str]:
    """Remove one balanced layer of double quotes."""
    return _strip_pair(value, '"')
