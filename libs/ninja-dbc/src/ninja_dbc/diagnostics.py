"""Row dumps for diagnostic messages."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

_UNQUOTED = (bool, int, float, Decimal)
_ESCAPED = frozenset("\\\"%_")


def _quote(value: str) -> str:
    out = ["'"]
    for ch in value:
        if ch == "'":
            out.append("''")
            continue
        if ch in _ESCAPED:
            out.append("\\")
        out.append(ch)
    out.append("'")
    return "".join(out)


def describe_value(value: Any) -> str:
    """Render a single column value the way it would appear in SQL."""
    if value is None:
        return "NULL"
    if isinstance(value, _UNQUOTED):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "X'" + bytes(value).hex() + "'"
    return _quote(str(value))


def describe_row(row: Any) -> str:
    """Render a result row as ``(1, 'text', NULL)``.

    >>> describe_row((1, "it's", None))
    "(1, 'it''s', NULL)"
    """
    if row is None:
        return "()"
    return "(" + ", ".join(describe_value(v) for v in tuple(row)) + ")"
