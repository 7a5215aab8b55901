"""Positional parameter binding.

Callers write statements with ``?`` markers and pass loosely-typed Python
values.  Each value is classified into exactly one :class:`ParameterKind`
and bound as a typed SQLAlchemy bind parameter, so the driver always
receives a declared SQL type, including for NULLs.
"""

from __future__ import annotations

import io
import ipaddress
import logging
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import PurePath
from typing import Any

import sqlalchemy as sa
from sqlalchemy.sql.elements import BindParameter, TextClause
from sqlalchemy.types import TypeEngine

from ninja_dbc.exceptions import StatementError, UnsupportedParameterTypeError

logger = logging.getLogger(__name__)

_INTEGER_RANGE = range(-(2**31), 2**31)

# Quoted literals, quoted identifiers and comments are copied through untouched;
# a bare ``?`` is a positional marker.
_TOKEN_RE = re.compile(r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|--[^\n]*|/\*.*?\*/|\?""", re.DOTALL)
# A colon that ``sa.text`` would read as the start of a named bind parameter.
_COLON_RE = re.compile(r"(?<![:\w\\]):(?=\w)")


class ParameterKind(str, Enum):
    """Every kind of value the binder knows how to bind."""

    NULL = "null"
    TYPED_NULL = "typed_null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    BINARY = "binary"
    TIMESTAMP = "timestamp"
    DATE = "date"
    TIME = "time"
    INTERVAL = "interval"
    ENUM = "enum"
    TEXT_ARRAY = "text_array"
    STRUCTURED = "structured"
    BINARY_STREAM = "binary_stream"
    CHARACTER_STREAM = "character_stream"
    STRING_CONVERTIBLE = "string_convertible"


@dataclass(frozen=True)
class Null:
    """An explicit NULL of a declared SQL type.

    ``Null(sa.Integer)`` binds as an integer NULL where a bare ``None`` would
    bind as a text NULL.
    """

    type_: TypeEngine[Any] | type[TypeEngine[Any]] = sa.Text

    @property
    def sql_type(self) -> TypeEngine[Any]:
        return self.type_() if isinstance(self.type_, type) else self.type_


_string_types: set[type] = {
    uuid.UUID,
    ipaddress.IPv4Address,
    ipaddress.IPv6Address,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
    PurePath,
}


def register_string_type(cls: type) -> type:
    """Allow instances of *cls* to be bound as ``str(value)``.

    Only register types whose string form reconstructs the value.  Usable as
    a class decorator.
    """
    _string_types.add(cls)
    return cls


def is_string_convertible(value: Any) -> bool:
    """True when *value* can round-trip through its string form."""
    cls = type(value)
    if isinstance(value, tuple(_string_types)):
        return True
    return callable(getattr(cls, "from_string", None))


def classify(value: Any) -> ParameterKind | None:
    """Return the kind *value* binds as, or ``None`` when it is not bindable."""
    if value is None:
        return ParameterKind.NULL
    if isinstance(value, Null):
        return ParameterKind.TYPED_NULL
    # Enum before bool/int/str so IntEnum and StrEnum members bind by name.
    if isinstance(value, Enum):
        return ParameterKind.ENUM
    if isinstance(value, bool):
        return ParameterKind.BOOLEAN
    if isinstance(value, int):
        # Python ints bind as INTEGER or BIGINT, never SMALLINT.
        if value in _INTEGER_RANGE:
            return ParameterKind.INTEGER
        return ParameterKind.BIG_INTEGER
    if isinstance(value, float):
        return ParameterKind.FLOAT
    if isinstance(value, Decimal):
        return ParameterKind.DECIMAL
    if isinstance(value, str):
        return ParameterKind.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ParameterKind.BINARY
    if isinstance(value, datetime):
        return ParameterKind.TIMESTAMP
    if isinstance(value, date):
        return ParameterKind.DATE
    if isinstance(value, time):
        return ParameterKind.TIME
    if isinstance(value, timedelta):
        return ParameterKind.INTERVAL
    if isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value):
        return ParameterKind.TEXT_ARRAY
    if isinstance(value, dict):
        return ParameterKind.STRUCTURED
    if isinstance(value, (io.RawIOBase, io.BufferedIOBase)):
        return ParameterKind.BINARY_STREAM
    if isinstance(value, io.TextIOBase):
        return ParameterKind.CHARACTER_STREAM
    if is_string_convertible(value):
        return ParameterKind.STRING_CONVERTIBLE
    return None


def _typed(type_: TypeEngine[Any] | type[TypeEngine[Any]]) -> Callable[[str, Any], BindParameter[Any]]:
    def bind(name: str, value: Any) -> BindParameter[Any]:
        return sa.bindparam(name, value, type_=type_)

    return bind


def _bind_null(name: str, value: Any) -> BindParameter[Any]:
    return sa.bindparam(name, None, type_=sa.Text)


def _bind_typed_null(name: str, value: Null) -> BindParameter[Any]:
    return sa.bindparam(name, None, type_=value.sql_type)


def _bind_timestamp(name: str, value: datetime) -> BindParameter[Any]:
    return sa.bindparam(name, value, type_=sa.DateTime(timezone=value.tzinfo is not None))


def _bind_enum(name: str, value: Enum) -> BindParameter[Any]:
    return sa.bindparam(name, value.name, type_=sa.Text)


def _bind_text_array(name: str, value: Sequence[str]) -> BindParameter[Any]:
    return sa.bindparam(name, list(value), type_=sa.ARRAY(sa.Text))


def _bind_binary(name: str, value: bytes | bytearray | memoryview) -> BindParameter[Any]:
    return sa.bindparam(name, bytes(value), type_=sa.LargeBinary)


def _bind_binary_stream(name: str, value: io.IOBase) -> BindParameter[Any]:
    return sa.bindparam(name, value.read(), type_=sa.LargeBinary)


def _bind_character_stream(name: str, value: io.TextIOBase) -> BindParameter[Any]:
    return sa.bindparam(name, value.read(), type_=sa.Text)


def _bind_string_convertible(name: str, value: Any) -> BindParameter[Any]:
    return sa.bindparam(name, str(value), type_=sa.Text)


_BINDERS: dict[ParameterKind, Callable[[str, Any], BindParameter[Any]]] = {
    ParameterKind.NULL: _bind_null,
    ParameterKind.TYPED_NULL: _bind_typed_null,
    ParameterKind.BOOLEAN: _typed(sa.Boolean),
    ParameterKind.INTEGER: _typed(sa.Integer),
    ParameterKind.BIG_INTEGER: _typed(sa.BigInteger),
    ParameterKind.FLOAT: _typed(sa.Float),
    ParameterKind.DECIMAL: _typed(sa.Numeric(asdecimal=True)),
    ParameterKind.TEXT: _typed(sa.Text),
    ParameterKind.BINARY: _bind_binary,
    ParameterKind.TIMESTAMP: _bind_timestamp,
    ParameterKind.DATE: _typed(sa.Date),
    ParameterKind.TIME: _typed(sa.Time),
    ParameterKind.INTERVAL: _typed(sa.Interval),
    ParameterKind.ENUM: _bind_enum,
    ParameterKind.TEXT_ARRAY: _bind_text_array,
    ParameterKind.STRUCTURED: _typed(sa.JSON),
    ParameterKind.BINARY_STREAM: _bind_binary_stream,
    ParameterKind.CHARACTER_STREAM: _bind_character_stream,
    ParameterKind.STRING_CONVERTIBLE: _bind_string_convertible,
}


def parameter_name(position: int) -> str:
    """Bind-parameter name used for one-based *position*."""
    return f"p{position}"


@lru_cache(maxsize=512)
def rewrite_positional(sql: str) -> tuple[str, int]:
    """Rewrite ``?`` markers to ``:p1 .. :pN``.

    Returns the rewritten text and the number of markers.  Colons that
    ``sa.text`` would otherwise treat as named parameters are escaped.
    """
    out: list[str] = []
    count = 0
    pos = 0
    for match in _TOKEN_RE.finditer(sql):
        out.append(_COLON_RE.sub(r"\\:", sql[pos : match.start()]))
        token = match.group(0)
        if token == "?":
            count += 1
            out.append(":" + parameter_name(count))
        else:
            out.append(_COLON_RE.sub(r"\\:", token))
        pos = match.end()
    out.append(_COLON_RE.sub(r"\\:", sql[pos:]))
    return "".join(out), count


def bind_parameter(position: int, value: Any, *, statement: str | None = None) -> BindParameter[Any]:
    """Bind one value at one-based *position*."""
    kind = classify(value)
    if kind is None:
        raise UnsupportedParameterTypeError(type(value), position=position, statement=statement)
    return _BINDERS[kind](parameter_name(position), value)


def bind_parameters(sql: str, params: Sequence[Any]) -> TextClause:
    """Build an executable statement from *sql* with *params* bound left to right."""
    text, markers = rewrite_positional(sql)
    if markers != len(params):
        raise StatementError(
            f"Statement has {markers} parameter marker(s) but {len(params)} argument(s) were given",
            operation="bind",
            statement=sql,
        )
    binds = [bind_parameter(position, value, statement=sql) for position, value in enumerate(params, start=1)]
    logger.debug("Bound %d parameter(s) for statement: %s", len(binds), sql)
    return sa.text(text).bindparams(*binds)
