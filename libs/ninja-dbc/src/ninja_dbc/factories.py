"""Row extractors ("object factories").

An :class:`ObjectFactory` turns the current row into one value.  Single-row
queries call it once; list and collection queries call it once per row.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from ninja_dbc.diagnostics import describe_row
from ninja_dbc.exceptions import NullDataError
from ninja_dbc.protocols import Row

T = TypeVar("T")


class ObjectFactory(ABC, Generic[T]):
    """Creates one value from one row.

    ``nullable`` declares whether :meth:`create_object` may legitimately
    return ``None``.
    """

    nullable: bool = True

    @abstractmethod
    def create_object(self, row: Row) -> T | None:
        """Build the value for *row*."""


class FunctionFactory(ObjectFactory[T]):
    """Adapts a plain ``row -> value`` callable."""

    def __init__(self, fn: Callable[[Row], T | None], *, nullable: bool = True) -> None:
        self._fn = fn
        self.nullable = nullable

    def create_object(self, row: Row) -> T | None:
        return self._fn(row)

    def __repr__(self) -> str:
        return f"FunctionFactory({getattr(self._fn, '__name__', self._fn)!r}, nullable={self.nullable})"


class ClassFactory(ObjectFactory[T]):
    """Calls ``cls(row)``; the class reads whatever columns it needs."""

    nullable = False

    def __init__(self, cls: type[T]) -> None:
        self._cls = cls

    def create_object(self, row: Row) -> T:
        return self._cls(row)  # type: ignore[call-arg]


class ModelFactory(ObjectFactory[T]):
    """Validates a pydantic model from the row's column mapping."""

    nullable = False

    def __init__(self, model: type[T]) -> None:
        self._model = model

    def create_object(self, row: Row) -> T:
        return self._model.model_validate(dict(row._mapping))  # type: ignore[attr-defined]


def as_factory(factory: ObjectFactory[T] | type[T] | Callable[[Row], T]) -> ObjectFactory[T]:
    """Normalise a factory, a class or a callable into an :class:`ObjectFactory`."""
    if isinstance(factory, ObjectFactory):
        return factory
    if isinstance(factory, type):
        if issubclass(factory, BaseModel):
            return ModelFactory(factory)
        return ClassFactory(factory)
    if callable(factory):
        return FunctionFactory(factory)
    raise TypeError(f"Not an object factory: {factory!r}")


class _NotNull(ObjectFactory[T]):
    nullable = False

    def __init__(self, factory: ObjectFactory[T]) -> None:
        self._factory = factory

    def create_object(self, row: Row) -> T:
        obj = self._factory.create_object(row)
        if obj is None:
            raise NullDataError(row=describe_row(row))
        return obj


def not_null(factory: ObjectFactory[T]) -> ObjectFactory[T]:
    """Guarantee *factory* never yields ``None``; raises :class:`NullDataError` instead.

    Nullable factories are always wrapped.  Non-nullable ones are wrapped only
    while ``__debug__`` is set, as a runtime self-check.
    """
    if isinstance(factory, _NotNull):
        return factory
    if factory.nullable or __debug__:
        return _NotNull(factory)
    return factory


def _column(row: Row) -> Any:
    return row[0]


def _bounded_int(bits: int) -> Callable[[Row], int | None]:
    low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1

    def read(row: Row) -> int | None:
        value = row[0]
        if value is None:
            return None
        number = int(value)
        if not low <= number <= high:
            raise ValueError(f"Value out of range for {bits}-bit integer: {number}")
        return number

    read.__name__ = f"int{bits}"
    return read


def _boolean(row: Row) -> bool | None:
    value = row[0]
    return None if value is None else bool(value)


def _float(row: Row) -> float | None:
    value = row[0]
    return None if value is None else float(value)


def _decimal(row: Row) -> Decimal | None:
    value = row[0]
    if value is None or isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _string(row: Row) -> str | None:
    value = row[0]
    return None if value is None else str(value)


def _bytes(row: Row) -> bytes | None:
    value = row[0]
    return None if value is None else bytes(value)


def _date(row: Row) -> date | None:
    value = row[0]
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def _timestamp(row: Row) -> datetime | None:
    value = row[0]
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


BOOLEAN: ObjectFactory[bool] = FunctionFactory(_boolean)
BYTES: ObjectFactory[bytes] = FunctionFactory(_bytes)
DATE: ObjectFactory[date] = FunctionFactory(_date)
DECIMAL: ObjectFactory[Decimal] = FunctionFactory(_decimal)
FLOAT: ObjectFactory[float] = FunctionFactory(_float)
SHORT: ObjectFactory[int] = FunctionFactory(_bounded_int(16))
INTEGER: ObjectFactory[int] = FunctionFactory(_bounded_int(32))
LONG: ObjectFactory[int] = FunctionFactory(_bounded_int(64))
STRING: ObjectFactory[str] = FunctionFactory(_string)
TIMESTAMP: ObjectFactory[datetime] = FunctionFactory(_timestamp)
OBJECT: ObjectFactory[Any] = FunctionFactory(_column)
