"""Tests for row extractors."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from ninja_dbc import factories
from ninja_dbc.exceptions import NullDataError
from ninja_dbc.factories import ClassFactory, FunctionFactory, ModelFactory, as_factory, not_null
from pydantic import BaseModel


class MappedRow(tuple):
    """A tuple that also exposes ``_mapping`` like a SQLAlchemy Row."""

    def __new__(cls, mapping: dict):
        row = super().__new__(cls, mapping.values())
        row._map = mapping
        return row

    @property
    def _mapping(self):
        return self._map


class Account(BaseModel):
    id: int
    name: str


class Point:
    def __init__(self, row) -> None:
        self.x, self.y = row[0], row[1]


def test_as_factory_passes_object_factories_through():
    assert as_factory(factories.STRING) is factories.STRING


def test_as_factory_wraps_pydantic_models():
    factory = as_factory(Account)
    assert isinstance(factory, ModelFactory)
    account = factory.create_object(MappedRow({"id": 1, "name": "alice"}))
    assert account == Account(id=1, name="alice")


def test_as_factory_wraps_plain_classes():
    factory = as_factory(Point)
    assert isinstance(factory, ClassFactory)
    assert factory.nullable is False
    point = factory.create_object((3, 4))
    assert (point.x, point.y) == (3, 4)


def test_as_factory_wraps_callables():
    factory = as_factory(lambda row: row[1])
    assert isinstance(factory, FunctionFactory)
    assert factory.create_object(("a", "b")) == "b"


def test_as_factory_rejects_non_callables():
    with pytest.raises(TypeError, match="Not an object factory"):
        as_factory(42)


def test_not_null_raises_with_row_dump():
    with pytest.raises(NullDataError) as exc_info:
        not_null(factories.STRING).create_object((None, "x"))
    assert exc_info.value.row == "(NULL, 'x')"


def test_not_null_passes_values_through():
    assert not_null(factories.INTEGER).create_object((5,)) == 5


def test_not_null_is_idempotent():
    wrapped = not_null(factories.STRING)
    assert not_null(wrapped) is wrapped
    assert wrapped.nullable is False


def test_bounded_integers():
    assert factories.SHORT.create_object((32767,)) == 32767
    with pytest.raises(ValueError, match="16-bit"):
        factories.SHORT.create_object((32768,))
    assert factories.INTEGER.create_object((None,)) is None
    assert factories.LONG.create_object((2**40,)) == 2**40


def test_scalar_converters():
    assert factories.BOOLEAN.create_object((1,)) is True
    assert factories.FLOAT.create_object((2,)) == 2.0
    assert factories.DECIMAL.create_object((1.25,)) == Decimal("1.25")
    assert factories.STRING.create_object((12,)) == "12"
    assert factories.BYTES.create_object((bytearray(b"ab"),)) == b"ab"
    assert factories.OBJECT.create_object(([1],)) == [1]


def test_temporal_converters_accept_iso_strings():
    assert factories.DATE.create_object(("2024-02-29",)) == date(2024, 2, 29)
    assert factories.DATE.create_object((datetime(2024, 2, 29, 10, 0),)) == date(2024, 2, 29)
    assert factories.TIMESTAMP.create_object(("2024-02-29 10:30:00",)) == datetime(2024, 2, 29, 10, 30)
