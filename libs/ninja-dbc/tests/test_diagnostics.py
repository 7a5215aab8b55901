"""Tests for row dumps used in error messages."""

from decimal import Decimal

from ninja_dbc.diagnostics import describe_row, describe_value


def test_describe_row():
    assert describe_row((1, "it's", None)) == "(1, 'it''s', NULL)"


def test_describe_empty_row():
    assert describe_row(None) == "()"


def test_describe_value_escapes_pattern_characters():
    assert describe_value('50% off_"now"\\') == "'50\\% off\\_\\\"now\\\"\\\\'"


def test_describe_value_unquoted_types():
    assert describe_value(True) == "True"
    assert describe_value(Decimal("1.50")) == "1.50"
    assert describe_value(2.5) == "2.5"


def test_describe_value_bytes_as_hex():
    assert describe_value(b"\x01\xff") == "X'01ff'"
