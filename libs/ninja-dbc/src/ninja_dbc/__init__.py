"""Ninja DBC — transactional database access over pooled DBAPI connections."""

from ninja_dbc.access import DatabaseAccess
from ninja_dbc.broker import EngineBroker, EngineConnection, redact_url
from ninja_dbc.config import DatabaseConfig, InvalidDatabaseURL
from ninja_dbc.context import ExecutionContext
from ninja_dbc.database import Database, FailureAction, decide
from ninja_dbc.exceptions import (
    CardinalityError,
    ConnectionFailedError,
    DatabaseError,
    ExtraRowError,
    NoRowError,
    NullDataError,
    StatementError,
    TransactionError,
    UndeclaredError,
    UnsupportedParameterTypeError,
)
from ninja_dbc.factories import ObjectFactory, not_null
from ninja_dbc.isolation import IsolationLevel
from ninja_dbc.params import Null, ParameterKind, register_string_type
from ninja_dbc.protocols import Connection, ConnectionBroker, ResultCursor
from ninja_dbc.session import FETCH_SIZE, Cardinality, Outcome, RowLookup, Session

__all__ = [
    "FETCH_SIZE",
    "Cardinality",
    "CardinalityError",
    "Connection",
    "ConnectionBroker",
    "ConnectionFailedError",
    "Database",
    "DatabaseAccess",
    "DatabaseConfig",
    "DatabaseError",
    "EngineBroker",
    "EngineConnection",
    "ExecutionContext",
    "ExtraRowError",
    "FailureAction",
    "InvalidDatabaseURL",
    "IsolationLevel",
    "NoRowError",
    "Null",
    "NullDataError",
    "ObjectFactory",
    "Outcome",
    "ParameterKind",
    "ResultCursor",
    "RowLookup",
    "Session",
    "StatementError",
    "TransactionError",
    "UndeclaredError",
    "UnsupportedParameterTypeError",
    "decide",
    "not_null",
    "redact_url",
    "register_string_type",
]
