"""Domain exceptions for the database-access layer.

Driver exceptions raised while a statement is bound, executed or read are
caught and re-raised as one of these so that callers never depend on a
particular DBAPI driver's exception hierarchy.
"""

from __future__ import annotations


class DatabaseError(Exception):
    """Base exception for all database-access errors.

    Attributes:
        operation: The operation that failed (e.g. ``"execute_update"``, ``"commit"``).
        detail: A description of what went wrong.
        statement: The SQL text involved, when there is one.
    """

    def __init__(
        self,
        detail: str,
        *,
        operation: str = "execute",
        statement: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.statement = statement
        super().__init__(self._message())
        if cause is not None:
            self.__cause__ = cause

    def _message(self) -> str:
        msg = f"{self.operation} failed: {self.detail}"
        if self.statement is not None:
            msg = f"{msg} [{self.statement}]"
        return msg

    def attach_statement(self, statement: str) -> None:
        """Record the SQL this error was raised for and include it in the message."""
        self.statement = statement
        self.args = (self._message(),)


class StatementError(DatabaseError):
    """Raised when the driver fails while binding, executing or reading a statement."""


class UnsupportedParameterTypeError(StatementError):
    """Raised when a bind argument has no recognised kind and no string form."""

    def __init__(self, value_type: type, *, position: int, statement: str | None = None) -> None:
        self.value_type = value_type
        self.position = position
        super().__init__(
            f"Unexpected parameter class at position {position}: "
            f"{value_type.__module__}.{value_type.__qualname__}",
            operation="bind",
            statement=statement,
        )


class ConnectionFailedError(DatabaseError):
    """Raised when the broker cannot supply or configure a connection."""


class TransactionError(DatabaseError):
    """Raised when a transaction fails to commit."""


class UndeclaredError(RuntimeError):
    """Wraps an exception a unit of work raised that its caller did not declare.

    Not a :class:`DatabaseError`: the connection that was in use is still sound.
    """


class CardinalityError(DatabaseError):
    """A query produced a row count its caller did not expect.

    These are ordinary outcomes of ordinary queries: they never close the
    connection and a nested transaction frame does not roll back on them.
    """

    sqlstate: str | None = None


class NoRowError(CardinalityError):
    """Raised when a single-row query returned no rows."""

    sqlstate = "02000"

    def __init__(self, detail: str = "no data", *, statement: str | None = None) -> None:
        super().__init__(detail, operation="query", statement=statement)


class ExtraRowError(CardinalityError):
    """Raised when a single-row query returned more than one row."""

    def __init__(self, detail: str = "more than one row", *, row: str | None = None, statement: str | None = None) -> None:
        self.row = row
        if row is not None:
            detail = f"{detail}: {row}"
        super().__init__(detail, operation="query", statement=statement)


class NullDataError(CardinalityError):
    """Raised when a non-nullable extractor produced no value."""

    def __init__(self, detail: str = "null data", *, row: str | None = None, statement: str | None = None) -> None:
        self.row = row
        if row is not None:
            detail = f"{detail}: {row}"
        super().__init__(detail, operation="query", statement=statement)
