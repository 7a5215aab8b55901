"""Session: the owner of at most one live connection for a logical transaction."""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ninja_dbc.access import C, DatabaseAccess, FactoryLike, ResultHandler
from ninja_dbc.diagnostics import describe_row
from ninja_dbc.exceptions import (
    ConnectionFailedError,
    DatabaseError,
    ExtraRowError,
    NoRowError,
    StatementError,
    TransactionError,
)
from ninja_dbc.factories import ObjectFactory, as_factory
from ninja_dbc.isolation import DEFAULT_ISOLATION_LEVEL, IsolationLevel
from ninja_dbc.params import bind_parameters
from ninja_dbc.protocols import Connection, ConnectionBroker, ResultCursor

T = TypeVar("T")

# Prefetch hint for row-returning bulk statements.
FETCH_SIZE = 1000


class Cardinality(Enum):
    """How many rows a single-row statement is allowed to produce."""

    FIRST_ROW = "first_row"
    EXACTLY_ONE = "exactly_one"
    AT_MOST_ONE = "at_most_one"


class Outcome(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    TOO_MANY = "too_many"


@dataclass(frozen=True)
class RowLookup(Generic[T]):
    """Result of a single-row fetch before any row-count expectation is applied."""

    outcome: Outcome
    value: T | None = None
    extra_row: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is Outcome.FOUND

    def resolve(self, cardinality: Cardinality, *, statement: str | None = None) -> T | None:
        """Return the value, or raise the error *cardinality* implies for this outcome."""
        if self.outcome is Outcome.TOO_MANY and cardinality is not Cardinality.FIRST_ROW:
            raise ExtraRowError(row=self.extra_row, statement=statement)
        if self.outcome is Outcome.NOT_FOUND:
            if cardinality is Cardinality.EXACTLY_ONE:
                raise NoRowError(statement=statement)
            return None
        return self.value


def _adder(collection: Collection[Any]) -> Callable[[Any], bool]:
    """Return ``add(item) -> bool``; ``False`` means a set-like collection already held *item*."""
    add = getattr(collection, "add", None)
    if add is not None:

        def add_unique(item: Any) -> bool:
            before = len(collection)
            add(item)
            return len(collection) != before

        return add_unique
    append = getattr(collection, "append", None)
    if append is not None:

        def add_any(item: Any) -> bool:
            append(item)
            return True

        return add_any
    raise TypeError(f"Collection does not support add() or append(): {type(collection).__name__}")


class Session(DatabaseAccess):
    """Owns zero or one connection and runs statements on it.

    The connection is obtained lazily on the first statement and escalated in
    place when a later statement needs a stricter isolation level or write
    access.  Escalation never goes the other way.  A Session is used by one
    call chain at a time and is not thread-safe.
    """

    def __init__(self, broker: ConnectionBroker) -> None:
        self._broker = broker
        self._connection: Connection | None = None

    def __repr__(self) -> str:
        state = "idle" if self._connection is None else "connected"
        return f"Session({self._broker!r}, {state})"

    def __enter__(self) -> Session:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    @property
    def broker(self) -> ConnectionBroker:
        return self._broker

    @property
    def connection(self) -> Connection | None:
        """The owned connection, or ``None`` before the first statement."""
        return self._connection

    # -- connection lifecycle ---------------------------------------------------

    def acquire(
        self,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        max_connections: int = 1,
    ) -> Connection:
        """Return the owned connection, obtaining or escalating it as needed.

        After this call auto-commit is off unless the request is read-only
        below REPEATABLE READ.

        Raises:
            ConnectionFailedError: The driver failed while the connection's
                characteristics were being changed.
        """
        conn = self._connection
        try:
            if conn is None:
                conn = self._broker.get_connection(isolation_level, read_only, max_connections)
                self._connection = conn
                if not read_only or isolation_level >= IsolationLevel.REPEATABLE_READ:
                    conn.autocommit = False
            elif conn.isolation_level < isolation_level:
                # Isolation can only change outside a transaction; enabling auto-commit commits it.
                if not conn.autocommit:
                    conn.autocommit = True
                conn.isolation_level = isolation_level
                if not read_only and conn.read_only:
                    conn.read_only = False
                if not read_only or isolation_level >= IsolationLevel.REPEATABLE_READ:
                    conn.autocommit = False
            elif not read_only and conn.read_only:
                if not conn.autocommit:
                    conn.autocommit = True
                conn.read_only = False
                conn.autocommit = False
        except SQLAlchemyError as exc:
            raise ConnectionFailedError(
                f"Unable to configure connection: {type(exc).__name__}: {exc}", operation="acquire", cause=exc
            ) from exc
        return conn

    def commit(self) -> None:
        """Commit the owned connection unless it is in auto-commit mode."""
        conn = self._connection
        if conn is None or conn.autocommit:
            return
        try:
            conn.commit()
        except SQLAlchemyError as exc:
            raise TransactionError("Commit failed.", operation="commit", cause=exc) from exc

    def rollback(self) -> bool:
        """Roll back the owned connection, keeping it for reuse.

        Never raises: failures are logged through the broker's logger.

        Returns:
            True when a live connection was rolled back.
        """
        conn = self._connection
        try:
            if conn is None or conn.closed:
                return False
            if not conn.autocommit:
                conn.rollback()
            return True
        except Exception:
            self._broker.logger.error("Session rollback failed", exc_info=True)
            return False

    def rollback_and_close(self) -> bool:
        """Roll back and physically close the owned connection.

        Used after statement or connection faults, when the connection's state
        can no longer be trusted.  Never raises.
        """
        conn = self._connection
        try:
            if conn is None or conn.closed:
                return False
            try:
                if not conn.autocommit:
                    conn.rollback()
            finally:
                conn.close()
            return True
        except Exception:
            self._broker.logger.error("Session rollback_and_close failed", exc_info=True)
            return False

    def release(self) -> None:
        """Hand the owned connection back to the broker.  Safe to call repeatedly."""
        conn = self._connection
        if conn is not None:
            self._connection = None
            self._broker.release_connection(conn)

    def is_closed(self) -> bool:
        conn = self._connection
        return conn is None or conn.closed

    # -- statement pipeline -------------------------------------------------------

    def _run(
        self,
        sql: str,
        params: tuple[Any, ...],
        body: Callable[[ResultCursor], T],
        *,
        isolation_level: IsolationLevel,
        read_only: bool,
        bulk: bool = False,
    ) -> T:
        try:
            conn = self.acquire(isolation_level, read_only)
            if bulk:
                # Drivers only honour the fetch-size hint inside a transaction.
                conn.autocommit = False
            statement = bind_parameters(sql, params)
            result = conn.execute(statement, fetch_size=FETCH_SIZE if bulk else None)
            try:
                return body(result)
            finally:
                result.close()
        except DatabaseError as exc:
            if exc.statement is None:
                exc.attach_statement(sql)
            raise
        except SQLAlchemyError as exc:
            raise StatementError(
                f"{type(exc).__name__}: {exc}", operation="execute", statement=sql, cause=exc
            ) from exc

    def fetch(
        self,
        factory: FactoryLike[T],
        sql: str,
        *params: Any,
        cardinality: Cardinality = Cardinality.EXACTLY_ONE,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> RowLookup[T]:
        """Run a single-row statement and report what it found without raising.

        With ``Cardinality.FIRST_ROW`` the cursor is not read past the first row.
        """
        object_factory: ObjectFactory[T] = as_factory(factory)

        def first(result: ResultCursor) -> RowLookup[T]:
            rows = iter(result)
            row = next(rows, None)
            if row is None:
                return RowLookup(Outcome.NOT_FOUND)
            value = object_factory.create_object(row)
            if cardinality is Cardinality.FIRST_ROW:
                return RowLookup(Outcome.FOUND, value)
            extra = next(rows, None)
            if extra is not None:
                return RowLookup(Outcome.TOO_MANY, value, extra_row=describe_row(extra))
            return RowLookup(Outcome.FOUND, value)

        return self._run(sql, params, first, isolation_level=isolation_level, read_only=read_only)

    def execute_object_query(
        self,
        factory: FactoryLike[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> T | None:
        cardinality = Cardinality.EXACTLY_ONE if row_required else Cardinality.AT_MOST_ONE
        lookup = self.fetch(
            factory,
            sql,
            *params,
            cardinality=cardinality,
            isolation_level=isolation_level,
            read_only=read_only,
        )
        return lookup.resolve(cardinality, statement=sql)

    def execute_object_collection_query(
        self,
        collection: C,
        factory: FactoryLike[Any],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> C:
        object_factory = as_factory(factory)
        add = _adder(collection)

        def collect(result: ResultCursor) -> C:
            for row in result:
                if not add(object_factory.create_object(row)):
                    raise StatementError(
                        f"Duplicate row in results: {describe_row(row)}",
                        operation="execute_object_collection_query",
                    )
            return collection

        return self._run(
            sql, params, collect, isolation_level=isolation_level, read_only=read_only, bulk=True
        )

    def execute_query(
        self,
        handler: ResultHandler[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> T:
        return self._run(sql, params, handler, isolation_level=isolation_level, read_only=read_only, bulk=True)

    def execute_update(self, sql: str, *params: Any) -> int:
        return self._run(
            sql,
            params,
            lambda result: result.rowcount,
            isolation_level=IsolationLevel.READ_COMMITTED,
            read_only=False,
        )
