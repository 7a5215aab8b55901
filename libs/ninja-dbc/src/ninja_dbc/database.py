"""Transaction coordinator.

``Database.transaction`` runs a unit of work against a Session.  The
outermost call creates the Session, commits on success and releases the
connection; calls made while a transaction is already active in the same call
chain join it.  On failure the decision table in :func:`decide` selects the
cleanup, and the original exception is always what the caller sees.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ninja_dbc.access import C, DatabaseAccess, FactoryLike, ResultHandler
from ninja_dbc.context import ExecutionContext
from ninja_dbc.exceptions import CardinalityError, DatabaseError, UndeclaredError
from ninja_dbc.isolation import DEFAULT_ISOLATION_LEVEL, IsolationLevel
from ninja_dbc.protocols import ConnectionBroker
from ninja_dbc.session import Session

if TYPE_CHECKING:
    from ninja_dbc.config import DatabaseConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Bugs rather than business outcomes; re-raised unchanged whatever the caller declared.
PROGRAMMING_ERRORS: tuple[type[Exception], ...] = (
    ArithmeticError,
    AssertionError,
    AttributeError,
    LookupError,
    NameError,
    NotImplementedError,
    RuntimeError,
    TypeError,
    ValueError,
)


class FailureAction(Enum):
    PROPAGATE = "propagate"
    ROLLBACK = "rollback"
    ROLLBACK_AND_CLOSE = "rollback_and_close"


def decide(exc: BaseException, *, outer: bool) -> FailureAction:
    """Pick the cleanup for an exception raised inside a transaction body.

    Rows are checked in order; the first match wins:

    * not an ``Exception`` (interpreter exit, interrupts): propagate untouched.
    * row-count outcomes (:class:`CardinalityError`): propagate from nested
      frames; the outermost frame rolls back and keeps the connection.
    * :class:`DatabaseError` or a raw driver error (``SQLAlchemyError``): the
      connection state is suspect; roll back and close.
    * anything else: roll back and keep the connection.
    """
    if not isinstance(exc, Exception):
        return FailureAction.PROPAGATE
    if isinstance(exc, CardinalityError):
        return FailureAction.ROLLBACK if outer else FailureAction.PROPAGATE
    if isinstance(exc, (DatabaseError, SQLAlchemyError)):
        return FailureAction.ROLLBACK_AND_CLOSE
    return FailureAction.ROLLBACK


def _is_declared(exc: BaseException, raises: type[BaseException] | tuple[type[BaseException], ...]) -> bool:
    if not isinstance(exc, Exception):
        return True
    if isinstance(exc, (DatabaseError, SQLAlchemyError, *PROGRAMMING_ERRORS)):
        return True
    return isinstance(exc, raises)


class Database(DatabaseAccess):
    """Runs units of work in transactions over connections from a broker.

    Every query method on a ``Database`` is a one-statement transaction of its
    own, or joins the transaction already active in the calling call chain.
    """

    def __init__(self, broker: ConnectionBroker) -> None:
        self._broker = broker
        self._context = ExecutionContext(f"ninja_dbc_session_{id(self):x}")

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        """Build a Database over an :class:`~ninja_dbc.broker.EngineBroker`."""
        from ninja_dbc.broker import EngineBroker

        return cls(EngineBroker.from_config(config))

    def __repr__(self) -> str:
        return f"Database({self._broker!r})"

    @property
    def broker(self) -> ConnectionBroker:
        return self._broker

    @property
    def in_transaction(self) -> bool:
        return self._context.current() is not None

    def current_session(self) -> Session | None:
        """The Session of the transaction active in this call chain, if any."""
        return self._context.current()

    def create_session(self) -> Session:
        return Session(self._broker)

    # -- transactions -------------------------------------------------------------

    @contextmanager
    def begin(
        self,
        *,
        raises: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    ) -> Iterator[Session]:
        """Scope a unit of work as a transaction and yield its Session.

        Exceptions that are neither database errors, programming errors nor
        instances of *raises* are re-raised wrapped in :class:`UndeclaredError`.
        """
        session = self._context.current()
        if session is not None:
            try:
                yield session
            except BaseException as exc:
                self._fail(session, exc, raises, outer=False)
            return

        session = self.create_session()
        token = self._context.bind(session)
        failed = False
        try:
            yield session
            session.commit()
        except BaseException as exc:
            failed = True
            self._fail(session, exc, raises, outer=True)
        finally:
            self._context.reset(token)
            self._release(session, quiet=failed)

    def transaction(
        self,
        fn: Callable[..., T],
        *args: Any,
        raises: type[BaseException] | tuple[type[BaseException], ...] = Exception,
        **kwargs: Any,
    ) -> T:
        """Run ``fn(session, *args, **kwargs)`` in a transaction and return its result."""
        with self.begin(raises=raises) as session:
            return fn(session, *args, **kwargs)

    def _fail(
        self,
        session: Session,
        exc: BaseException,
        raises: type[BaseException] | tuple[type[BaseException], ...],
        *,
        outer: bool,
    ) -> None:
        action = decide(exc, outer=outer)
        if action is FailureAction.ROLLBACK:
            session.rollback()
        elif action is FailureAction.ROLLBACK_AND_CLOSE and not session.is_closed():
            logger.warning("Closing connection after %s: %s", type(exc).__name__, exc)
            session.rollback_and_close()
        if _is_declared(exc, raises):
            raise exc
        raise UndeclaredError(f"{type(exc).__name__}: {exc}") from exc

    def _release(self, session: Session, *, quiet: bool) -> None:
        if not quiet:
            session.release()
            return
        try:
            session.release()
        except Exception:
            logger.error("Releasing connection failed during transaction cleanup", exc_info=True)

    # -- DatabaseAccess -------------------------------------------------------------

    def execute_object_query(
        self,
        factory: FactoryLike[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> T | None:
        return self.transaction(
            lambda session: session.execute_object_query(
                factory,
                sql,
                *params,
                isolation_level=isolation_level,
                read_only=read_only,
                row_required=row_required,
            )
        )

    def execute_object_collection_query(
        self,
        collection: C,
        factory: FactoryLike[Any],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> C:
        return self.transaction(
            lambda session: session.execute_object_collection_query(
                collection, factory, sql, *params, isolation_level=isolation_level, read_only=read_only
            )
        )

    def execute_query(
        self,
        handler: ResultHandler[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> T:
        return self.transaction(
            lambda session: session.execute_query(
                handler, sql, *params, isolation_level=isolation_level, read_only=read_only
            )
        )

    def execute_update(self, sql: str, *params: Any) -> int:
        return self.transaction(lambda session: session.execute_update(sql, *params))
