"""Tests for the transaction coordinator."""

import logging
import threading
from unittest.mock import MagicMock

import pytest
from fakes import FakeBroker, FakeResult
from ninja_dbc import factories
from ninja_dbc.database import Database, FailureAction, decide
from ninja_dbc.exceptions import (
    ConnectionFailedError,
    DatabaseError,
    ExtraRowError,
    NoRowError,
    StatementError,
    TransactionError,
    UndeclaredError,
)
from ninja_dbc.isolation import IsolationLevel
from sqlalchemy.exc import OperationalError


class BusinessError(Exception):
    pass


def _driver_failure() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection reset"))


# --- decision table ---


@pytest.mark.parametrize(
    ("exc", "outer", "action"),
    [
        (KeyboardInterrupt(), True, FailureAction.PROPAGATE),
        (SystemExit(), False, FailureAction.PROPAGATE),
        (NoRowError(), False, FailureAction.PROPAGATE),
        (NoRowError(), True, FailureAction.ROLLBACK),
        (ExtraRowError(), True, FailureAction.ROLLBACK),
        (StatementError("bad"), False, FailureAction.ROLLBACK_AND_CLOSE),
        (StatementError("bad"), True, FailureAction.ROLLBACK_AND_CLOSE),
        (_driver_failure(), False, FailureAction.ROLLBACK_AND_CLOSE),
        (_driver_failure(), True, FailureAction.ROLLBACK_AND_CLOSE),
        (BusinessError(), False, FailureAction.ROLLBACK),
        (ValueError(), True, FailureAction.ROLLBACK),
    ],
)
def test_decide(exc, outer, action):
    assert decide(exc, outer=outer) is action


# --- success path ---


def test_update_commits_and_releases(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=2))
    assert db.execute_update("DELETE FROM t WHERE a = ?", 1) == 2
    conn = broker.issued[0]
    assert conn.commits == 1
    assert broker.released == [conn]
    assert not db.in_transaction


def test_read_only_query_needs_no_commit(db: Database, broker: FakeBroker):
    broker.push(FakeResult([("alice",)]))
    assert db.execute_string_query("SELECT name FROM t WHERE id = ?", 1) == "alice"
    assert broker.issued[0].commits == 0
    assert broker.released == broker.issued


def test_transaction_passes_arguments_and_returns_result(db: Database):
    def work(session, a, *, b):
        assert db.current_session() is session
        return a + b

    assert db.transaction(work, 1, b=2) == 3


def test_nested_calls_share_one_connection(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1), FakeResult([(5,)]))

    def work(session):
        session.execute_update("UPDATE t SET a = 1")
        inner = db.transaction(lambda nested: nested is session)
        value = db.execute_int_query("SELECT a FROM t")
        return inner, value

    assert db.transaction(work) == (True, 5)
    assert len(broker.issued) == 1
    assert broker.issued[0].commits == 1
    assert len(broker.released) == 1


def test_begin_context_manager(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1))
    with db.begin() as session:
        assert db.in_transaction
        session.execute_update("INSERT INTO t VALUES (1)")
    assert not db.in_transaction
    assert broker.issued[0].commits == 1


def test_query_escalation_inside_transaction(db: Database, broker: FakeBroker):
    broker.push(FakeResult([(1,)]), FakeResult([(2,)]))

    def work(session):
        session.execute_int_query("SELECT 1")
        return session.execute_int_query("SELECT 2", isolation_level=IsolationLevel.SERIALIZABLE)

    assert db.transaction(work) == 2
    conn = broker.issued[0]
    assert conn.isolation_level is IsolationLevel.SERIALIZABLE
    assert conn.commits == 1


# --- failure handling ---


def test_business_error_rolls_back_and_keeps_connection(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1))

    def work(session):
        session.execute_update("UPDATE t SET a = 1")
        raise BusinessError("nope")

    with pytest.raises(BusinessError):
        db.transaction(work)
    conn = broker.issued[0]
    assert conn.rollbacks == 1
    assert conn.commits == 0
    assert not conn.closed
    assert broker.released == [conn]


def test_statement_fault_closes_connection(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1), _driver_failure())

    def work(session):
        session.execute_update("UPDATE t SET a = 1")
        session.execute_int_query("SELECT 1")

    with pytest.raises(StatementError):
        db.transaction(work)
    conn = broker.issued[0]
    assert conn.rollbacks == 1
    assert conn.closed
    assert broker.released == [conn]


def test_nested_statement_fault_closes_before_outer_frame_sees_it(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1), _driver_failure())
    seen = {}

    def work(session):
        session.execute_update("UPDATE t SET a = 1")
        try:
            db.execute_int_query("SELECT 1")
        except StatementError:
            seen["closed"] = session.connection.closed
            raise

    with pytest.raises(StatementError):
        db.transaction(work)
    assert seen == {"closed": True}
    assert broker.issued[0].rollbacks == 1


def test_next_transaction_after_fault_gets_fresh_connection(db: Database, broker: FakeBroker):
    broker.push(_driver_failure(), FakeResult([(1,)]))
    with pytest.raises(StatementError):
        db.execute_int_query("SELECT 1")
    assert db.execute_int_query("SELECT 1") == 1
    assert len(broker.issued) == 2
    assert broker.issued[0].closed
    assert not broker.issued[1].closed


def test_missing_row_rolls_back_without_closing(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1), FakeResult([]))

    def work(session):
        session.execute_update("INSERT INTO t VALUES (1)")
        return db.execute_object_query(factories.INTEGER, "SELECT a FROM t WHERE id = ?", 9)

    with pytest.raises(NoRowError):
        db.transaction(work)
    conn = broker.issued[0]
    assert conn.rollbacks == 1
    assert not conn.closed
    assert broker.released == [conn]


def test_missing_row_can_be_handled_inside_transaction(db: Database, broker: FakeBroker):
    broker.push(FakeResult(rowcount=1), FakeResult([]))

    def work(session):
        session.execute_update("INSERT INTO t VALUES (1)")
        try:
            db.execute_int_query("SELECT a FROM t WHERE id = ?", 9)
        except NoRowError:
            return "absent"

    assert db.transaction(work) == "absent"
    conn = broker.issued[0]
    assert conn.rollbacks == 0
    assert conn.commits == 1


def test_commit_failure_closes_connection(db: Database, broker: FakeBroker):
    def work(session):
        conn = session.acquire(IsolationLevel.READ_COMMITTED, False)
        conn.commit = MagicMock(side_effect=_driver_failure())

    with pytest.raises(TransactionError):
        db.transaction(work)
    conn = broker.issued[0]
    conn.commit.assert_called_once_with()
    assert conn.closed


def test_undeclared_exception_is_wrapped(db: Database, broker: FakeBroker):
    def work(session):
        raise BusinessError("bad input")

    with pytest.raises(UndeclaredError) as exc_info:
        db.transaction(work, raises=DatabaseError)
    assert isinstance(exc_info.value.__cause__, BusinessError)
    assert "bad input" in str(exc_info.value)


def test_declared_exception_is_not_wrapped(db: Database):
    def work(session):
        raise BusinessError("bad input")

    with pytest.raises(BusinessError):
        db.transaction(work, raises=(BusinessError, DatabaseError))


def test_programming_errors_are_never_wrapped(db: Database):
    def work(session):
        raise KeyError("missing")

    with pytest.raises(KeyError):
        db.transaction(work, raises=DatabaseError)


def test_interrupt_skips_rollback_but_releases(db: Database, broker: FakeBroker):
    def work(session):
        session.acquire(IsolationLevel.READ_COMMITTED, False)
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        db.transaction(work)
    conn = broker.issued[0]
    assert conn.rollbacks == 0
    assert broker.released == [conn]
    assert not db.in_transaction


def test_context_cleared_after_failure(db: Database):
    def work(session):
        assert db.in_transaction
        raise BusinessError

    with pytest.raises(BusinessError):
        db.transaction(work)
    assert db.current_session() is None


def test_transactions_are_per_thread(db: Database):
    seen = []

    def other_thread():
        seen.append(db.current_session())

    def work(session):
        thread = threading.Thread(target=other_thread)
        thread.start()
        thread.join()
        return session

    session = db.transaction(work)
    assert seen == [None]
    assert session is not None


def test_transactions_are_per_database(broker: FakeBroker):
    first, second = Database(broker), Database(broker)

    def work(session):
        return second.current_session()

    assert first.transaction(work) is None


def test_fault_while_escalating_closes_connection(db: Database, broker: FakeBroker):
    broker.push(FakeResult([(1,)]))

    def work(session):
        session.execute_int_query("SELECT 1")
        session.connection.fail_autocommit = _driver_failure()
        session.execute_update("UPDATE t SET a = 1")

    with pytest.raises(ConnectionFailedError) as exc_info:
        db.transaction(work)
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert exc_info.value.statement == "UPDATE t SET a = 1"
    conn = broker.issued[0]
    assert conn.closed
    assert broker.released == [conn]


def test_raw_driver_error_in_body_closes_connection(db: Database, broker: FakeBroker):
    def work(session):
        session.acquire(IsolationLevel.READ_COMMITTED, False)
        raise _driver_failure()

    with pytest.raises(OperationalError):
        db.transaction(work, raises=BusinessError)
    conn = broker.issued[0]
    assert conn.rollbacks == 1
    assert conn.closed


def test_nested_fault_logs_close_once(db: Database, broker: FakeBroker, caplog):
    broker.push(FakeResult(rowcount=1), _driver_failure())

    def work(session):
        session.execute_update("UPDATE t SET a = 1")
        db.execute_int_query("SELECT 1")

    with caplog.at_level(logging.WARNING, logger="ninja_dbc.database"):
        with pytest.raises(StatementError):
            db.transaction(work)
    assert caplog.text.count("Closing connection") == 1
