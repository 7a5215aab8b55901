"""End-to-end tests: Database over EngineBroker over file-backed SQLite."""

import pytest
import sqlalchemy as sa
from ninja_dbc import factories
from ninja_dbc.config import DatabaseConfig
from ninja_dbc.database import Database
from ninja_dbc.exceptions import ExtraRowError, NoRowError, StatementError
from ninja_dbc.params import Null
from pydantic import BaseModel


class Account(BaseModel):
    id: int
    name: str
    balance: int | None = None


class BusinessError(Exception):
    pass


@pytest.fixture
def database(sqlite_config: DatabaseConfig):
    db = Database.from_config(sqlite_config)
    db.execute_update("CREATE TABLE account (id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE, balance INTEGER)")
    yield db
    db.broker.dispose()


def test_insert_and_query(database: Database):
    assert database.execute_update("INSERT INTO account (id, name, balance) VALUES (?, ?, ?)", 1, "alice", 10) == 1
    assert database.execute_string_query("SELECT name FROM account WHERE id = ?", 1) == "alice"
    assert database.execute_int_query("SELECT balance FROM account WHERE name = ?", "alice") == 10


def test_typed_null_insert(database: Database):
    database.execute_update("INSERT INTO account (id, name, balance) VALUES (?, ?, ?)", 1, "bob", Null(sa.Integer))
    assert database.execute_object_query(factories.INTEGER, "SELECT balance FROM account WHERE id = 1") is None
    assert database.execute_int_query("SELECT balance FROM account WHERE id = 1") == 0


def test_model_rows(database: Database):
    database.execute_update("INSERT INTO account (id, name) VALUES (1, 'a'), (2, 'b')")
    accounts = database.execute_object_list_query(Account, "SELECT id, name, balance FROM account ORDER BY id")
    assert accounts == [Account(id=1, name="a"), Account(id=2, name="b")]


def test_list_queries(database: Database):
    database.execute_update("INSERT INTO account (id, name) VALUES (1, 'a'), (2, 'b'), (3, 'c')")
    assert database.execute_int_list_query("SELECT id FROM account ORDER BY id") == [1, 2, 3]
    assert database.execute_string_list_query("SELECT name FROM account WHERE id > ? ORDER BY id", 1) == ["b", "c"]


def test_cardinality(database: Database):
    database.execute_update("INSERT INTO account (id, name) VALUES (1, 'a'), (2, 'b')")
    with pytest.raises(NoRowError):
        database.execute_string_query("SELECT name FROM account WHERE id = ?", 99)
    with pytest.raises(ExtraRowError):
        database.execute_string_query("SELECT name FROM account")
    assert database.execute_string_query("SELECT name FROM account WHERE id = ?", 99, row_required=False) is None


def test_transaction_commits_all_statements(database: Database):
    def transfer(session, amount):
        session.execute_update("INSERT INTO account (id, name, balance) VALUES (1, 'a', 100), (2, 'b', 0)")
        session.execute_update("UPDATE account SET balance = balance - ? WHERE id = 1", amount)
        session.execute_update("UPDATE account SET balance = balance + ? WHERE id = 2", amount)
        return database.execute_int_query("SELECT balance FROM account WHERE id = 2")

    assert database.transaction(transfer, 30) == 30
    assert database.execute_int_list_query("SELECT balance FROM account ORDER BY id") == [70, 30]


def test_transaction_rolls_back_on_failure(database: Database):
    def work(session):
        session.execute_update("INSERT INTO account (id, name) VALUES (1, 'a')")
        raise BusinessError("abort")

    with pytest.raises(BusinessError):
        database.transaction(work)
    assert database.execute_int_query("SELECT COUNT(*) FROM account") == 0
    assert database.broker.held == 0


def test_constraint_violation_is_a_statement_error(database: Database):
    database.execute_update("INSERT INTO account (id, name) VALUES (1, 'a')")
    with pytest.raises(StatementError):
        database.execute_update("INSERT INTO account (id, name) VALUES (2, 'a')")
    assert database.broker.held == 0
    assert database.execute_int_query("SELECT COUNT(*) FROM account") == 1
