"""Shared fixtures for ninja-dbc tests."""

import pytest
from fakes import FakeBroker
from ninja_dbc.config import DatabaseConfig
from ninja_dbc.database import Database
from ninja_dbc.session import Session


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def session(broker: FakeBroker) -> Session:
    return Session(broker)


@pytest.fixture
def db(broker: FakeBroker) -> Database:
    return Database(broker)


@pytest.fixture
def sqlite_config(tmp_path) -> DatabaseConfig:
    return DatabaseConfig(url=f"sqlite:///{tmp_path / 'ninja_dbc.db'}")
