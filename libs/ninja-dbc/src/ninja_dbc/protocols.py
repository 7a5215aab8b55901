"""Narrow driver-facing interfaces the Session and Database depend on.

Anything implementing these protocols can stand in for the SQLAlchemy-backed
broker in :mod:`ninja_dbc.broker`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any, Protocol, runtime_checkable

from ninja_dbc.isolation import IsolationLevel


@runtime_checkable
class Row(Protocol):
    """A single result row: positional access plus a column-name mapping."""

    def __getitem__(self, index: int) -> Any: ...

    def __len__(self) -> int: ...

    @property
    def _mapping(self) -> Any: ...


@runtime_checkable
class ResultCursor(Protocol):
    """Forward-only cursor over the rows a statement produced."""

    rowcount: int

    def __iter__(self) -> Iterator[Row]: ...

    def keys(self) -> Sequence[str]: ...

    def close(self) -> None: ...


@runtime_checkable
class Connection(Protocol):
    """A single physical connection with JDBC-style session characteristics.

    ``autocommit``, ``isolation_level`` and ``read_only`` are settable.
    Switching ``autocommit`` on commits any transaction in progress.
    """

    autocommit: bool
    isolation_level: IsolationLevel
    read_only: bool

    @property
    def closed(self) -> bool: ...

    def execute(self, statement: Any, *, fetch_size: int | None = None) -> ResultCursor: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None:
        """Close the physical connection; it must not be reused afterwards."""
        ...


@runtime_checkable
class ConnectionBroker(Protocol):
    """Supplies configured connections and takes them back.

    Returned connections are in auto-commit mode at the requested isolation
    level and read-only setting.
    """

    @property
    def logger(self) -> logging.Logger: ...

    def get_connection(
        self,
        isolation_level: IsolationLevel,
        read_only: bool,
        max_connections: int = 1,
    ) -> Connection: ...

    def release_connection(self, connection: Connection) -> None: ...
