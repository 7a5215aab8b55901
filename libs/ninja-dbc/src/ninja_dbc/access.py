"""Query surface shared by :class:`~ninja_dbc.session.Session` and
:class:`~ninja_dbc.database.Database`.

Subclasses implement four primitives; every typed shortcut is built on them.
Query methods default to READ COMMITTED and read-only; ``*_update`` methods
run writable so that ``INSERT ... RETURNING`` style statements can use them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from ninja_dbc import factories
from ninja_dbc.factories import ObjectFactory
from ninja_dbc.isolation import DEFAULT_ISOLATION_LEVEL, IsolationLevel
from ninja_dbc.protocols import ResultCursor, Row

T = TypeVar("T")
C = TypeVar("C", bound=Collection[Any])

FactoryLike = ObjectFactory[T] | type[T] | Callable[[Row], T]
ResultHandler = Callable[[ResultCursor], T]


class DatabaseAccess(ABC):
    """Typed statement execution with explicit row-count expectations."""

    # -- primitives -------------------------------------------------------------

    @abstractmethod
    def execute_object_query(
        self,
        factory: FactoryLike[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> T | None:
        """Run a single-row query and build its value with *factory*.

        Raises:
            NoRowError: No row and *row_required* is set.
            ExtraRowError: More than one row.
        """

    @abstractmethod
    def execute_object_collection_query(
        self,
        collection: C,
        factory: FactoryLike[Any],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> C:
        """Add one value per row to *collection* and return it."""

    @abstractmethod
    def execute_query(
        self,
        handler: ResultHandler[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> T:
        """Hand the whole result cursor to *handler* and return what it returns."""

    @abstractmethod
    def execute_update(self, sql: str, *params: Any) -> int:
        """Run a writing statement and return its update count."""

    # -- object / handler variants ----------------------------------------------

    def execute_object_update(self, factory: FactoryLike[T], sql: str, *params: Any) -> T | None:
        return self.execute_object_query(factory, sql, *params, read_only=False)

    def execute_object_list_query(
        self,
        factory: FactoryLike[T],
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> list[T]:
        return self.execute_object_collection_query(
            [], factory, sql, *params, isolation_level=isolation_level, read_only=read_only
        )

    def execute_object_collection_update(self, collection: C, factory: FactoryLike[Any], sql: str, *params: Any) -> C:
        return self.execute_object_collection_query(collection, factory, sql, *params, read_only=False)

    def execute_object_list_update(self, factory: FactoryLike[T], sql: str, *params: Any) -> list[T]:
        return self.execute_object_list_query(factory, sql, *params, read_only=False)

    def execute_update_query(self, handler: ResultHandler[T], sql: str, *params: Any) -> T:
        return self.execute_query(handler, sql, *params, read_only=False)

    # -- typed single values ------------------------------------------------------

    def _single(
        self,
        factory: ObjectFactory[T],
        default: T | None,
        sql: str,
        params: tuple[Any, ...],
        isolation_level: IsolationLevel,
        read_only: bool,
        row_required: bool,
    ) -> T | None:
        value = self.execute_object_query(
            factory,
            sql,
            *params,
            isolation_level=isolation_level,
            read_only=read_only,
            row_required=row_required,
        )
        return default if value is None else value

    def execute_boolean_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> bool:
        """Single boolean; a NULL column or (when allowed) a missing row reads as ``False``."""
        return bool(self._single(factories.BOOLEAN, False, sql, params, isolation_level, read_only, row_required))

    def execute_boolean_update(self, sql: str, *params: Any) -> bool:
        return self.execute_boolean_query(sql, *params, read_only=False)

    def execute_int_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> int:
        """Single 32-bit integer; NULL or a permitted missing row reads as ``0``."""
        return self._single(factories.INTEGER, 0, sql, params, isolation_level, read_only, row_required)  # type: ignore[return-value]

    def execute_int_update(self, sql: str, *params: Any) -> int:
        return self.execute_int_query(sql, *params, read_only=False)

    def execute_long_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> int:
        """Single 64-bit integer; NULL or a permitted missing row reads as ``0``."""
        return self._single(factories.LONG, 0, sql, params, isolation_level, read_only, row_required)  # type: ignore[return-value]

    def execute_long_update(self, sql: str, *params: Any) -> int:
        return self.execute_long_query(sql, *params, read_only=False)

    def execute_short_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> int:
        """Single 16-bit integer; NULL or a permitted missing row reads as ``0``."""
        return self._single(factories.SHORT, 0, sql, params, isolation_level, read_only, row_required)  # type: ignore[return-value]

    def execute_short_update(self, sql: str, *params: Any) -> int:
        return self.execute_short_query(sql, *params, read_only=False)

    def execute_float_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> float | None:
        return self._single(factories.FLOAT, None, sql, params, isolation_level, read_only, row_required)

    def execute_float_update(self, sql: str, *params: Any) -> float | None:
        return self.execute_float_query(sql, *params, read_only=False)

    def execute_decimal_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> Decimal | None:
        return self._single(factories.DECIMAL, None, sql, params, isolation_level, read_only, row_required)

    def execute_decimal_update(self, sql: str, *params: Any) -> Decimal | None:
        return self.execute_decimal_query(sql, *params, read_only=False)

    def execute_string_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> str | None:
        return self._single(factories.STRING, None, sql, params, isolation_level, read_only, row_required)

    def execute_string_update(self, sql: str, *params: Any) -> str | None:
        return self.execute_string_query(sql, *params, read_only=False)

    def execute_bytes_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> bytes | None:
        return self._single(factories.BYTES, None, sql, params, isolation_level, read_only, row_required)

    def execute_bytes_update(self, sql: str, *params: Any) -> bytes | None:
        return self.execute_bytes_query(sql, *params, read_only=False)

    def execute_date_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> date | None:
        return self._single(factories.DATE, None, sql, params, isolation_level, read_only, row_required)

    def execute_date_update(self, sql: str, *params: Any) -> date | None:
        return self.execute_date_query(sql, *params, read_only=False)

    def execute_timestamp_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
        row_required: bool = True,
    ) -> datetime | None:
        return self._single(factories.TIMESTAMP, None, sql, params, isolation_level, read_only, row_required)

    def execute_timestamp_update(self, sql: str, *params: Any) -> datetime | None:
        return self.execute_timestamp_query(sql, *params, read_only=False)

    # -- typed lists --------------------------------------------------------------

    def execute_int_list_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> list[int]:
        return self.execute_object_list_query(
            factories.not_null(factories.INTEGER), sql, *params, isolation_level=isolation_level, read_only=read_only
        )

    def execute_long_list_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> list[int]:
        return self.execute_object_list_query(
            factories.not_null(factories.LONG), sql, *params, isolation_level=isolation_level, read_only=read_only
        )

    def execute_short_list_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> list[int]:
        return self.execute_object_list_query(
            factories.not_null(factories.SHORT), sql, *params, isolation_level=isolation_level, read_only=read_only
        )

    def execute_string_list_query(
        self,
        sql: str,
        *params: Any,
        isolation_level: IsolationLevel = DEFAULT_ISOLATION_LEVEL,
        read_only: bool = True,
    ) -> list[str | None]:
        return self.execute_object_list_query(
            factories.STRING, sql, *params, isolation_level=isolation_level, read_only=read_only
        )

    def execute_int_list_update(self, sql: str, *params: Any) -> list[int]:
        return self.execute_int_list_query(sql, *params, read_only=False)

    def execute_long_list_update(self, sql: str, *params: Any) -> list[int]:
        return self.execute_long_list_query(sql, *params, read_only=False)

    def execute_short_list_update(self, sql: str, *params: Any) -> list[int]:
        return self.execute_short_list_query(sql, *params, read_only=False)

    def execute_string_list_update(self, sql: str, *params: Any) -> list[str | None]:
        return self.execute_string_list_query(sql, *params, read_only=False)
