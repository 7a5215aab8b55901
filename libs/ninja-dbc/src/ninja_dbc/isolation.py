"""Transaction isolation levels, ordered from weakest to strictest."""

from __future__ import annotations

from enum import IntEnum


class IsolationLevel(IntEnum):
    """Isolation level requested for a statement.

    Values are ordered so that a connection can be escalated with a plain
    ``<`` comparison.
    """

    NONE = 0
    READ_UNCOMMITTED = 1
    READ_COMMITTED = 2
    REPEATABLE_READ = 4
    SERIALIZABLE = 8

    @property
    def sql_name(self) -> str:
        """Name of the level as SQLAlchemy and ``SET TRANSACTION`` spell it."""
        return self.name.replace("_", " ")

    @classmethod
    def from_name(cls, name: str) -> IsolationLevel:
        """Parse ``"READ COMMITTED"``, ``"read_committed"`` and similar spellings."""
        key = name.strip().upper().replace(" ", "_").replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown isolation level: {name!r}") from None


DEFAULT_ISOLATION_LEVEL = IsolationLevel.READ_COMMITTED
