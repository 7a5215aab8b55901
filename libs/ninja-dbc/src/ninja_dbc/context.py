"""Execution context: makes the active Session visible to nested transaction calls.

Each :class:`~ninja_dbc.database.Database` owns one :class:`ExecutionContext`.
It is backed by a ``contextvars.ContextVar``, so every thread (and every
asyncio task) has its own slot and a Session is never shared across call
chains.

The slot is set by the outermost transaction call and reset when that call
returns or raises:

    token = context.bind(session)
    try:
        ...  # nested calls see context.current() is session
    finally:
        context.reset(token)
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ninja_dbc.session import Session


class ExecutionContext:
    """One Session slot per call chain."""

    def __init__(self, name: str = "ninja_dbc_session") -> None:
        self._var: ContextVar[Session | None] = ContextVar(name, default=None)

    def bind(self, session: Session) -> Token[Session | None]:
        """Install *session* for the current call chain.

        Returns a token that can be passed to :meth:`reset` to restore the
        previous value.
        """
        return self._var.set(session)

    def reset(self, token: Token[Session | None]) -> None:
        """Restore the slot to what it held before :meth:`bind`."""
        self._var.reset(token)

    def current(self) -> Session | None:
        """Return the active Session, or None outside a transaction."""
        return self._var.get()

    def require(self) -> Session:
        """Return the active Session or raise if there is none.

        Raises:
            RuntimeError: If called outside a transaction.
        """
        session = self._var.get()
        if session is None:
            raise RuntimeError("No transaction is active in this call chain")
        return session
