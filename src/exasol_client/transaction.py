"""Explicit transactions on sessions that run without autocommit."""

from __future__ import annotations

from typing import Any

from .errors import AutocommitEnabled, InvalidConnection
from .session import Session, SessionRef
from .statement import StatementExecutor


class Transaction:
    """Single-use handle: exactly one of commit() or rollback() may succeed."""

    def __init__(self, session: Session) -> None:
        self._session: SessionRef | None = SessionRef(session)

    @classmethod
    def begin(cls, session: Session) -> Transaction:
        session_ref = SessionRef(session)
        if session_ref.get().autocommit:
            raise AutocommitEnabled("begin not working when autocommit is enabled")
        return cls(session)

    @property
    def finished(self) -> bool:
        return self._session is None

    def commit(self) -> None:
        self._finish("COMMIT")

    def rollback(self) -> None:
        self._finish("ROLLBACK")

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type: Any, *exc_info: Any) -> None:
        if self.finished:
            return
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def _finish(self, sql: str) -> None:
        if self._session is None:
            raise InvalidConnection("invalid connection: transaction already finished")
        session = self._session.get()
        self._session = None
        StatementExecutor(session).execute_simple(sql)


__all__ = ["Transaction"]
