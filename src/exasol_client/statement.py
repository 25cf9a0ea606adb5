"""Statement execution: simple execute and server-side prepared statements."""

from __future__ import annotations

from typing import Any, Sequence

from . import commands
from .cancel import CancelScope
from .converter import ParameterBatch
from .errors import ExasolError
from .logger import BoundLogger, create_logger
from .result import ResultCursor, RowCount
from .session import Session, SessionRef, SessionState
from .types import Column, PreparedStatementResponse, SqlQueriesResponse


def _require_results(response: SqlQueriesResponse) -> SqlQueriesResponse:
    response.first()
    return response


class StatementExecutor:
    """Runs SQL text on a session, with or without bound parameters."""

    def __init__(self, session: Session, *, logger: BoundLogger | None = None) -> None:
        self._session = SessionRef(session)
        self._logger = (logger or create_logger()).child("statement")

    def execute_simple(self, sql: str, *, cancel: CancelScope | None = None) -> SqlQueriesResponse:
        session = self._session.get()
        response = session.send(
            commands.execute(sql, result_set_max_rows=session.config.result_set_max_rows),
            SqlQueriesResponse,
            cancel=cancel,
        )
        return _require_results(response)

    def create_prepared(self, sql: str, *, cancel: CancelScope | None = None) -> PreparedStatement:
        session = self._session.get()
        response = session.send(commands.create_prepared_statement(sql), PreparedStatementResponse, cancel=cancel)
        self._logger.debug(
            "Prepared statement %d with %d parameters", response.statement_handle, response.num_parameter_columns
        )
        return PreparedStatement(session, response, logger=self._logger)

    def execute_once(
        self,
        sql: str,
        values: Sequence[Any],
        *,
        cancel: CancelScope | None = None,
    ) -> SqlQueriesResponse:
        """Prepare, execute and close an implicit statement."""
        statement = self.create_prepared(sql, cancel=cancel)
        try:
            response = statement.execute(values, cancel=cancel)
        except BaseException:
            if self._session.alive and self._session.get().state is SessionState.OPEN:
                try:
                    statement.close()
                except ExasolError as close_error:
                    self._logger.warn("Could not close statement %d: %s", statement.handle, close_error)
            raise
        statement.close()
        return response

    def run(
        self, sql: str, values: Sequence[Any] | None = None, *, cancel: CancelScope | None = None
    ) -> SqlQueriesResponse:
        if values:
            return self.execute_once(sql, values, cancel=cancel)
        return self.execute_simple(sql, cancel=cancel)


class PreparedStatement:
    """A statement held by the server until :meth:`close` is called."""

    def __init__(
        self,
        session: Session,
        response: PreparedStatementResponse,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._session = SessionRef(session)
        self._logger = logger or create_logger()
        self.handle = response.statement_handle
        self.columns: list[Column] = list(response.parameter_columns)
        self.num_input = response.num_parameter_columns
        self.closed = False

    def bind(self, values: Sequence[Any]) -> ParameterBatch:
        return ParameterBatch.build(self.columns, values)

    def execute(self, values: Sequence[Any] = (), *, cancel: CancelScope | None = None) -> SqlQueriesResponse:
        batch = self.bind(values)
        session = self._session.get()
        command = commands.execute_prepared_statement(
            self.handle,
            batch.columns,
            batch.num_rows,
            batch.wire_data(),
            result_set_max_rows=session.config.result_set_max_rows,
        )
        return _require_results(session.send(command, SqlQueriesResponse, cancel=cancel))

    def query(self, values: Sequence[Any] = (), *, cancel: CancelScope | None = None) -> ResultCursor:
        response = self.execute(values, cancel=cancel)
        return ResultCursor.from_response(self._session.get(), response, logger=self._logger)

    def exec(self, values: Sequence[Any] = (), *, cancel: CancelScope | None = None) -> RowCount:
        return RowCount.from_response(self.execute(values, cancel=cancel))

    def close(self) -> None:
        if self.closed:
            return
        session = self._session.get()
        session.send(commands.close_prepared_statement(self.handle))
        self.closed = True

    def __enter__(self) -> PreparedStatement:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["PreparedStatement", "StatementExecutor"]
