"""High-level connection object tying the session components together."""

from __future__ import annotations

from typing import Any, Sequence

from .cancel import CancelScope
from .config import ConnectionConfig
from .dsn import parse_dsn
from .errors import ClosedConnection
from .importer import ImportAccelerator, is_import_query
from .logger import BoundLogger, LogLevel, create_logger
from .result import ResultCursor, RowCount
from .session import Session
from .statement import PreparedStatement, StatementExecutor
from .transaction import Transaction
from .transport.websocket import DEFAULT_CONNECT_TIMEOUT


class Connection:
    """Primary entry point: one logged-in session plus statement helpers."""

    def __init__(self, session: Session, *, logger: BoundLogger | None = None) -> None:
        self._session = session
        self._logger = logger or create_logger()
        self._executor = StatementExecutor(session, logger=self._logger)

    @property
    def config(self) -> ConnectionConfig:
        return self._session.config

    @property
    def session(self) -> Session:
        return self._session

    @property
    def closed(self) -> bool:
        return self._session.closed

    def execute(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        cancel: CancelScope | None = None,
    ) -> RowCount:
        """Run a statement that does not return rows.

        ``IMPORT ... FROM LOCAL CSV`` statements upload the referenced local
        files while the statement executes.
        """
        self._ensure_open()
        if is_import_query(sql):
            return self._execute_import(sql, params, cancel)
        return RowCount.from_response(self._executor.run(sql, params, cancel=cancel))

    def query(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        *,
        cancel: CancelScope | None = None,
    ) -> ResultCursor:
        self._ensure_open()
        response = self._executor.run(sql, params, cancel=cancel)
        return ResultCursor.from_response(self._session, response, logger=self._logger)

    def prepare(self, sql: str, *, cancel: CancelScope | None = None) -> PreparedStatement:
        self._ensure_open()
        return self._executor.create_prepared(sql, cancel=cancel)

    def begin(self) -> Transaction:
        self._ensure_open()
        return Transaction.begin(self._session)

    def close(self) -> None:
        if self._session.closed:
            return
        self._logger.info("Closing connection to %s", self.config.host)
        self._session.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _execute_import(
        self,
        sql: str,
        params: Sequence[Any] | None,
        cancel: CancelScope | None,
    ) -> RowCount:
        accelerator = ImportAccelerator(
            self.config.host,
            self.config.port,
            connect_timeout=DEFAULT_CONNECT_TIMEOUT,
            logger=self._logger,
        )
        response = accelerator.run(
            sql,
            lambda statement, scope: self._executor.run(statement, params, cancel=scope),
            cancel=cancel,
        )
        return RowCount.from_response(response)

    def _ensure_open(self) -> None:
        if self._session.closed:
            raise ClosedConnection("connection was closed")


def connect(
    target: ConnectionConfig | str,
    *,
    logger: Any | None = None,
    log_level: LogLevel = "info",
    cancel: CancelScope | None = None,
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> Connection:
    """Open a connection from a :class:`ConnectionConfig` or an ``exa:`` connection string."""
    config = parse_dsn(target) if isinstance(target, str) else target
    bound = create_logger(logger=logger, level=log_level)
    bound.info("Connecting to %s:%d", config.host, config.port)
    session = Session.connect(config, logger=bound, cancel=cancel, timeout=timeout)
    return Connection(session, logger=bound)


__all__ = ["Connection", "connect"]
