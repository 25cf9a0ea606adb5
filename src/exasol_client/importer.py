"""IMPORT ... FROM LOCAL CSV support.

The server cannot read files on the client machine, so the statement is
rewritten to load ``CSV AT '<endpoint>'`` instead. The endpoint is a
server-side socket reached through a separate TCP connection, which this
module negotiates and then feeds with the local files while the
statement runs.
"""

from __future__ import annotations

import contextlib
import re
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import BinaryIO, Callable, TypeVar

from .cancel import CancelScope
from .errors import Cancelled, FileNotFound, InvalidImportQuery
from .hosts import candidate_hosts
from .logger import BoundLogger, create_logger
from .transport.tcp import ProxyConnection

R = TypeVar("R")

SYNTHETIC_FILE_NAME = "data.csv"
ROW_SEPARATORS = {"LF": b"\n", "CR": b"\r", "CRLF": b"\r\n"}

_LOCAL_IMPORT = re.compile(r"^\s*IMPORT[\s(]+.+FROM\s+LOCAL\s+CSV.*$", re.IGNORECASE | re.MULTILINE | re.DOTALL)
_LOCAL_CSV = re.compile(r"LOCAL\s+CSV", re.IGNORECASE)
_FILE = re.compile(r"""FILE\s+["'](?P<path>[a-zA-Z0-9:<> \\/._\-~]+)["'] ?""", re.IGNORECASE)
_ROW_SEPARATOR = re.compile(r"""ROW\s+SEPARATOR\s*=\s*["'](?P<separator>[a-zA-Z]+)["']""", re.IGNORECASE)


def is_import_query(sql: str) -> bool:
    return _LOCAL_IMPORT.search(sql) is not None


def file_paths(sql: str) -> list[str]:
    paths = [match.group("path") for match in _FILE.finditer(sql)]
    if not paths:
        raise InvalidImportQuery("could not parse import query")
    return paths


def row_separator(sql: str) -> bytes:
    match = _ROW_SEPARATOR.search(sql)
    if match is None:
        return ROW_SEPARATORS["LF"]
    return ROW_SEPARATORS.get(match.group("separator").upper(), ROW_SEPARATORS["LF"])


def rewrite_import_query(sql: str, endpoint_url: str) -> str:
    """Point the statement at ``endpoint_url`` with a single synthetic file name."""
    if not is_import_query(sql):
        return sql
    for index, match in enumerate(list(_FILE.finditer(sql))):
        replacement = f"FILE '{SYNTHETIC_FILE_NAME}' " if index == 0 else ""
        sql = sql.replace(match.group(0), replacement, 1)
    return _LOCAL_CSV.sub(f"CSV AT '{endpoint_url}'", sql)


@dataclass
class ImportJob:
    sql: str
    paths: list[str]
    row_separator: bytes
    endpoint_url: str = ""
    rewritten_sql: str = ""

    @classmethod
    def parse(cls, sql: str) -> ImportJob:
        return cls(sql=sql, paths=file_paths(sql), row_separator=row_separator(sql))

    def bind_endpoint(self, endpoint_url: str) -> str:
        self.endpoint_url = endpoint_url
        self.rewritten_sql = rewrite_import_query(self.sql, endpoint_url)
        return self.rewritten_sql


def open_local_file(path: str) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as exc:
        raise FileNotFound(path) from exc


class ImportAccelerator:
    """Runs a local-file IMPORT: negotiates the endpoint, then uploads while executing."""

    def __init__(
        self,
        host_spec: str,
        port: int,
        *,
        connect_timeout: float | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._host_spec = host_spec
        self._port = port
        self._connect_timeout = connect_timeout
        self._logger = (logger or create_logger()).child("import")

    def run(
        self,
        sql: str,
        execute: Callable[[str, CancelScope], R],
        *,
        cancel: CancelScope | None = None,
    ) -> R:
        job = ImportJob.parse(sql)
        scope = CancelScope(parent=cancel)
        with contextlib.ExitStack() as stack:
            files = [stack.enter_context(open_local_file(path)) for path in job.paths]
            proxy = ProxyConnection.connect(
                candidate_hosts(self._host_spec),
                self._port,
                timeout=self._connect_timeout,
                logger=self._logger,
            )
            stack.callback(proxy.close)
            proxy.negotiate()
            statement = job.bind_endpoint(proxy.url)
            self._logger.debug("Importing %d file(s) through %s", len(files), proxy.url)
            return self._supervise(job, proxy, files, statement, execute, scope)

    def _supervise(
        self,
        job: ImportJob,
        proxy: ProxyConnection,
        files: list[BinaryIO],
        statement: str,
        execute: Callable[[str, CancelScope], R],
        scope: CancelScope,
    ) -> R:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="exasol-import") as pool:
            execution: Future[R] = pool.submit(execute, statement, scope)
            upload: Future[int] = pool.submit(proxy.upload, files, job.row_separator, cancel=scope)
            done, _ = wait([execution, upload], return_when=FIRST_EXCEPTION)
            failures = [future.exception() for future in (execution, upload) if future in done and future.exception()]
            if failures:
                error = _first_cause(failures)
                self._logger.warn("Import failed, cancelling remaining task: %s", error)
                scope.cancel(error)
                # Unblocks an upload stuck writing to a server that stopped reading
                proxy.abort()
                wait([execution, upload])
                raise error
        return execution.result()


def _first_cause(failures: list[BaseException | None]) -> BaseException:
    real = [failure for failure in failures if failure is not None]
    for failure in real:
        if not isinstance(failure, Cancelled):
            return failure
    return real[0]


__all__ = [
    "ImportAccelerator",
    "ImportJob",
    "ROW_SEPARATORS",
    "SYNTHETIC_FILE_NAME",
    "file_paths",
    "is_import_query",
    "open_local_file",
    "rewrite_import_query",
    "row_separator",
]
