from __future__ import annotations

import socket
import struct
from pathlib import Path

import pytest
from conftest import ImportEndpoint, row_count

from exasol_client.cancel import CancelScope
from exasol_client.errors import FileNotFound, InvalidImportQuery, InvalidProxyConnection, SqlExecutionError
from exasol_client.importer import (
    ImportAccelerator,
    ImportJob,
    file_paths,
    is_import_query,
    rewrite_import_query,
    row_separator,
)
from exasol_client.types import SqlQueriesResponse


@pytest.fixture
def csv_file(tmp_path: Path) -> Path:
    path = tmp_path / "rows.csv"
    path.write_bytes(b"1,a\n2,b\n3,c\n")
    return path


def test_detects_local_import_statements() -> None:
    assert is_import_query("IMPORT INTO t FROM LOCAL CSV FILE '/tmp/a.csv'")
    assert is_import_query("  import into t from local   csv file 'a.csv'")
    assert not is_import_query("IMPORT INTO t FROM CSV AT 'http://x' FILE 'a.csv'")
    assert not is_import_query("SELECT 'FROM LOCAL CSV'")


def test_extracts_file_paths_in_order() -> None:
    sql = "IMPORT INTO t FROM LOCAL CSV FILE '/data/a.csv' FILE \"C:\\data\\b.csv\" COLUMN SEPARATOR = ','"
    assert file_paths(sql) == ["/data/a.csv", "C:\\data\\b.csv"]


def test_missing_file_clause_is_invalid() -> None:
    with pytest.raises(InvalidImportQuery):
        file_paths("IMPORT INTO t FROM LOCAL CSV")


@pytest.mark.parametrize(
    ("clause", "expected"),
    [("", b"\n"), ("ROW SEPARATOR = 'CRLF'", b"\r\n"), ("row separator = 'cr'", b"\r"), ("ROW SEPARATOR = 'XY'", b"\n")],
)
def test_row_separator(clause: str, expected: bytes) -> None:
    assert row_separator(f"IMPORT INTO t FROM LOCAL CSV FILE 'a.csv' {clause}") == expected


def test_rewrite_uses_endpoint_and_single_synthetic_file() -> None:
    sql = "IMPORT INTO t FROM LOCAL CSV FILE '/a.csv' FILE '/b.csv' SKIP = 1"
    rewritten = rewrite_import_query(sql, "http://10.0.0.7:4711")
    assert rewritten == "IMPORT INTO t FROM CSV AT 'http://10.0.0.7:4711' FILE 'data.csv' SKIP = 1"


def test_job_parse_collects_paths_and_separator() -> None:
    job = ImportJob.parse("IMPORT INTO t FROM LOCAL CSV FILE 'x.csv' ROW SEPARATOR = 'CRLF'")
    assert job.paths == ["x.csv"]
    assert job.row_separator == b"\r\n"


def test_import_negotiates_uploads_and_executes(csv_file: Path) -> None:
    endpoint = ImportEndpoint()
    statements: list[str] = []

    def execute(statement: str, scope: CancelScope) -> SqlQueriesResponse:
        statements.append(statement)
        return SqlQueriesResponse.from_dict(row_count(3)["responseData"])

    response = ImportAccelerator("127.0.0.1", endpoint.port).run(
        f"IMPORT INTO t FROM LOCAL CSV FILE '{csv_file}'", execute
    )
    endpoint.join()

    assert response.first_row_count() == 3
    assert statements == ["IMPORT INTO t FROM CSV AT 'http://10.0.0.7:4711' FILE 'data.csv' "]
    assert struct.unpack("<III", endpoint.handshake) == (0x02212102, 1, 1)
    assert endpoint.received.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Transfer-Encoding: chunked\r\n" in endpoint.received
    assert endpoint.body == b"1,a\n2,b\n3,c\n"


def test_multiple_files_are_streamed_in_order(tmp_path: Path) -> None:
    first, second = tmp_path / "one.csv", tmp_path / "two.csv"
    first.write_bytes(b"1\n2\n")
    second.write_bytes(b"3\n4")
    endpoint = ImportEndpoint()

    ImportAccelerator("127.0.0.1", endpoint.port).run(
        f"IMPORT INTO t FROM LOCAL CSV FILE '{first}' FILE '{second}'",
        lambda statement, scope: SqlQueriesResponse.from_dict(row_count(4)["responseData"]),
    )
    endpoint.join()

    assert endpoint.body == b"1\n2\n3\n4"


def test_execution_failure_is_surfaced(csv_file: Path) -> None:
    endpoint = ImportEndpoint()
    scopes: list[CancelScope] = []

    def execute(statement: str, scope: CancelScope) -> SqlQueriesResponse:
        scopes.append(scope)
        raise SqlExecutionError("42636", "ETL-5105 invalid data")

    with pytest.raises(SqlExecutionError):
        ImportAccelerator("127.0.0.1", endpoint.port).run(f"IMPORT INTO t FROM LOCAL CSV FILE '{csv_file}'", execute)
    endpoint.join()
    assert scopes[0].cancelled


def test_missing_local_file_fails_before_connecting(tmp_path: Path) -> None:
    calls: list[str] = []
    with pytest.raises(FileNotFound) as excinfo:
        ImportAccelerator("127.0.0.1", 1).run(
            f"IMPORT INTO t FROM LOCAL CSV FILE '{tmp_path / 'absent.csv'}'",
            lambda statement, scope: calls.append(statement),
        )
    assert excinfo.value.path.endswith("absent.csv")
    assert calls == []


def test_unreachable_endpoint_is_invalid_proxy_connection(csv_file: Path) -> None:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    with pytest.raises(InvalidProxyConnection):
        ImportAccelerator("127.0.0.1", port, connect_timeout=2).run(
            f"IMPORT INTO t FROM LOCAL CSV FILE '{csv_file}'",
            lambda statement, scope: None,
        )
