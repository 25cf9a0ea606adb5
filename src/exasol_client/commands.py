"""Builders for the JSON command envelopes sent to the server."""

from __future__ import annotations

from typing import Any, Sequence

from .types import Column

Command = dict[str, Any]


def attributes(
    *,
    autocommit: bool | None = None,
    current_schema: str = "",
    compression_enabled: bool | None = None,
    query_timeout: int = 0,
    result_set_max_rows: int = 0,
) -> dict[str, Any]:
    """Session/statement attributes; unset values are left out of the payload."""
    attrs: dict[str, Any] = {}
    if autocommit is not None:
        attrs["autocommit"] = autocommit
    if compression_enabled is not None:
        attrs["compressionEnabled"] = compression_enabled
    if current_schema:
        attrs["currentSchema"] = current_schema
    if query_timeout:
        attrs["queryTimeout"] = query_timeout
    if result_set_max_rows:
        attrs["resultSetMaxRows"] = result_set_max_rows
    return attrs


def login(protocol_version: int) -> Command:
    return {"command": "login", "protocolVersion": protocol_version}


def login_token(protocol_version: int) -> Command:
    return {"command": "loginToken", "protocolVersion": protocol_version}


def disconnect() -> Command:
    return {"command": "disconnect"}


def abort_query() -> Command:
    return {"command": "abortQuery"}


def execute(sql: str, *, result_set_max_rows: int = 0) -> Command:
    return {
        "command": "execute",
        "sqlText": sql,
        "attributes": attributes(result_set_max_rows=result_set_max_rows),
    }


def create_prepared_statement(sql: str) -> Command:
    return {"command": "createPreparedStatement", "sqlText": sql}


def execute_prepared_statement(
    handle: int,
    columns: Sequence[Column],
    num_rows: int,
    data: list[list[Any]],
    *,
    result_set_max_rows: int = 0,
) -> Command:
    command: Command = {
        "command": "executePreparedStatement",
        "statementHandle": handle,
        "numRows": num_rows,
        "data": data,
        "attributes": attributes(result_set_max_rows=result_set_max_rows),
    }
    if columns:
        command["numColumns"] = len(columns)
        command["columns"] = [column.to_dict() for column in columns]
    return command


def close_prepared_statement(handle: int) -> Command:
    return {"command": "closePreparedStatement", "statementHandle": handle}


def fetch(result_set_handle: int, start_position: int, num_bytes: int) -> Command:
    return {
        "command": "fetch",
        "resultSetHandle": result_set_handle,
        "startPosition": start_position,
        "numBytes": num_bytes,
    }


def close_result_set(*handles: int) -> Command:
    return {"command": "closeResultSet", "resultSetHandles": list(handles)}


__all__ = [
    "Command",
    "abort_query",
    "attributes",
    "close_prepared_statement",
    "close_result_set",
    "create_prepared_statement",
    "disconnect",
    "execute",
    "execute_prepared_statement",
    "fetch",
    "login",
    "login_token",
]
