from __future__ import annotations

import json
import socket
import struct
import threading
import zlib
from collections import deque
from typing import Any

import pytest

from exasol_client.config import ConnectionConfig
from exasol_client.session import Session
from exasol_client.transport.base import TransportError


def ok(data: Any = None) -> dict[str, Any]:
    envelope: dict[str, Any] = {"status": "ok"}
    if data is not None:
        envelope["responseData"] = data
    return envelope


def row_count(count: int) -> dict[str, Any]:
    return ok({"numResults": 1, "results": [{"resultType": "rowCount", "rowCount": count}]})


def result_set(
    columns: list[tuple[str, dict[str, Any]]],
    data: list[list[Any]],
    *,
    num_rows: int | None = None,
    handle: int = 0,
) -> dict[str, Any]:
    rows_in_message = len(data[0]) if data else 0
    return ok(
        {
            "numResults": 1,
            "results": [
                {
                    "resultType": "resultSet",
                    "resultSet": {
                        "resultSetHandle": handle,
                        "numColumns": len(columns),
                        "numRows": rows_in_message if num_rows is None else num_rows,
                        "numRowsInMessage": rows_in_message,
                        "columns": [{"name": name, "dataType": data_type} for name, data_type in columns],
                        "data": data,
                    },
                }
            ],
        }
    )


class ScriptedChannel:
    """In-memory Channel that replays queued replies and records every frame sent."""

    def __init__(self) -> None:
        self.sent: list[tuple[bytes, bool]] = []
        self.replies: deque[Any] = deque()
        self.fail_commands: set[str] = set()
        self.closed = False

    def queue(self, *replies: Any, compress: bool = False) -> ScriptedChannel:
        for reply in replies:
            if isinstance(reply, (bytes, Exception)):
                self.replies.append(reply)
                continue
            payload = json.dumps(reply).encode("utf-8")
            self.replies.append(zlib.compress(payload) if compress else payload)
        return self

    def send(self, payload: bytes, *, binary: bool = False) -> None:
        command = self._decode(payload, binary).get("command")
        if command in self.fail_commands:
            raise TransportError(f"send of {command} failed")
        self.sent.append((payload, binary))

    def wait_readable(self, timeout: float | None) -> bool:
        return bool(self.replies)

    def recv(self) -> bytes:
        if not self.replies:
            raise TransportError("no reply scripted")
        reply = self.replies.popleft()
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self) -> None:
        self.closed = True

    @property
    def commands(self) -> list[dict[str, Any]]:
        return [self._decode(payload, binary) for payload, binary in self.sent]

    @property
    def command_names(self) -> list[str]:
        return [command.get("command", "") for command in self.commands]

    @staticmethod
    def _decode(payload: bytes, binary: bool) -> dict[str, Any]:
        if binary:
            payload = zlib.decompress(payload)
        return json.loads(payload)


AUTH_DATA = {"sessionId": 4242, "protocolVersion": 3, "releaseVersion": "8.0.0", "databaseName": "DB"}


def logged_in_session(channel: ScriptedChannel, **overrides: Any) -> Session:
    """Log a session in through the token path and forget the login frames."""
    overrides.setdefault("access_token", "token")
    config = ConnectionConfig(**overrides)
    channel.queue(ok(), ok(AUTH_DATA))
    session = Session(config, channel)
    session.login()
    channel.sent.clear()
    return session


@pytest.fixture
def channel() -> ScriptedChannel:
    return ScriptedChannel()


@pytest.fixture
def session(channel: ScriptedChannel) -> Session:
    return logged_in_session(channel)


class ImportEndpoint:
    """Loopback stand-in for the server side of the import handshake."""

    def __init__(self, advertised_host: bytes = b"10.0.0.7", advertised_port: int = 4711) -> None:
        self._listener = socket.socket()
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]
        self.advertised = (advertised_host, advertised_port)
        self.handshake = b""
        self.received = b""
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        conn, _ = self._listener.accept()
        with conn:
            while len(self.handshake) < 12:
                self.handshake += conn.recv(12 - len(self.handshake))
            host, port = self.advertised
            conn.sendall(struct.pack("<II16s", 0, port, host))
            while True:
                try:
                    chunk = conn.recv(4096)
                except OSError:
                    break
                if not chunk:
                    break
                self.received += chunk

    def join(self) -> None:
        self._thread.join(timeout=5)
        self._listener.close()

    @property
    def body(self) -> bytes:
        """Decoded chunked payload after the header block."""
        _, _, rest = self.received.partition(b"\r\n\r\n")
        payload = b""
        while rest:
            size_line, _, rest = rest.partition(b"\r\n")
            size = int(size_line, 16)
            if size == 0:
                break
            payload += rest[:size]
            rest = rest[size + 2:]
        return payload
