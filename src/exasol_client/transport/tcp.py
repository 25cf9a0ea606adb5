"""Raw TCP channel used to hand local files to the server during IMPORT."""

from __future__ import annotations

import socket
import struct
from typing import BinaryIO, Iterable, Sequence

from ..cancel import CancelScope
from ..errors import Cancelled, InvalidProxyConnection
from ..logger import BoundLogger, create_logger

MAGIC_WORDS = (0x02212102, 1, 1)
_HANDSHAKE = struct.Struct("<III")
_ENDPOINT_REPLY = struct.Struct("<II16s")

RESPONSE_HEADERS = (
    "HTTP/1.1 200 OK",
    "Content-Type: application/octet-stream",
    "Content-Disposition: attachment; filename=data.csv",
    "Transfer-Encoding: chunked",
    "Connection: close",
)


class ChunkedWriter:
    """HTTP/1.1 chunked transfer encoding over a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.bytes_written = 0

    def write(self, data: bytes) -> None:
        if not data:
            return
        self._stream.write(b"%x\r\n" % len(data))
        self._stream.write(data)
        self._stream.write(b"\r\n")
        self.bytes_written += len(data)

    def finish(self) -> None:
        self._stream.write(b"0\r\n\r\n")
        self._stream.flush()


class ProxyConnection:
    """TCP connection that negotiates an ephemeral ingestion endpoint."""

    def __init__(self, sock: socket.socket, *, logger: BoundLogger | None = None) -> None:
        self._socket: socket.socket | None = sock
        self._writer: BinaryIO | None = sock.makefile("wb")
        self._logger = (logger or create_logger()).child("proxy")
        self.host = ""
        self.port = 0

    @classmethod
    def connect(
        cls,
        hosts: Sequence[str],
        port: int,
        *,
        timeout: float | None = None,
        logger: BoundLogger | None = None,
    ) -> ProxyConnection:
        failures: list[str] = []
        for host in hosts:
            try:
                raw_socket = socket.create_connection((host, port), timeout=timeout)
            except OSError as exc:
                failures.append(f"could not create TCP connection to {host}:{port}, {exc}")
                continue
            raw_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            raw_socket.settimeout(None)
            return cls(raw_socket, logger=logger)
        raise InvalidProxyConnection(
            "could not create proxy connection to import file: " + "; ".join(failures or ["no hosts"])
        )

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def negotiate(self) -> tuple[str, int]:
        """Send the magic words and read back the host and port the server listens on."""
        sock = self._require_socket()
        try:
            sock.sendall(_HANDSHAKE.pack(*MAGIC_WORDS))
            reply = self._recv_exact(sock, _ENDPOINT_REPLY.size)
        except OSError as exc:
            raise InvalidProxyConnection(f"could not negotiate import endpoint: {exc}") from exc
        _, port, raw_host = _ENDPOINT_REPLY.unpack(reply)
        self.host = raw_host.strip(b"\x00").decode("utf-8", errors="replace")
        self.port = port
        self._logger.debug("Import endpoint negotiated at %s", self.url)
        return self.host, self.port

    def upload(
        self,
        files: Iterable[BinaryIO],
        row_separator: bytes,
        *,
        cancel: CancelScope | None = None,
    ) -> int:
        """Stream ``files`` as one chunked HTTP response body; returns the payload size."""
        writer = self._require_writer()
        chunked = ChunkedWriter(writer)
        delimiter = row_separator[-1:]
        try:
            writer.write("".join(f"{header}\r\n" for header in RESPONSE_HEADERS + ("",)).encode("ascii"))
            for stream in files:
                for line in iter_lines(stream, delimiter):
                    if cancel is not None and cancel.cancelled:
                        raise Cancelled(cancel.cause)
                    chunked.write(line)
            chunked.finish()
        except OSError as exc:
            raise InvalidProxyConnection(f"could not stream file to {self.url}: {exc}") from exc
        self._logger.info("Uploaded %d bytes to %s", chunked.bytes_written, self.url)
        return chunked.bytes_written

    def abort(self) -> None:
        """Shut the socket down so a writer blocked in another thread fails fast."""
        if self._socket is None:
            return
        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError as exc:
            self._logger.debug("Ignoring error while shutting down proxy socket: %s", exc)

    def close(self) -> None:
        if self._writer is not None:
            try:
                self._writer.close()
            except OSError as exc:
                self._logger.debug("Ignoring error while flushing proxy stream: %s", exc)
            self._writer = None
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError as exc:
                self._logger.debug("Ignoring error while closing proxy socket: %s", exc)
            self._socket = None

    def _require_socket(self) -> socket.socket:
        if self._socket is None:
            raise InvalidProxyConnection("proxy connection is closed")
        return self._socket

    def _require_writer(self) -> BinaryIO:
        if self._writer is None:
            raise InvalidProxyConnection("proxy connection is closed")
        return self._writer

    @staticmethod
    def _recv_exact(sock: socket.socket, size: int) -> bytes:
        buffer = bytearray()
        while len(buffer) < size:
            chunk = sock.recv(size - len(buffer))
            if not chunk:
                raise InvalidProxyConnection(
                    f"connection closed after {len(buffer)} of {size} handshake bytes"
                )
            buffer.extend(chunk)
        return bytes(buffer)


def iter_lines(stream: BinaryIO, delimiter: bytes, block_size: int = 64 * 1024) -> Iterable[bytes]:
    """Yield lines ending in ``delimiter``; a trailing fragment is yielded as is."""
    pending = bytearray()
    # Bytes of pending already known not to start a delimiter
    scanned = 0
    while True:
        block = stream.read(block_size)
        if not block:
            break
        pending.extend(block)
        start = 0
        while True:
            end = pending.find(delimiter, max(start, scanned))
            if end < 0:
                break
            yield bytes(pending[start:end + len(delimiter)])
            start = end + len(delimiter)
        del pending[:start]
        scanned = max(0, len(pending) - len(delimiter) + 1)
    if pending:
        yield bytes(pending)


__all__ = ["ChunkedWriter", "MAGIC_WORDS", "ProxyConnection", "RESPONSE_HEADERS", "iter_lines"]
