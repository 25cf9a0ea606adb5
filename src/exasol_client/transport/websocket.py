"""WebSocket channel over plain TCP or TLS, built on websocket-client."""

from __future__ import annotations

import hashlib
import select
import socket
import ssl
from dataclasses import dataclass
from typing import Sequence

import websocket

from ..cancel import CancelScope
from ..errors import Cancelled, CertificateRejected, ConnectFailed
from ..logger import BoundLogger, create_logger
from .base import TransportError

DEFAULT_CONNECT_TIMEOUT = 30.0

# The server's ECDSA suite has to come first, otherwise some server releases
# fail the handshake. OpenSSL skips names it does not support; TLS 1.3 suites
# are not affected by this list.
CIPHER_PREFERENCE = (
    "ECDHE-ECDSA-AES256-GCM-SHA384",
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "DES-CBC3-SHA",
    "AES128-SHA",
    "AES256-SHA",
    "AES128-GCM-SHA256",
    "AES256-GCM-SHA384",
    "ECDHE-ECDSA-AES128-SHA",
    "ECDHE-ECDSA-AES256-SHA",
    "ECDHE-RSA-DES-CBC3-SHA",
    "ECDHE-RSA-AES128-SHA",
    "ECDHE-RSA-AES256-SHA",
    "ECDHE-RSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES256-GCM-SHA384",
    "ECDHE-RSA-CHACHA20-POLY1305",
    "ECDHE-ECDSA-CHACHA20-POLY1305",
)


@dataclass
class TlsOptions:
    validate_certificate: bool = True
    fingerprint: str = ""

    def context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.validate_certificate or self.fingerprint:
            # Pinning replaces chain validation
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        context.set_ciphers(":".join(CIPHER_PREFERENCE))
        return context


def certificate_fingerprint(der: bytes) -> str:
    return hashlib.sha256(der).hexdigest()


def verify_fingerprint(der: bytes | None, expected: str) -> None:
    """Compare the peer's leaf certificate against a pinned SHA-256 hex digest."""
    if not expected:
        return
    if not der:
        raise CertificateRejected("missing")
    actual = certificate_fingerprint(der)
    if actual.lower() != expected.lower():
        raise CertificateRejected("mismatch", actual=actual, expected=expected)


class WebSocketChannel:
    """A connected websocket; one frame per protocol message."""

    def __init__(self, ws: websocket.WebSocket, *, url: str, logger: BoundLogger | None = None) -> None:
        self._ws = ws
        self.url = url
        self._logger = (logger or create_logger()).child("websocket")
        self._closed = False

    @classmethod
    def open(
        cls,
        host: str,
        port: int,
        *,
        tls: TlsOptions | None = None,
        url_path: str = "",
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
        logger: BoundLogger | None = None,
    ) -> WebSocketChannel:
        scheme = "wss" if tls is not None else "ws"
        path = url_path if not url_path or url_path.startswith("/") else f"/{url_path}"
        url = f"{scheme}://{host}:{port}{path}"

        raw_socket = socket.create_connection((host, port), timeout=timeout)
        try:
            raw_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock: socket.socket = raw_socket
            if tls is not None:
                try:
                    sock = tls.context().wrap_socket(raw_socket, server_hostname=host)
                except ssl.SSLCertVerificationError as exc:
                    raise CertificateRejected("validation", detail=exc.verify_message or str(exc)) from exc
                verify_fingerprint(sock.getpeercert(binary_form=True), tls.fingerprint)
            ws = websocket.WebSocket(skip_utf8_validation=True)
            ws.connect(url, socket=sock, timeout=timeout)
            ws.settimeout(None)
        except BaseException:
            raw_socket.close()
            raise
        return cls(ws, url=url, logger=logger)

    def send(self, payload: bytes, *, binary: bool = False) -> None:
        opcode = websocket.ABNF.OPCODE_BINARY if binary else websocket.ABNF.OPCODE_TEXT
        try:
            self._ws.send(payload, opcode=opcode)
        except (websocket.WebSocketException, OSError) as exc:
            raise TransportError(f"could not send request: {exc}") from exc

    def wait_readable(self, timeout: float | None) -> bool:
        sock = self._ws.sock
        if sock is None:
            raise TransportError("websocket is not connected")
        if isinstance(sock, ssl.SSLSocket) and sock.pending():
            return True
        try:
            readable, _, _ = select.select([sock], [], [], timeout)
        except (OSError, ValueError) as exc:
            raise TransportError(f"could not poll websocket: {exc}") from exc
        return bool(readable)

    def recv(self) -> bytes:
        try:
            opcode, data = self._ws.recv_data()
        except (websocket.WebSocketException, OSError) as exc:
            raise TransportError(f"could not receive data: {exc}") from exc
        if opcode == websocket.ABNF.OPCODE_CLOSE:
            raise TransportError("connection closed by server")
        return data

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._ws.close(timeout=1)
        except (websocket.WebSocketException, OSError) as exc:
            self._logger.debug("Ignoring error while closing %s: %s", self.url, exc)


def connect_channel(
    hosts: Sequence[str],
    port: int,
    *,
    tls: TlsOptions | None = None,
    url_path: str = "",
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
    logger: BoundLogger | None = None,
    cancel: CancelScope | None = None,
) -> WebSocketChannel:
    """Try ``hosts`` strictly in order and return the first channel that connects.

    A rejected certificate is raised right away; any other failure moves on to
    the next host and the last one is reported in ConnectFailed.
    """
    log = (logger or create_logger()).child("connect")
    last_error: BaseException | None = None
    for host in hosts:
        if cancel is not None and cancel.cancelled:
            raise Cancelled(cancel.cause)
        log.info("Connecting to %s:%s (%s)", host, port, "tls" if tls is not None else "tcp")
        try:
            return WebSocketChannel.open(
                host, port, tls=tls, url_path=url_path, timeout=timeout, logger=logger
            )
        except CertificateRejected:
            raise
        except (OSError, websocket.WebSocketException) as exc:
            log.warn("Connection to %s:%s failed: %s", host, port, exc)
            last_error = exc
    raise ConnectFailed(
        f"could not connect to any of {list(hosts)} on port {port}: {last_error}", context=last_error
    ) from last_error


__all__ = [
    "CIPHER_PREFERENCE",
    "DEFAULT_CONNECT_TIMEOUT",
    "TlsOptions",
    "WebSocketChannel",
    "certificate_fingerprint",
    "connect_channel",
    "verify_fingerprint",
]
